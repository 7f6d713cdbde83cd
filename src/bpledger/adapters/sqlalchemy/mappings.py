"""SQLAlchemy metadata for the tabular store and the audit log."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)

from bpledger.domain.model import AuditAction, AuditEvent, AuditStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from bpledger.domain.ports import Cell

log = logging.getLogger(__name__)

_DATETIME_KEY = "$dt"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _encode_cell(value: Cell) -> object:
    if isinstance(value, datetime):
        aware = value if value.tzinfo else value.replace(tzinfo=UTC)
        return {_DATETIME_KEY: aware.astimezone(UTC).isoformat()}
    return value


def _decode_cell(value: object) -> Cell:
    if isinstance(value, dict):
        encoded = cast(dict[str, Any], value).get(_DATETIME_KEY)
        if isinstance(encoded, str):
            return datetime.fromisoformat(encoded)
        return None
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return str(value)


class CellListType(TypeDecorator[list["Cell"]]):
    """JSON list of cells; datetimes are stored as tagged ISO strings in UTC."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Cell] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps([_encode_cell(cell) for cell in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Cell]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        return [_decode_cell(item) for item in cast(list[Any], loaded)]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

sheet_table = Table(
    "sheet",
    mapper_registry.metadata,
    Column("name", String(255), primary_key=True),
    Column("headers", CellListType(), nullable=False),
)

sheet_row_table = Table(
    "sheet_row",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "sheet_name",
        String(255),
        ForeignKey("sheet.name", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("position", Integer, nullable=False),
    Column("cells", CellListType(), nullable=False),
    UniqueConstraint("sheet_name", "position"),
)

audit_log_table = Table(
    "audit_log",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "action",
        Enum(
            AuditAction,
            native_enum=False,
            length=32,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    ),
    Column("details", Text, nullable=False),
    Column(
        "status",
        Enum(
            AuditStatus,
            native_enum=False,
            length=16,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    ),
    Column("player_name", String(255), nullable=True, index=True),
    Column("occurred_at", UTCDateTime(), nullable=False, index=True),
)


@cache
def start_mappers() -> orm.registry:
    """Map the audit event dataclass onto its table."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(AuditEvent, audit_log_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    start_mappers()
    mapper_registry.metadata.create_all(engine)
