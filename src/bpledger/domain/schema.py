"""Schema resolution for tables with drifting header layouts.

Legacy tables name the same field in different ways (``Current_BP`` versus
``BP_Current``, ``preferred_name_id`` versus ``PreferredName``). Resolution maps
whatever headers are present onto canonical names through a synonym table and,
for tables the ledger owns, appends the canonical columns that are missing.

Existing columns are never renamed, moved or removed, so data the ledger does
not own survives every schema pass untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from bpledger.domain.errors import SchemaInvalidError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from bpledger.domain.ports.tables import TableStore

log = logging.getLogger(__name__)

NAME_ALIASES: Final[tuple[str, ...]] = (
    "PreferredName",
    "Preferred Name",
    "preferred_name_id",
    "Player",
    "Player Name",
    "Name",
)


class LedgerColumn:
    NAME: Final = "PreferredName"
    CURRENT: Final = "BP_Current"
    ATTENDANCE: Final = "Attendance Mission Points"
    FLAG: Final = "Flag Mission Points"
    DICE: Final = "Dice Roll Points"
    LAST_UPDATED: Final = "LastUpdated"
    HISTORICAL: Final = "BP_Historical"
    REDEEMED: Final = "BP_Redeemed"
    OVERFLOW: Final = "BP_Overflow"


class RedemptionColumn:
    TIMESTAMP: Final = "Timestamp"
    NAME: Final = "PreferredName"
    AMOUNT: Final = "BP_Amount"
    REASON: Final = "Reason"
    CATEGORY: Final = "Category"
    EVENT_ID: Final = "Event_ID"
    STAFF: Final = "Staff"
    ROW_ID: Final = "RowId"


_NAME_SYNONYMS: Final[dict[str, str]] = {
    alias: LedgerColumn.NAME for alias in NAME_ALIASES if alias != LedgerColumn.NAME
}


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Canonical header list of a table plus the legacy spellings it accepts."""

    name: str
    headers: tuple[str, ...]
    synonyms: Mapping[str, str] = field(default_factory=dict[str, str])

    def canonical(self, header: str) -> str:
        """Canonical spelling of ``header``; matching ignores case and outer whitespace."""

        text = header.strip()
        key = text.casefold()
        for name in self.headers:
            if name.casefold() == key:
                return name
        for alias, name in self.synonyms.items():
            if alias.casefold() == key:
                return name
        return text


def ledger_schema(table_name: str) -> TableSchema:
    return TableSchema(
        name=table_name,
        headers=(
            LedgerColumn.NAME,
            LedgerColumn.CURRENT,
            LedgerColumn.ATTENDANCE,
            LedgerColumn.FLAG,
            LedgerColumn.DICE,
            LedgerColumn.LAST_UPDATED,
            LedgerColumn.HISTORICAL,
            LedgerColumn.REDEEMED,
            LedgerColumn.OVERFLOW,
        ),
        synonyms={
            **_NAME_SYNONYMS,
            "Current_BP": LedgerColumn.CURRENT,
            "Current BP": LedgerColumn.CURRENT,
            "BP": LedgerColumn.CURRENT,
            "Bonus_Points": LedgerColumn.CURRENT,
            "Historical_BP": LedgerColumn.HISTORICAL,
            "Historical BP": LedgerColumn.HISTORICAL,
            "Total_Earned": LedgerColumn.HISTORICAL,
            "Redeemed_BP": LedgerColumn.REDEEMED,
            "Redeemed BP": LedgerColumn.REDEEMED,
            "BP Redeemed": LedgerColumn.REDEEMED,
            "Total_Spent": LedgerColumn.REDEEMED,
            "Attendance Missions": LedgerColumn.ATTENDANCE,
            "Attendance Points": LedgerColumn.ATTENDANCE,
            "Flag Missions": LedgerColumn.FLAG,
            "Flag Points": LedgerColumn.FLAG,
            "Dice Points": LedgerColumn.DICE,
            "Last Updated": LedgerColumn.LAST_UPDATED,
            "Prestige_Overflow": LedgerColumn.OVERFLOW,
            "Total_Overflow": LedgerColumn.OVERFLOW,
        },
    )


def redemption_log_schema(table_name: str) -> TableSchema:
    return TableSchema(
        name=table_name,
        headers=(
            RedemptionColumn.TIMESTAMP,
            RedemptionColumn.NAME,
            RedemptionColumn.AMOUNT,
            RedemptionColumn.REASON,
            RedemptionColumn.CATEGORY,
            RedemptionColumn.EVENT_ID,
            RedemptionColumn.STAFF,
            RedemptionColumn.ROW_ID,
        ),
        synonyms={
            **_NAME_SYNONYMS,
            "Amount": RedemptionColumn.AMOUNT,
            "BP Amount": RedemptionColumn.AMOUNT,
            "Event ID": RedemptionColumn.EVENT_ID,
            "EventId": RedemptionColumn.EVENT_ID,
            "Row ID": RedemptionColumn.ROW_ID,
        },
    )


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Column positions keyed by canonical name."""

    table: str
    indices: Mapping[str, int]

    def __contains__(self, name: object) -> bool:
        return name in self.indices

    def get(self, name: str) -> int | None:
        return self.indices.get(name)

    def __getitem__(self, name: str) -> int:
        index = self.indices.get(name)
        if index is None:
            raise SchemaInvalidError(self.table, [name])
        return index

    def missing(self, names: Iterable[str]) -> list[str]:
        return [name for name in names if name not in self.indices]

    def require(self, *names: str) -> ColumnMap:
        missing = self.missing(names)
        if missing:
            raise SchemaInvalidError(self.table, missing)
        return self


def resolve_columns(headers: Sequence[str], schema: TableSchema) -> ColumnMap:
    """Map observed ``headers`` onto the canonical names of ``schema``.

    The first header resolving to a canonical name wins; headers that resolve to
    nothing canonical are left out of the map.
    """

    wanted = set(schema.headers)
    indices: dict[str, int] = {}
    for index, header in enumerate(headers):
        if header is None:
            continue
        canonical = schema.canonical(str(header))
        if canonical in wanted and canonical not in indices:
            indices[canonical] = index
    return ColumnMap(table=schema.name, indices=indices)


def ensure_schema(store: TableStore, schema: TableSchema) -> ColumnMap:
    """Make sure every canonical column of ``schema`` exists and return the map.

    Missing columns are appended to the right of the existing ones. Headers are
    only written when something was actually added.
    """

    table = store.get(schema.name)
    if table is None:
        log.info("Creating table %s", schema.name)
        store.create(schema.name, schema.headers)
        return resolve_columns(schema.headers, schema)

    if not any(str(header or "").strip() for header in table.headers):
        store.set_headers(schema.name, schema.headers)
        return resolve_columns(schema.headers, schema)

    columns = resolve_columns(table.headers, schema)
    missing = columns.missing(schema.headers)
    if not missing:
        return columns

    log.info("Adding column(s) %s to %s", ", ".join(missing), schema.name)
    headers = [*table.headers, *missing]
    store.set_headers(schema.name, headers)
    return resolve_columns(headers, schema)


def find_column(headers: Sequence[str], aliases: Sequence[str]) -> int | None:
    """Return the position of the first alias (in alias order) present in ``headers``.

    Headers and aliases are compared case-insensitively.
    """

    positions: dict[str, int] = {}
    for index, header in enumerate(headers):
        if header is None:
            continue
        positions.setdefault(str(header).strip().casefold(), index)
    for alias in aliases:
        position = positions.get(alias.casefold())
        if position is not None:
            return position
    return None
