"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, insert, select, update

from bpledger.adapters.sqlalchemy.mappings import audit_log_table, sheet_row_table, sheet_table
from bpledger.domain.model import AuditEvent
from bpledger.domain.ports import Table

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.orm import Session

    from bpledger.domain.ports import Cell


class SqlAlchemyTableStore:
    """Tabular store keeping each table as a header row plus positioned rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def names(self) -> list[str]:
        stmt = select(sheet_table.c.name).order_by(sheet_table.c.name)
        return list(self.session.execute(stmt).scalars())

    def get(self, name: str) -> Table | None:
        headers = self.session.execute(
            select(sheet_table.c.headers).where(sheet_table.c.name == name)
        ).scalar_one_or_none()
        if headers is None:
            return None
        rows = self.session.execute(
            select(sheet_row_table.c.cells)
            .where(sheet_row_table.c.sheet_name == name)
            .order_by(sheet_row_table.c.position)
        ).scalars()
        return Table(
            name=name,
            headers=tuple("" if header is None else str(header) for header in headers),
            rows=tuple(tuple(cells) for cells in rows),
        )

    def create(self, name: str, headers: Sequence[str]) -> Table:
        if self._exists(name):
            raise ValueError(f"Table already exists: {name}")
        self.session.execute(insert(sheet_table).values(name=name, headers=list(headers)))
        return Table(name=name, headers=tuple(headers))

    def set_headers(self, name: str, headers: Sequence[str]) -> None:
        result = self.session.execute(
            update(sheet_table).where(sheet_table.c.name == name).values(headers=list(headers))
        )
        if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
            raise KeyError(name)

    def update_rows(self, name: str, rows: Mapping[int, Sequence[Cell]]) -> None:
        self._require(name)
        for position, cells in rows.items():
            result = self.session.execute(
                update(sheet_row_table)
                .where(sheet_row_table.c.sheet_name == name)
                .where(sheet_row_table.c.position == position)
                .values(cells=list(cells))
            )
            if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
                raise IndexError(f"{name} has no row at position {position}")

    def append_rows(self, name: str, rows: Sequence[Sequence[Cell]]) -> None:
        self._require(name)
        if not rows:
            return
        start = self.session.execute(
            select(func.coalesce(func.max(sheet_row_table.c.position) + 1, 0)).where(
                sheet_row_table.c.sheet_name == name
            )
        ).scalar_one()
        self.session.execute(
            insert(sheet_row_table),
            [
                {"sheet_name": name, "position": start + offset, "cells": list(cells)}
                for offset, cells in enumerate(rows)
            ],
        )

    def replace(self, name: str, headers: Sequence[str], rows: Sequence[Sequence[Cell]]) -> None:
        self.session.execute(delete(sheet_row_table).where(sheet_row_table.c.sheet_name == name))
        if self._exists(name):
            self.set_headers(name, headers)
        else:
            self.create(name, headers)
        self.append_rows(name, rows)

    def _exists(self, name: str) -> bool:
        stmt = select(sheet_table.c.name).where(sheet_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def _require(self, name: str) -> None:
        if not self._exists(name):
            raise KeyError(name)


class SqlAlchemyAuditLogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, event: AuditEvent) -> None:
        self.session.add(event)

    def recent(self, limit: int = 50) -> list[AuditEvent]:
        stmt = (
            select(AuditEvent)
            .order_by(audit_log_table.c.occurred_at.desc(), audit_log_table.c.id.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())
