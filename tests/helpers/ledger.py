"""Reusable fakes and builders for ledger tests."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from bpledger.domain.ports import LedgerRepositories, Table

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType

    from bpledger.domain.model import AuditAction, AuditEvent
    from bpledger.domain.ports import Cell


class InMemoryTableStore:
    """Table store keeping every table as a header list plus row lists."""

    def __init__(self) -> None:
        self._tables: dict[str, tuple[list[str], list[list[Cell]]]] = {}
        self.writes: list[tuple[str, str]] = []

    def names(self) -> list[str]:
        return sorted(self._tables)

    def get(self, name: str) -> Table | None:
        entry = self._tables.get(name)
        if entry is None:
            return None
        headers, rows = entry
        return Table(name=name, headers=tuple(headers), rows=tuple(tuple(row) for row in rows))

    def create(self, name: str, headers: Sequence[str]) -> Table:
        if name in self._tables:
            raise ValueError(f"Table already exists: {name}")
        self._tables[name] = (list(headers), [])
        self.writes.append(("create", name))
        return Table(name=name, headers=tuple(headers))

    def set_headers(self, name: str, headers: Sequence[str]) -> None:
        _, rows = self._tables[name]
        self._tables[name] = (list(headers), rows)
        self.writes.append(("set_headers", name))

    def update_rows(self, name: str, rows: Mapping[int, Sequence[Cell]]) -> None:
        _, stored = self._tables[name]
        for index, row in rows.items():
            if not 0 <= index < len(stored):
                raise IndexError(f"{name} has no row at position {index}")
            stored[index] = list(row)
        self.writes.append(("update_rows", name))

    def append_rows(self, name: str, rows: Sequence[Sequence[Cell]]) -> None:
        _, stored = self._tables[name]
        stored.extend(list(row) for row in rows)
        self.writes.append(("append_rows", name))

    def replace(self, name: str, headers: Sequence[str], rows: Sequence[Sequence[Cell]]) -> None:
        self._tables[name] = (list(headers), [list(row) for row in rows])
        self.writes.append(("replace", name))

    def row_writes(self, name: str) -> list[str]:
        return [op for op, table in self.writes if table == name and op != "set_headers"]

    def clone(self) -> InMemoryTableStore:
        twin = InMemoryTableStore()
        twin._tables = copy.deepcopy(self._tables)  # noqa: SLF001
        return twin

    def load_from(self, other: InMemoryTableStore) -> None:
        self._tables = copy.deepcopy(other._tables)  # noqa: SLF001
        self.writes.extend(other.writes)


class InMemoryUnitOfWork:
    """Unit of work over an ``InMemoryTableStore`` with commit and rollback."""

    def __init__(self, store: InMemoryTableStore) -> None:
        self._committed = store
        self._working: InMemoryTableStore | None = None
        self.commits = 0
        self.rollbacks = 0

    def __enter__(self) -> InMemoryUnitOfWork:
        self._working = self._committed.clone()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self._working = None
        return False

    @property
    def repositories(self) -> LedgerRepositories:
        if self._working is None:
            raise RuntimeError("Unit of work not entered")
        return LedgerRepositories(tables=self._working)

    def commit(self) -> None:
        if self._working is None:
            raise RuntimeError("Unit of work not entered")
        self._committed.load_from(self._working)
        self._working.writes.clear()
        self.commits += 1

    def rollback(self) -> None:
        if self._working is not None:
            self._working = self._committed.clone()
        self.rollbacks += 1


@dataclass
class UnitOfWorkFactory:
    store: InMemoryTableStore
    created: list[InMemoryUnitOfWork] = field(default_factory=list[InMemoryUnitOfWork])

    def __call__(self) -> InMemoryUnitOfWork:
        uow = InMemoryUnitOfWork(self.store)
        self.created.append(uow)
        return uow

    @property
    def commits(self) -> int:
        return sum(uow.commits for uow in self.created)


@dataclass
class RecordingAuditSink:
    events: list[AuditEvent] = field(default_factory=list["AuditEvent"])

    def __call__(self, event: AuditEvent) -> None:
        self.events.append(event)

    def actions(self) -> list[AuditAction]:
        return [event.action for event in self.events]

    def clear(self) -> None:
        self.events.clear()


class FailingAuditSink:
    def __call__(self, event: AuditEvent) -> None:
        raise RuntimeError(f"audit backend down ({event.action})")


@dataclass
class FixedClock:
    now: datetime = field(default_factory=lambda: datetime(2025, 3, 1, 12, 0, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


def seed_table(
    store: InMemoryTableStore,
    name: str,
    headers: Sequence[str],
    *rows: Sequence[Cell],
) -> None:
    store.replace(name, headers, rows)


def seed_roster(store: InMemoryTableStore, *names: str, table: str = "PreferredNames") -> None:
    seed_table(store, table, ["PreferredName"], *[[name] for name in names])


def seed_points(
    store: InMemoryTableStore,
    table: str,
    points_header: str,
    *rows: tuple[str, Cell],
) -> None:
    seed_table(store, table, ["PreferredName", points_header], *[list(row) for row in rows])


def seed_standard_sources(
    store: InMemoryTableStore,
    *,
    attendance: Mapping[str, float] | None = None,
    flag: Mapping[str, float] | None = None,
    dice: Mapping[str, float] | None = None,
) -> None:
    if attendance is not None:
        seed_points(store, "Attendance_Missions", "Attendance Mission Points", *attendance.items())
    if flag is not None:
        seed_points(store, "Flag_Missions", "Flag Mission Points", *flag.items())
    if dice is not None:
        seed_points(store, "Dice Roll Points", "Dice Roll Points", *dice.items())


def ledger_rows(store: InMemoryTableStore, table: str = "BP_Total") -> dict[str, dict[str, Cell]]:
    """Return the ledger as ``{name: {header: value}}``."""

    snapshot = store.get(table)
    if snapshot is None:
        return {}
    result: dict[str, dict[str, Cell]] = {}
    for index in range(len(snapshot.rows)):
        row = snapshot.padded_row(index)
        record = dict(zip(snapshot.headers, row, strict=False))
        name = record.get("PreferredName")
        if isinstance(name, str) and name:
            result[name] = record
    return result
