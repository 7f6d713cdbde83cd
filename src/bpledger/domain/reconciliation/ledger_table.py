"""Reading and writing the reconciled ledger table.

The engine computes balances in memory; this module turns them into row writes
against the table store. Only owned columns are touched, everything else on a
row is carried over as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bpledger.domain.model import Category, PlayerBalance
from bpledger.domain.schema import ColumnMap, LedgerColumn, ensure_schema, ledger_schema, resolve_columns
from bpledger.domain.values import coerce_number, coerce_timestamp, is_numeric_cell, normalize_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import datetime

    from bpledger.domain.ports.tables import Cell, Table, TableStore

log = logging.getLogger(__name__)

CATEGORY_COLUMNS: dict[Category, str] = {
    Category.ATTENDANCE: LedgerColumn.ATTENDANCE,
    Category.FLAG: LedgerColumn.FLAG,
    Category.DICE: LedgerColumn.DICE,
}


@dataclass(frozen=True, slots=True)
class StoredRow:
    index: int
    balance: PlayerBalance
    adjustment: float = 0.0


@dataclass(slots=True)
class LedgerState:
    """In-memory view of the ledger table at read time."""

    table: Table | None
    columns: ColumnMap
    rows: dict[str, StoredRow] = field(default_factory=dict[str, StoredRow])

    def get(self, name: str) -> StoredRow | None:
        return self.rows.get(name)

    def __iter__(self) -> Iterator[StoredRow]:
        return iter(self.rows.values())

    @property
    def width(self) -> int:
        headers = self.table.headers if self.table is not None else ()
        highest = max(self.columns.indices.values(), default=-1)
        return max(len(headers), highest + 1)


@dataclass(slots=True)
class WritePlan:
    """Row writes collected during one reconciliation pass."""

    updates: dict[int, list[Cell]] = field(default_factory=dict[int, list["Cell"]])
    appends: list[list[Cell]] = field(default_factory=list[list["Cell"]])
    updated: list[str] = field(default_factory=list[str])
    added: list[str] = field(default_factory=list[str])

    @property
    def is_empty(self) -> bool:
        return not self.updates and not self.appends


class LedgerTable:
    """Access to the ledger table of one store."""

    def __init__(self, store: TableStore, table_name: str) -> None:
        self._store = store
        self.schema = ledger_schema(table_name)

    @property
    def name(self) -> str:
        return self.schema.name

    def ensure(self) -> ColumnMap:
        return ensure_schema(self._store, self.schema)

    def load(self) -> LedgerState:
        table = self._store.get(self.name)
        if table is None:
            return LedgerState(table=None, columns=ColumnMap(self.name, {}))
        columns = resolve_columns(table.headers, self.schema)
        state = LedgerState(table=table, columns=columns)
        name_col = columns.get(LedgerColumn.NAME)
        if name_col is None:
            if table.rows:
                log.warning("Ledger table %r has no name column, its rows are ignored", self.name)
            return state
        for index in range(len(table.rows)):
            name = normalize_name(table.cell(index, name_col))
            if not name:
                continue
            if name in state.rows:
                log.warning("Duplicate ledger row for %r at position %s ignored", name, index)
                continue
            balance = _read_balance(table, columns, index, name)
            state.rows[name] = StoredRow(
                index=index,
                balance=balance,
                adjustment=_read_adjustment(table, columns, index, balance),
            )
        return state

    def overwrite(self, state: LedgerState, row: StoredRow, balance: PlayerBalance, now: datetime) -> None:
        """Write ``balance`` onto an existing row even if nothing changed."""

        self._store.update_rows(self.name, {row.index: build_row(state, row.index, balance, now)})

    def apply(self, plan: WritePlan) -> None:
        if plan.updates:
            self._store.update_rows(self.name, plan.updates)
        if plan.appends:
            self._store.append_rows(self.name, plan.appends)


def has_changed(stored: PlayerBalance, derived: PlayerBalance) -> bool:
    """Whether any derived field differs from what the row currently holds."""

    return (
        any(stored.points(category) != derived.points(category) for category in Category)
        or stored.historical != derived.historical
        or stored.redeemed != derived.redeemed
        or stored.current != derived.current
        or stored.overflow != derived.overflow
    )


def plan_writes(
    state: LedgerState,
    balances: Iterable[PlayerBalance],
    now: datetime,
) -> WritePlan:
    """Collect row writes for every balance that differs from its stored row."""

    plan = WritePlan()
    for balance in balances:
        stored = state.get(balance.name)
        if stored is None:
            plan.appends.append(build_row(state, None, balance, now))
            plan.added.append(balance.name)
        elif has_changed(stored.balance, balance):
            plan.updates[stored.index] = build_row(state, stored.index, balance, now)
            plan.updated.append(balance.name)
    return plan


def build_row(
    state: LedgerState,
    index: int | None,
    balance: PlayerBalance,
    now: datetime,
) -> list[Cell]:
    """Return the full row for ``balance``, keeping unowned cells of row ``index``."""

    width = state.width
    if index is not None and state.table is not None:
        row = state.table.padded_row(index)
        row.extend([None] * (width - len(row)))
    else:
        row = [None] * width

    columns = state.columns
    row[columns[LedgerColumn.NAME]] = balance.name
    row[columns[LedgerColumn.CURRENT]] = balance.current
    for category, column in CATEGORY_COLUMNS.items():
        row[columns[column]] = balance.points(category)
    row[columns[LedgerColumn.HISTORICAL]] = balance.historical
    row[columns[LedgerColumn.REDEEMED]] = balance.redeemed
    row[columns[LedgerColumn.OVERFLOW]] = balance.overflow
    row[columns[LedgerColumn.LAST_UPDATED]] = now
    return row


def _read_balance(table: Table, columns: ColumnMap, index: int, name: str) -> PlayerBalance:
    def number(column: str) -> float:
        position = columns.get(column)
        return coerce_number(table.cell(index, position)) if position is not None else 0.0

    updated_col = columns.get(LedgerColumn.LAST_UPDATED)
    return PlayerBalance(
        name=name,
        category_points={category: number(column) for category, column in CATEGORY_COLUMNS.items()},
        historical=number(LedgerColumn.HISTORICAL),
        redeemed=number(LedgerColumn.REDEEMED),
        current=number(LedgerColumn.CURRENT),
        overflow=number(LedgerColumn.OVERFLOW),
        last_updated=coerce_timestamp(table.cell(index, updated_col)) if updated_col is not None else None,
    )


def _read_adjustment(table: Table, columns: ColumnMap, index: int, balance: PlayerBalance) -> float:
    """Manual correction held by a row: historical minus the sum of its category points.

    Rows whose historical or category cells are not all numbers (legacy rows,
    freshly added columns) carry no adjustment.
    """

    for column in (LedgerColumn.HISTORICAL, *CATEGORY_COLUMNS.values()):
        position = columns.get(column)
        if position is None or not is_numeric_cell(table.cell(index, position)):
            return 0.0
    return balance.historical - sum(balance.points(category) for category in Category)
