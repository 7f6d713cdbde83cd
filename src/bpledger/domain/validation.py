"""Read-only health report of the tables the ledger depends on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from bpledger.domain.schema import (
    NAME_ALIASES,
    find_column,
    ledger_schema,
    redemption_log_schema,
    resolve_columns,
)

if TYPE_CHECKING:
    from bpledger.config import LedgerConfig, SourceConfig
    from bpledger.domain.ports import Table, TableStore
    from bpledger.domain.schema import TableSchema


@dataclass(frozen=True, slots=True)
class TableCheck:
    table: str
    present: bool
    missing_columns: tuple[str, ...] = ()
    note: str = ""

    @property
    def ok(self) -> bool:
        return self.present and not self.missing_columns


def validate_tables(store: TableStore, config: LedgerConfig) -> list[TableCheck]:
    checks = [
        _check_owned(store, ledger_schema(config.ledger_table)),
        _check_owned(store, redemption_log_schema(config.redemption_table)),
    ]
    checks.extend(_check_roster(store, name) for name in config.roster_tables)
    for source in config.sources:
        checks.extend(_check_source(store.get(name), name, source) for name in source.tables)
    return checks


def _check_owned(store: TableStore, schema: TableSchema) -> TableCheck:
    table = store.get(schema.name)
    if table is None:
        return TableCheck(schema.name, present=False, note="created on first use")
    columns = resolve_columns(table.headers, schema)
    missing = tuple(columns.missing(schema.headers))
    note = "missing columns are appended on first use" if missing else ""
    return TableCheck(schema.name, present=True, missing_columns=missing, note=note)


def _check_roster(store: TableStore, name: str) -> TableCheck:
    table = store.get(name)
    if table is None:
        return TableCheck(name, present=False)
    if find_column(table.headers, NAME_ALIASES) is None:
        return TableCheck(name, present=True, note="no name header, first column is used")
    return TableCheck(name, present=True)


def _check_source(table: Table | None, name: str, source: SourceConfig) -> TableCheck:
    if table is None:
        return TableCheck(name, present=False, note="skipped during aggregation")
    missing: list[str] = []
    if find_column(table.headers, NAME_ALIASES) is None:
        missing.append(NAME_ALIASES[0])
    note = ""
    if find_column(table.headers, source.points_aliases) is None:
        if source.sum_columns_fallback:
            note = "no points column, mission columns are summed"
        else:
            missing.append(source.points_aliases[0])
    return TableCheck(name, present=True, missing_columns=tuple(missing), note=note)
