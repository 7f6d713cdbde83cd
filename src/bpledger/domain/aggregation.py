"""Aggregation of category points from independently maintained source tables."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bpledger.domain.errors import SchemaInvalidError
from bpledger.domain.model import Category
from bpledger.domain.schema import NAME_ALIASES, find_column
from bpledger.domain.values import coerce_number, is_numeric_cell, normalize_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from bpledger.config import LedgerConfig, SourceConfig
    from bpledger.domain.ports.tables import Table, TableStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceTotals:
    """Per-category point totals keyed by player name."""

    by_category: dict[Category, dict[str, float]] = field(
        default_factory=dict[Category, dict[str, float]]
    )

    def points(self, name: str) -> dict[Category, float]:
        return {
            category: self.by_category.get(category, {}).get(name, 0.0) for category in Category
        }

    def names(self) -> set[str]:
        return {name for totals in self.by_category.values() for name in totals}


def aggregate(source: SourceConfig, tables: Iterable[Table | None]) -> dict[str, float]:
    """Sum the points of ``source.category`` per player across ``tables``.

    Tables that do not exist are passed as ``None`` and skipped. A player
    appearing in several rows or several tables gets the sum of all of them.
    """

    totals: defaultdict[str, float] = defaultdict(float)
    for table in tables:
        if table is None:
            continue
        for name, points in _table_points(source, table):
            totals[name] += points
    return {name: max(0.0, points) for name, points in totals.items()}


def aggregate_all(config: LedgerConfig, store: TableStore) -> SourceTotals:
    result = SourceTotals()
    for source in config.sources:
        tables = [store.get(table_name) for table_name in source.tables]
        for table_name, table in zip(source.tables, tables, strict=True):
            if table is None:
                log.debug("Source table %s not found, skipping", table_name)
        result.by_category[source.category] = aggregate(source, tables)
    return result


def _table_points(source: SourceConfig, table: Table) -> Iterator[tuple[str, float]]:
    if not table.rows:
        return
    name_col = find_column(table.headers, NAME_ALIASES)
    if name_col is None:
        raise SchemaInvalidError(table.name, [NAME_ALIASES[0]])

    points_col = find_column(table.headers, source.points_aliases)
    if points_col is None and not source.sum_columns_fallback:
        raise SchemaInvalidError(table.name, [source.points_aliases[0]])
    if points_col is None:
        log.debug("No points column in %s, summing mission columns", table.name)

    for row_index in range(len(table.rows)):
        name = normalize_name(table.cell(row_index, name_col))
        if not name:
            continue
        if points_col is not None:
            yield name, coerce_number(table.cell(row_index, points_col))
        else:
            yield name, _sum_mission_columns(source, table, row_index, name_col)


def _sum_mission_columns(
    source: SourceConfig,
    table: Table,
    row_index: int,
    name_col: int,
) -> float:
    ignored = {header.lower() for header in source.ignored_headers}
    total = 0.0
    for column, header in enumerate(table.headers):
        label = str(header or "").strip()
        if column == name_col or label.lower() in ignored:
            continue
        value = table.cell(row_index, column)
        if value is True:
            total += source.checkbox_value(label)
        elif is_numeric_cell(value):
            total += float(value)  # type: ignore[arg-type]
    return total
