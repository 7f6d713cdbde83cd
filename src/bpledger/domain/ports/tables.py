"""Port for the external tabular store the ledger lives in."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

type Cell = str | int | float | bool | datetime | None
type Row = tuple[Cell, ...]


@dataclass(frozen=True, slots=True)
class Table:
    """Snapshot of one table: a header row plus data rows.

    Rows may be shorter than the header; missing trailing cells read as ``None``.
    """

    name: str
    headers: tuple[str, ...] = ()
    rows: tuple[Row, ...] = ()

    def cell(self, row_index: int, column: int) -> Cell:
        row = self.rows[row_index]
        return row[column] if column < len(row) else None

    def padded_row(self, row_index: int) -> list[Cell]:
        row = list(self.rows[row_index])
        if len(row) < len(self.headers):
            row.extend([None] * (len(self.headers) - len(row)))
        return row


@runtime_checkable
class TableStore(Protocol):
    """Read and write rows of named tables by position."""

    def names(self) -> list[str]: ...

    def get(self, name: str) -> Table | None: ...

    def create(self, name: str, headers: Sequence[str]) -> Table: ...

    def set_headers(self, name: str, headers: Sequence[str]) -> None: ...

    def update_rows(self, name: str, rows: Mapping[int, Sequence[Cell]]) -> None:
        """Overwrite the data rows at the given 0-based positions."""
        ...

    def append_rows(self, name: str, rows: Sequence[Sequence[Cell]]) -> None: ...

    def replace(self, name: str, headers: Sequence[str], rows: Sequence[Sequence[Cell]]) -> None:
        """Create or fully overwrite a table."""
        ...


__all__ = ["Cell", "Row", "Table", "TableStore"]
