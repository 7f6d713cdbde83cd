"""Domain port definitions for adapters."""

from __future__ import annotations

from .audit import AuditLogRepository, AuditSink
from .tables import Cell, Row, Table, TableStore
from .unit_of_work import (
    LedgerRepositories,
    LedgerUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AuditLogRepository",
    "AuditSink",
    "Cell",
    "LedgerRepositories",
    "LedgerUnitOfWork",
    "RepositoryCollection",
    "Row",
    "Table",
    "TableStore",
    "UnitOfWork",
]
