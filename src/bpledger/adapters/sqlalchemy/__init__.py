"""SQLAlchemy adapter package for bpledger."""

from __future__ import annotations

from .audit import SqlAlchemyAuditSink
from .mappings import (
    audit_log_table,
    create_all_tables,
    mapper_registry,
    sheet_row_table,
    sheet_table,
    start_mappers,
)
from .repositories import SqlAlchemyAuditLogRepository, SqlAlchemyTableStore
from .unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAuditLogRepository",
    "SqlAlchemyAuditSink",
    "SqlAlchemyLedgerUnitOfWork",
    "SqlAlchemyTableStore",
    "StartupError",
    "audit_log_table",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "sheet_row_table",
    "sheet_table",
    "shutdown",
    "start_mappers",
    "startup",
]
