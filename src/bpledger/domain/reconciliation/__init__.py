"""Reconciliation engine for the bonus points ledger."""

from __future__ import annotations

from .derive import apply_cap, derive_balance, with_historical
from .engine import ReconcileSummary, ReconciliationEngine
from .ledger_table import LedgerState, LedgerTable, StoredRow, WritePlan, has_changed, plan_writes
from .service import ReconciliationService

__all__ = [
    "LedgerState",
    "LedgerTable",
    "ReconcileSummary",
    "ReconciliationEngine",
    "ReconciliationService",
    "StoredRow",
    "WritePlan",
    "apply_cap",
    "derive_balance",
    "has_changed",
    "plan_writes",
    "with_historical",
]
