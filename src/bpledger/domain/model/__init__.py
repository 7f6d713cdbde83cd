"""Domain model for the bonus points ledger."""

from __future__ import annotations

from .audit import AuditEvent
from .balance import Adjustment, BalanceBreakdown, LedgerStats, PlayerBalance
from .enums import AuditAction, AuditStatus, Category, RowOutcome
from .redemption import RedemptionReceipt, RedemptionRecord

__all__ = [
    "Adjustment",
    "AuditAction",
    "AuditEvent",
    "AuditStatus",
    "BalanceBreakdown",
    "Category",
    "LedgerStats",
    "PlayerBalance",
    "RedemptionReceipt",
    "RedemptionRecord",
    "RowOutcome",
]
