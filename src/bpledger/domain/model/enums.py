"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    ATTENDANCE = "attendance"
    FLAG = "flag"
    DICE = "dice"


class AuditStatus(StrEnum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class AuditAction(StrEnum):
    SYNC = "BP_SYNC"
    REDEEM = "BP_REDEEM_LOG"
    ADJUST = "BP_ADJUST"
    IMPORT = "BP_IMPORT"


class RowOutcome(StrEnum):
    """Result of reconciling a single ledger row."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
