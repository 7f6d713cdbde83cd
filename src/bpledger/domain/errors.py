"""Error taxonomy for ledger operations."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterable


class FailureReason(StrEnum):
    SCHEMA_INVALID = "SCHEMA_INVALID"
    ROSTER_MISSING = "ROSTER_MISSING"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    MISSING_REASON = "MISSING_REASON"
    RECONCILIATION_IN_PROGRESS = "RECONCILIATION_IN_PROGRESS"


class LedgerError(RuntimeError):
    """Base class for all ledger failures."""

    reason: ClassVar[FailureReason]


class SchemaInvalidError(LedgerError):
    """Raised when a required column is absent after schema resolution."""

    reason = FailureReason.SCHEMA_INVALID

    def __init__(self, table: str, missing: Iterable[str]) -> None:
        self.table = table
        self.missing = tuple(missing)
        super().__init__(f"{table} missing column(s): {', '.join(self.missing)}")


class RosterMissingError(LedgerError):
    """Raised when neither the primary nor the secondary roster table exists."""

    reason = FailureReason.ROSTER_MISSING

    def __init__(self, tables: Iterable[str]) -> None:
        self.tables = tuple(tables)
        super().__init__(f"No player roster found (looked for: {', '.join(self.tables)})")


class InsufficientBalanceError(LedgerError):
    reason = FailureReason.INSUFFICIENT_BALANCE

    def __init__(self, player_name: str, balance: float, requested: float) -> None:
        self.player_name = player_name
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Insufficient BP. {player_name} has {balance:g} BP, tried to redeem {requested:g}"
        )


class InvalidAmountError(LedgerError):
    reason = FailureReason.INVALID_AMOUNT


class PlayerNotFoundError(LedgerError):
    reason = FailureReason.PLAYER_NOT_FOUND

    def __init__(self, player_name: str) -> None:
        self.player_name = player_name
        super().__init__(f"Player not found in ledger: {player_name!r}")


class MissingReasonError(LedgerError):
    reason = FailureReason.MISSING_REASON


class ReconciliationInProgressError(LedgerError):
    """Raised when a reconciliation is started while another one is running."""

    reason = FailureReason.RECONCILIATION_IN_PROGRESS
