"""Immutable redemption transactions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class RedemptionRecord:
    """One row of the append-only redemption log."""

    timestamp: datetime
    player_name: str
    amount: float
    reason: str
    category: str
    event_id: str
    staff: str
    row_id: str


@dataclass(frozen=True, slots=True)
class RedemptionReceipt:
    """Outcome of a successful redemption."""

    record: RedemptionRecord
    previous_balance: float
    new_balance: float
