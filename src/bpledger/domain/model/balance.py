"""Per-player balances derived from the sources and the redemption log."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import Category

if TYPE_CHECKING:
    from datetime import datetime


def _zero_points() -> dict[Category, float]:
    return dict.fromkeys(Category, 0.0)


@dataclass(frozen=True, slots=True)
class PlayerBalance:
    """Reconciled balance of a single player.

    ``current`` is always ``historical - redeemed`` clamped into ``[0, cap]`` and
    ``overflow`` holds the part of that difference the cap cut off.
    """

    name: str
    category_points: dict[Category, float] = field(default_factory=_zero_points)
    historical: float = 0.0
    redeemed: float = 0.0
    current: float = 0.0
    overflow: float = 0.0
    last_updated: datetime | None = None

    def points(self, category: Category) -> float:
        return self.category_points.get(category, 0.0)

    @property
    def attendance(self) -> float:
        return self.points(Category.ATTENDANCE)

    @property
    def flag(self) -> float:
        return self.points(Category.FLAG)

    @property
    def dice(self) -> float:
        return self.points(Category.DICE)


@dataclass(frozen=True, slots=True)
class BalanceBreakdown:
    """Read model returned by balance queries."""

    current: float = 0.0
    attendance: float = 0.0
    flag: float = 0.0
    dice: float = 0.0
    historical: float = 0.0
    redeemed: float = 0.0
    overflow: float = 0.0
    last_updated: datetime | None = None

    @classmethod
    def from_balance(cls, balance: PlayerBalance) -> BalanceBreakdown:
        return cls(
            current=balance.current,
            attendance=balance.attendance,
            flag=balance.flag,
            dice=balance.dice,
            historical=balance.historical,
            redeemed=balance.redeemed,
            overflow=balance.overflow,
            last_updated=balance.last_updated,
        )


@dataclass(frozen=True, slots=True)
class Adjustment:
    """Outcome of a manual historical correction."""

    previous_historical: float
    new_historical: float
    new_current: float


@dataclass(frozen=True, slots=True)
class LedgerStats:
    player_count: int = 0
    total_current: float = 0.0
    total_historical: float = 0.0
    total_redeemed: float = 0.0
    total_overflow: float = 0.0
    average_current: float = 0.0
