"""Pure derivation of a player's balance from aggregated inputs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bpledger.domain.model import Category, PlayerBalance
from bpledger.domain.values import clamp

if TYPE_CHECKING:
    from collections.abc import Mapping


def apply_cap(historical: float, redeemed: float, cap: float) -> tuple[float, float]:
    """Return ``(current, overflow)`` for the given lifetime totals.

    The spendable balance is clamped into ``[0, cap]``; whatever the cap cuts
    off is reported as overflow instead of being discarded.
    """

    net = historical - redeemed
    return clamp(net, 0.0, cap), max(0.0, net - cap)


def derive_balance(
    name: str,
    category_points: Mapping[Category, float],
    redeemed: float,
    cap: float,
    adjustment: float = 0.0,
) -> PlayerBalance:
    """Balance of one player; ``adjustment`` is a manual correction added to the source sum."""

    points = {category: float(category_points.get(category, 0.0)) for category in Category}
    historical = sum(points.values())
    if adjustment:
        historical = max(0.0, historical + adjustment)
    current, overflow = apply_cap(historical, redeemed, cap)
    return PlayerBalance(
        name=name,
        category_points=points,
        historical=historical,
        redeemed=redeemed,
        current=current,
        overflow=overflow,
    )


def with_historical(balance: PlayerBalance, historical: float, cap: float) -> PlayerBalance:
    """Return ``balance`` with ``historical`` forced and current/overflow recomputed."""

    current, overflow = apply_cap(historical, balance.redeemed, cap)
    return PlayerBalance(
        name=balance.name,
        category_points=dict(balance.category_points),
        historical=historical,
        redeemed=balance.redeemed,
        current=current,
        overflow=overflow,
        last_updated=balance.last_updated,
    )
