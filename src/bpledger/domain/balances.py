"""Balance queries and manual historical adjustments."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from bpledger.domain.audit import emit_audit
from bpledger.domain.clock import utcnow
from bpledger.domain.errors import (
    InvalidAmountError,
    LedgerError,
    MissingReasonError,
    PlayerNotFoundError,
)
from bpledger.domain.model import (
    Adjustment,
    AuditAction,
    AuditStatus,
    BalanceBreakdown,
    LedgerStats,
    PlayerBalance,
)
from bpledger.domain.reconciliation import LedgerTable, with_historical
from bpledger.domain.results import OperationResult
from bpledger.domain.values import normalize_name

if TYPE_CHECKING:
    from collections.abc import Callable

    from bpledger.domain.clock import Clock
    from bpledger.domain.ports import AuditSink, LedgerUnitOfWork
    from bpledger.domain.reconciliation import ReconciliationEngine, ReconciliationService

log = logging.getLogger(__name__)


class BalanceFacade:
    """Read access to reconciled balances plus the adjustment path.

    Queries read the ledger table as stored and never fail for unknown players.
    Adjustments override ``historical`` directly. Single-player reconciliations
    keep the correction on top of the source sum; the next full reconciliation
    derives historical from the sources alone again.
    """

    def __init__(
        self,
        unit_of_work_factory: Callable[[], LedgerUnitOfWork],
        engine: ReconciliationEngine,
        reconciliation: ReconciliationService | None = None,
        audit: AuditSink | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._engine = engine
        self._reconciliation = reconciliation
        self._audit = audit
        self._clock = clock

    def _ledger_name(self) -> str:
        return self._engine.config.ledger_table

    def _stored_balance(self, name: str) -> PlayerBalance | None:
        with self._uow_factory() as uow:
            state = LedgerTable(uow.repositories.tables, self._ledger_name()).load()
        row = state.get(name)
        return row.balance if row is not None else None

    def get_breakdown(self, name: str, *, refresh: bool = False) -> BalanceBreakdown:
        player = normalize_name(name)
        if not player:
            return BalanceBreakdown()
        if refresh and self._reconciliation is not None:
            self._reconciliation.reconcile_player(player)
        balance = self._stored_balance(player)
        if balance is None:
            return BalanceBreakdown()
        return BalanceBreakdown.from_balance(balance)

    def get_balance(self, name: str, *, refresh: bool = False) -> float:
        return self.get_breakdown(name, refresh=refresh).current

    def overflow(self, name: str) -> float:
        return self.get_breakdown(name).overflow

    def adjust_historical(self, name: str, delta: float, reason: str) -> OperationResult[Adjustment]:
        player = normalize_name(name)
        try:
            adjustment = self._adjust(player, delta, reason)
        except LedgerError as exc:
            log.info("Adjustment for %r rejected: %s", player, exc)
            emit_audit(
                self._audit,
                AuditAction.ADJUST,
                f"Adjustment of {delta!r} BP failed: {exc}",
                status=AuditStatus.FAILED,
                player_name=player or None,
                clock=self._clock,
            )
            return OperationResult.failure(exc)

        emit_audit(
            self._audit,
            AuditAction.ADJUST,
            f"Historical {adjustment.previous_historical:g} -> {adjustment.new_historical:g} "
            f"({delta:+g}): {reason.strip()}",
            player_name=player,
            clock=self._clock,
        )
        return OperationResult.success(adjustment)

    def _adjust(self, player: str, delta: float, reason: str) -> Adjustment:
        if isinstance(delta, bool) or not isinstance(delta, int | float):
            raise InvalidAmountError(f"Adjustment must be a number, got {delta!r}")
        if not math.isfinite(delta) or delta == 0:
            raise InvalidAmountError(f"Adjustment must be a non-zero number, got {delta!r}")
        if not reason or not reason.strip():
            raise MissingReasonError("A reason is required for manual adjustments")

        cap = self._engine.config.cap
        with self._uow_factory() as uow:
            ledger = LedgerTable(uow.repositories.tables, self._ledger_name())
            ledger.ensure()
            state = ledger.load()
            row = state.get(player)
            if row is None:
                raise PlayerNotFoundError(player)

            previous = row.balance.historical
            adjusted = with_historical(row.balance, max(0.0, previous + delta), cap)
            ledger.overwrite(state, row, adjusted, self._clock())
            uow.commit()

        log.info("Adjusted historical of %r by %+g", player, delta)
        return Adjustment(
            previous_historical=previous,
            new_historical=adjusted.historical,
            new_current=adjusted.current,
        )

    def stats(self) -> LedgerStats:
        with self._uow_factory() as uow:
            state = LedgerTable(uow.repositories.tables, self._ledger_name()).load()
        balances = [row.balance for row in state]
        if not balances:
            return LedgerStats()
        total_current = sum(balance.current for balance in balances)
        return LedgerStats(
            player_count=len(balances),
            total_current=total_current,
            total_historical=sum(balance.historical for balance in balances),
            total_redeemed=sum(balance.redeemed for balance in balances),
            total_overflow=sum(balance.overflow for balance in balances),
            average_current=round(total_current / len(balances), 1),
        )
