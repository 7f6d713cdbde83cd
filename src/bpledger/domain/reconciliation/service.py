"""Application service running reconciliations inside a unit of work."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bpledger.domain.audit import emit_audit
from bpledger.domain.clock import utcnow
from bpledger.domain.model import AuditAction, AuditStatus, RowOutcome
from bpledger.domain.schema import NAME_ALIASES, find_column
from bpledger.domain.values import normalize_name

if TYPE_CHECKING:
    from collections.abc import Callable

    from bpledger.domain.clock import Clock
    from bpledger.domain.ports import AuditSink, LedgerUnitOfWork

    from .engine import ReconcileSummary, ReconciliationEngine

log = logging.getLogger(__name__)


class ReconciliationService:
    def __init__(
        self,
        unit_of_work_factory: Callable[[], LedgerUnitOfWork],
        engine: ReconciliationEngine,
        audit: AuditSink | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self.engine = engine
        self._audit = audit
        self._clock = clock

    def reconcile_all(self) -> ReconcileSummary:
        """Reconcile every known player and commit the result."""

        try:
            with self._uow_factory() as uow:
                summary = self.engine.reconcile_all(uow.repositories.tables)
                uow.commit()
        except Exception as exc:
            log.exception("Full reconciliation failed")
            self._emit(f"Sync failed: {exc}", status=AuditStatus.FAILED)
            raise

        if summary.changed:
            self._emit(f"Updated {summary.updated} existing, added {summary.added} new players")
        return summary

    def reconcile_player(self, name: str) -> RowOutcome:
        player = normalize_name(name)
        try:
            with self._uow_factory() as uow:
                outcome = self.engine.reconcile_one(uow.repositories.tables, player)
                uow.commit()
        except Exception as exc:
            log.exception("Reconciliation of %r failed", player)
            self._emit(f"Sync failed: {exc}", status=AuditStatus.FAILED, player_name=player or None)
            raise

        if outcome is RowOutcome.UPDATED:
            self._emit(f"Updated {player}", player_name=player)
        return outcome

    def on_source_row_changed(self, table_name: str, row_index: int) -> RowOutcome | None:
        """Reconcile the player named on a freshly edited row.

        Only source tables and the redemption log trigger anything. Returns
        ``None`` when the edit is ignored.
        """

        config = self.engine.config
        if table_name not in (*config.source_tables, config.redemption_table):
            return None

        with self._uow_factory() as uow:
            table = uow.repositories.tables.get(table_name)
        if table is None or not 0 <= row_index < len(table.rows):
            return None

        name_col = find_column(table.headers, NAME_ALIASES)
        name = normalize_name(table.cell(row_index, name_col if name_col is not None else 0))
        if not name:
            return None
        log.debug("Row %s of %s changed, reconciling %r", row_index, table_name, name)
        return self.reconcile_player(name)

    def _emit(
        self,
        details: str,
        *,
        status: AuditStatus = AuditStatus.SUCCESS,
        player_name: str | None = None,
    ) -> None:
        emit_audit(
            self._audit,
            AuditAction.SYNC,
            details,
            status=status,
            player_name=player_name,
            clock=self._clock,
        )
