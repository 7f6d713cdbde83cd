"""Append-only redemption log and the redemption use case."""

from __future__ import annotations

import logging
import math
import uuid
from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from bpledger.domain.audit import emit_audit
from bpledger.domain.clock import utcnow
from bpledger.domain.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    LedgerError,
    PlayerNotFoundError,
)
from bpledger.domain.model import (
    AuditAction,
    AuditStatus,
    RedemptionReceipt,
    RedemptionRecord,
    RowOutcome,
)
from bpledger.domain.results import OperationResult
from bpledger.domain.schema import (
    RedemptionColumn,
    ensure_schema,
    redemption_log_schema,
    resolve_columns,
)
from bpledger.domain.values import coerce_number, coerce_timestamp, normalize_name

if TYPE_CHECKING:
    from collections.abc import Callable

    from bpledger.domain.clock import Clock
    from bpledger.domain.ports import AuditSink, Cell, LedgerUnitOfWork, TableStore
    from bpledger.domain.reconciliation.engine import ReconciliationEngine

log = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=UTC)


class RedemptionLedger:
    """Redemption records stored in one table of a store.

    Records are only ever appended. Rows whose amount is not a positive number
    are kept in the table but do not count towards any total.
    """

    def __init__(self, store: TableStore, table_name: str) -> None:
        self._store = store
        self.schema = redemption_log_schema(table_name)

    @property
    def name(self) -> str:
        return self.schema.name

    def ensure(self) -> None:
        ensure_schema(self._store, self.schema)

    def append(self, record: RedemptionRecord) -> None:
        columns = ensure_schema(self._store, self.schema)
        table = self._store.get(self.name)
        width = len(table.headers) if table is not None else len(self.schema.headers)
        row: list[Cell] = [None] * width
        row[columns[RedemptionColumn.TIMESTAMP]] = record.timestamp
        row[columns[RedemptionColumn.NAME]] = record.player_name
        row[columns[RedemptionColumn.AMOUNT]] = record.amount
        row[columns[RedemptionColumn.REASON]] = record.reason
        row[columns[RedemptionColumn.CATEGORY]] = record.category
        row[columns[RedemptionColumn.EVENT_ID]] = record.event_id
        row[columns[RedemptionColumn.STAFF]] = record.staff
        row[columns[RedemptionColumn.ROW_ID]] = record.row_id
        self._store.append_rows(self.name, [row])

    def records(self) -> list[RedemptionRecord]:
        table = self._store.get(self.name)
        if table is None or not table.rows:
            return []
        columns = resolve_columns(table.headers, self.schema)
        columns.require(RedemptionColumn.NAME, RedemptionColumn.AMOUNT)

        def text(index: int, column: str) -> str:
            position = columns.get(column)
            return normalize_name(table.cell(index, position)) if position is not None else ""

        records: list[RedemptionRecord] = []
        for index in range(len(table.rows)):
            name = text(index, RedemptionColumn.NAME)
            if not name:
                continue
            timestamp_col = columns.get(RedemptionColumn.TIMESTAMP)
            timestamp = (
                coerce_timestamp(table.cell(index, timestamp_col)) if timestamp_col is not None else None
            )
            records.append(
                RedemptionRecord(
                    timestamp=timestamp or _OLDEST,
                    player_name=name,
                    amount=coerce_number(table.cell(index, columns[RedemptionColumn.AMOUNT])),
                    reason=text(index, RedemptionColumn.REASON),
                    category=text(index, RedemptionColumn.CATEGORY),
                    event_id=text(index, RedemptionColumn.EVENT_ID),
                    staff=text(index, RedemptionColumn.STAFF),
                    row_id=text(index, RedemptionColumn.ROW_ID),
                )
            )
        return records

    def totals(self) -> dict[str, float]:
        """Sum of positive amounts per player."""

        totals: defaultdict[str, float] = defaultdict(float)
        for record in self.records():
            if record.amount > 0:
                totals[record.player_name] += record.amount
        return dict(totals)

    def total_redeemed(self, name: str) -> float:
        return self.totals().get(normalize_name(name), 0.0)

    def history(self, name: str) -> list[RedemptionRecord]:
        """Records of one player, newest first."""

        wanted = normalize_name(name)
        matching = [record for record in self.records() if record.player_name == wanted]
        return sorted(matching, key=lambda record: record.timestamp, reverse=True)


def validate_amount(amount: object) -> float:
    if isinstance(amount, bool) or not isinstance(amount, int | float):
        raise InvalidAmountError(f"Amount must be a number, got {amount!r}")
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmountError(f"Amount must be a positive number, got {amount!r}")
    return float(amount)


class RedemptionService:
    """Records redemptions against the reconciled balance."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], LedgerUnitOfWork],
        engine: ReconciliationEngine,
        audit: AuditSink | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._engine = engine
        self._audit = audit
        self._clock = clock

    def record_redemption(
        self,
        name: str,
        amount: float,
        *,
        reason: str = "",
        category: str = "",
        event_id: str = "",
        staff: str | None = None,
    ) -> OperationResult[RedemptionReceipt]:
        player = normalize_name(name)
        try:
            receipt, outcome = self._redeem(player, amount, reason, category, event_id, staff)
        except LedgerError as exc:
            log.info("Redemption for %r rejected: %s", player, exc)
            emit_audit(
                self._audit,
                AuditAction.REDEEM,
                f"Redemption of {amount!r} BP failed: {exc}",
                status=AuditStatus.FAILED,
                player_name=player or None,
                clock=self._clock,
            )
            return OperationResult.failure(exc)

        emit_audit(
            self._audit,
            AuditAction.REDEEM,
            f"Redeemed {receipt.record.amount:g} BP ({receipt.record.reason or 'no reason'}). "
            f"Balance {receipt.previous_balance:g} -> {receipt.new_balance:g}",
            player_name=player,
            clock=self._clock,
        )
        if outcome is RowOutcome.UPDATED:
            emit_audit(
                self._audit,
                AuditAction.SYNC,
                f"Updated {player}",
                player_name=player,
                clock=self._clock,
            )
        return OperationResult.success(receipt)

    def _redeem(
        self,
        player: str,
        amount: float,
        reason: str,
        category: str,
        event_id: str,
        staff: str | None,
    ) -> tuple[RedemptionReceipt, RowOutcome]:
        value = validate_amount(amount)
        if not player:
            raise PlayerNotFoundError(player)

        config = self._engine.config
        with self._uow_factory() as uow:
            store = uow.repositories.tables
            before = self._engine.snapshot(store, player)
            if value > before.current:
                raise InsufficientBalanceError(player, before.current, value)

            record = RedemptionRecord(
                timestamp=self._clock(),
                player_name=player,
                amount=value,
                reason=reason.strip(),
                category=category.strip(),
                event_id=event_id.strip(),
                staff=(staff or "").strip() or config.default_staff,
                row_id=uuid.uuid4().hex,
            )
            RedemptionLedger(store, config.redemption_table).append(record)
            outcome = self._engine.reconcile_one(store, player)
            after = self._engine.snapshot(store, player)
            uow.commit()

        receipt = RedemptionReceipt(
            record=record,
            previous_balance=before.current,
            new_balance=after.current,
        )
        return receipt, outcome

    def total_redeemed(self, name: str) -> float:
        with self._uow_factory() as uow:
            ledger = RedemptionLedger(uow.repositories.tables, self._engine.config.redemption_table)
            return ledger.total_redeemed(name)

    def history(self, name: str) -> list[RedemptionRecord]:
        with self._uow_factory() as uow:
            ledger = RedemptionLedger(uow.repositories.tables, self._engine.config.redemption_table)
            return ledger.history(name)
