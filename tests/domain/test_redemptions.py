from __future__ import annotations

from datetime import UTC, datetime

import pytest

from bpledger.domain.errors import FailureReason
from bpledger.domain.model import AuditAction, AuditStatus, RedemptionRecord
from bpledger.domain.reconciliation import ReconciliationEngine
from bpledger.domain.redemptions import RedemptionLedger, RedemptionService
from tests.helpers.ledger import (
    FixedClock,
    InMemoryTableStore,
    RecordingAuditSink,
    UnitOfWorkFactory,
    ledger_rows,
    seed_roster,
    seed_standard_sources,
    seed_table,
)


@pytest.fixture
def service(
    uow_factory: UnitOfWorkFactory,
    engine: ReconciliationEngine,
    audit: RecordingAuditSink,
    clock: FixedClock,
) -> RedemptionService:
    return RedemptionService(uow_factory, engine, audit, clock=clock)


def _record(name: str, amount: float, day: int) -> RedemptionRecord:
    return RedemptionRecord(
        timestamp=datetime(2025, 1, day, tzinfo=UTC),
        player_name=name,
        amount=amount,
        reason=f"reward {day}",
        category="store",
        event_id="",
        staff="Sam",
        row_id=f"row-{day}",
    )


def test_ledger_append_creates_table_and_totals_positive_amounts() -> None:
    store = InMemoryTableStore()
    ledger = RedemptionLedger(store, "BP_Redeemed_Log")

    ledger.append(_record("Ada", 5, 1))
    ledger.append(_record("Ada", 2.5, 2))
    ledger.append(_record("Bob", 1, 3))
    store.append_rows("BP_Redeemed_Log", [[None, "Bob", -3], [None, "Bob", "oops"]])

    assert ledger.totals() == {"Ada": 7.5, "Bob": 1.0}
    assert ledger.total_redeemed("Ada") == 7.5
    assert ledger.total_redeemed("Nobody") == 0.0


def test_ledger_history_is_newest_first() -> None:
    store = InMemoryTableStore()
    ledger = RedemptionLedger(store, "BP_Redeemed_Log")
    for day in (2, 9, 4):
        ledger.append(_record("Ada", day, day))
    ledger.append(_record("Bob", 1, 5))

    history = ledger.history("Ada")

    assert [record.row_id for record in history] == ["row-9", "row-4", "row-2"]
    assert history[0].staff == "Sam"


def test_ledger_reads_legacy_amount_header() -> None:
    store = InMemoryTableStore()
    seed_table(store, "BP_Redeemed_Log", ["Player Name", "Amount"], ["Ada", 3])

    assert RedemptionLedger(store, "BP_Redeemed_Log").totals() == {"Ada": 3.0}


def test_redeem_success_appends_and_reconciles(
    store: InMemoryTableStore,
    service: RedemptionService,
    audit: RecordingAuditSink,
    clock: FixedClock,
) -> None:
    seed_roster(store, "Ada")
    seed_standard_sources(store, attendance={"Ada": 10}, flag={"Ada": 5})

    result = service.record_redemption("Ada", 6, reason="T-shirt", category="merch")

    assert result.ok
    receipt = result.unwrap()
    assert receipt.previous_balance == 15
    assert receipt.new_balance == 9
    assert receipt.record.staff == "Unknown"
    assert receipt.record.timestamp == clock.now
    assert len(receipt.record.row_id) == 32
    ada = ledger_rows(store)["Ada"]
    assert ada["BP_Redeemed"] == 6
    assert ada["BP_Current"] == 9
    assert service.total_redeemed("Ada") == 6
    assert [record.reason for record in service.history("Ada")] == ["T-shirt"]
    assert audit.actions() == [AuditAction.REDEEM, AuditAction.SYNC]
    assert audit.events[0].status is AuditStatus.SUCCESS


def test_redeem_more_than_balance_is_rejected(
    store: InMemoryTableStore,
    service: RedemptionService,
    audit: RecordingAuditSink,
) -> None:
    seed_roster(store, "Ada")
    seed_standard_sources(store, attendance={"Ada": 10}, flag={"Ada": 5})

    result = service.record_redemption("Ada", 20)

    assert not result.ok
    assert result.reason is FailureReason.INSUFFICIENT_BALANCE
    assert "has 15 BP" in (result.message or "")
    assert store.get("BP_Redeemed_Log") is None
    assert store.get("BP_Total") is None
    assert audit.events[0].status is AuditStatus.FAILED


def test_redeem_uses_fresh_balance_not_stale_row(
    store: InMemoryTableStore,
    service: RedemptionService,
) -> None:
    seed_table(
        store,
        "BP_Total",
        ["PreferredName", "BP_Current", "BP_Historical"],
        ["Ada", 50, 50],
    )
    seed_standard_sources(store, attendance={"Ada": 5})

    result = service.record_redemption("Ada", 10)

    assert result.reason is FailureReason.INSUFFICIENT_BALANCE


@pytest.mark.parametrize("amount", [0, -5, float("nan"), float("inf"), True, "3"])
def test_redeem_rejects_invalid_amounts(
    store: InMemoryTableStore,
    service: RedemptionService,
    amount: object,
) -> None:
    seed_standard_sources(store, attendance={"Ada": 10})

    result = service.record_redemption("Ada", amount)  # type: ignore[arg-type]

    assert result.reason is FailureReason.INVALID_AMOUNT
    assert store.get("BP_Redeemed_Log") is None


def test_redeem_exact_balance_leaves_zero(
    store: InMemoryTableStore,
    service: RedemptionService,
) -> None:
    seed_standard_sources(store, dice={"Ada": 7})

    result = service.record_redemption("Ada", 7, staff="Sam")

    assert result.unwrap().new_balance == 0
    assert result.unwrap().record.staff == "Sam"


def test_redeem_against_capped_balance(
    store: InMemoryTableStore,
    service: RedemptionService,
) -> None:
    seed_standard_sources(store, attendance={"Ada": 150})

    assert service.record_redemption("Ada", 101).reason is FailureReason.INSUFFICIENT_BALANCE
    receipt = service.record_redemption("Ada", 60).unwrap()

    assert receipt.previous_balance == 100
    assert receipt.new_balance == 90
    assert ledger_rows(store)["Ada"]["BP_Overflow"] == 0
