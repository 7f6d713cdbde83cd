from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bpledger.config import LedgerConfig
from bpledger.domain.errors import ReconciliationInProgressError, RosterMissingError, SchemaInvalidError
from bpledger.domain.model import RowOutcome
from bpledger.domain.reconciliation import ReconciliationEngine
from tests.helpers.ledger import (
    FixedClock,
    InMemoryTableStore,
    ledger_rows,
    seed_points,
    seed_roster,
    seed_standard_sources,
    seed_table,
)

if TYPE_CHECKING:
    from bpledger.domain.ports import Table


def _redeem_rows(store: InMemoryTableStore, *rows: tuple[str, float]) -> None:
    seed_table(
        store,
        "BP_Redeemed_Log",
        ["Timestamp", "PreferredName", "BP_Amount"],
        *[["2025-01-01T00:00:00Z", name, amount] for name, amount in rows],
    )


def test_reconcile_all_builds_rows_from_sources(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
    clock: FixedClock,
) -> None:
    seed_roster(store, "Ada")
    seed_standard_sources(store, attendance={"Ada": 10}, flag={"Ada": 5})

    summary = engine.reconcile_all(store)

    assert summary.players == 1
    assert summary.added == 1
    ada = ledger_rows(store)["Ada"]
    assert ada["Attendance Mission Points"] == 10
    assert ada["Flag Mission Points"] == 5
    assert ada["Dice Roll Points"] == 0
    assert ada["BP_Historical"] == 15
    assert ada["BP_Redeemed"] == 0
    assert ada["BP_Current"] == 15
    assert ada["BP_Overflow"] == 0
    assert ada["LastUpdated"] == clock.now


def test_reconcile_all_is_idempotent(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
    clock: FixedClock,
) -> None:
    seed_roster(store, "Ada", "Bob")
    seed_standard_sources(store, attendance={"Ada": 10, "Bob": 2})
    _redeem_rows(store, ("Ada", 4))
    engine.reconcile_all(store)
    first = store.get("BP_Total")
    store.writes.clear()
    clock.advance(hours=1)

    summary = engine.reconcile_all(store)

    assert summary.changed == 0
    assert store.row_writes("BP_Total") == []
    assert store.get("BP_Total") == first


def test_reconcile_all_converges_after_a_source_edit(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
    clock: FixedClock,
) -> None:
    seed_roster(store, "Ada", "Bob")
    seed_standard_sources(store, attendance={"Ada": 10, "Bob": 2})
    engine.reconcile_all(store)
    stamped = ledger_rows(store)["Bob"]["LastUpdated"]
    clock.advance(minutes=5)

    seed_standard_sources(store, attendance={"Ada": 12, "Bob": 2})
    summary = engine.reconcile_all(store)

    assert summary.updated == 1
    rows = ledger_rows(store)
    assert rows["Ada"]["BP_Current"] == 12
    assert rows["Ada"]["LastUpdated"] == clock.now
    assert rows["Bob"]["LastUpdated"] == stamped


def test_reconcile_all_applies_cap_and_tracks_overflow(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_roster(store, "Ada")
    seed_standard_sources(store, attendance={"Ada": 150})

    engine.reconcile_all(store)

    ada = ledger_rows(store)["Ada"]
    assert ada["BP_Historical"] == 150
    assert ada["BP_Current"] == 100
    assert ada["BP_Overflow"] == 50


def test_reconcile_all_holds_invariants_for_every_row(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_roster(store, "Ada", "Bob", "Cy")
    seed_standard_sources(
        store,
        attendance={"Ada": 70, "Bob": 5},
        flag={"Ada": 60, "Cy": 1},
        dice={"Bob": 3},
    )
    _redeem_rows(store, ("Ada", 20), ("Bob", 30), ("Bob", 1))

    engine.reconcile_all(store)

    for row in ledger_rows(store).values():
        historical = row["BP_Historical"]
        redeemed = row["BP_Redeemed"]
        current = row["BP_Current"]
        assert isinstance(historical, float)
        assert isinstance(redeemed, float)
        assert isinstance(current, float)
        assert 0 <= current <= 100
        assert historical == (
            row["Attendance Mission Points"] + row["Flag Mission Points"] + row["Dice Roll Points"]  # type: ignore[operator]
        )
        assert current == min(100, max(0, historical - redeemed))


def test_reconcile_all_orders_roster_first_then_other_names(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_roster(store, "Zed", "Ada")
    seed_standard_sources(store, attendance={"Mia": 1, "Bea": 2})
    _redeem_rows(store, ("Cal", 1))

    summary = engine.reconcile_all(store)

    assert summary.players == 5
    assert list(ledger_rows(store)) == ["Zed", "Ada", "Bea", "Cal", "Mia"]


def test_reconcile_all_uses_secondary_roster(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_table(store, "Key_Tracker", ["Player", "Key"], ["Ada", "k1"], ["Ada", "k2"])

    summary = engine.reconcile_all(store)

    assert summary.players == 1
    assert list(ledger_rows(store)) == ["Ada"]


def test_reconcile_all_without_roster_fails_and_writes_nothing(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_standard_sources(store, attendance={"Ada": 1})
    store.writes.clear()

    with pytest.raises(RosterMissingError):
        engine.reconcile_all(store)

    assert store.writes == []
    assert not engine.running


def test_reconcile_all_schema_error_in_source_writes_nothing(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_roster(store, "Ada")
    seed_table(store, "Dice Roll Points", ["PreferredName", "Roll"], ["Ada", 3])
    store.writes.clear()

    with pytest.raises(SchemaInvalidError):
        engine.reconcile_all(store)

    assert store.writes == []


def test_reconcile_all_keeps_existing_rows_of_players_no_longer_in_sources(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_roster(store)
    seed_standard_sources(store, attendance={"Ada": 5})
    engine.reconcile_all(store)

    seed_standard_sources(store, attendance={})
    engine.reconcile_all(store)

    ada = ledger_rows(store)["Ada"]
    assert ada["BP_Historical"] == 0
    assert ada["BP_Current"] == 0


def test_reconcile_all_preserves_legacy_columns(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_roster(store, "Ada")
    seed_table(
        store,
        "BP_Total",
        ["preferred_name_id", "Current_BP", "Comment"],
        ["Ada", 0, "founding member"],
    )
    seed_standard_sources(store, attendance={"Ada": 3})

    engine.reconcile_all(store)

    table = store.get("BP_Total")
    assert table is not None
    assert table.headers[:3] == ("preferred_name_id", "Current_BP", "Comment")
    row = dict(zip(table.headers, table.padded_row(0), strict=True))
    assert row["Current_BP"] == 3
    assert row["Comment"] == "founding member"
    assert len(table.rows) == 1


def test_reconcile_one_updates_only_that_player(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_roster(store, "Ada", "Bob")
    seed_standard_sources(store, attendance={"Ada": 1, "Bob": 1})
    engine.reconcile_all(store)
    seed_standard_sources(store, attendance={"Ada": 4, "Bob": 9})

    outcome = engine.reconcile_one(store, " Ada ")

    assert outcome is RowOutcome.UPDATED
    rows = ledger_rows(store)
    assert rows["Ada"]["BP_Current"] == 4
    assert rows["Bob"]["BP_Current"] == 1
    assert engine.reconcile_one(store, "Ada") is RowOutcome.UNCHANGED


def test_reconcile_one_creates_row_for_known_player_only(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_points(store, "Dice_Points", "Dice Points", ("Ada", 2))

    assert engine.reconcile_one(store, "Ada") is RowOutcome.UPDATED
    assert engine.reconcile_one(store, "Ghost") is RowOutcome.UNCHANGED
    assert list(ledger_rows(store)) == ["Ada"]


def test_reconcile_one_rejects_blank_name(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    with pytest.raises(ValueError, match="name"):
        engine.reconcile_one(store, "  ")


def test_snapshot_derives_without_writing(
    store: InMemoryTableStore,
    engine: ReconciliationEngine,
) -> None:
    seed_standard_sources(store, attendance={"Ada": 30})
    _redeem_rows(store, ("Ada", 10))
    store.writes.clear()

    balance = engine.snapshot(store, "Ada")

    assert balance.current == 20
    assert balance.redeemed == 10
    assert store.writes == []


def test_reentrant_reconciliation_is_rejected(clock: FixedClock) -> None:
    engine = ReconciliationEngine(LedgerConfig(), clock=clock)
    inner_errors: list[Exception] = []

    class ReentrantStore(InMemoryTableStore):
        def get(self, name: str) -> Table | None:
            if name == "Attendance_Missions" and not inner_errors:
                try:
                    engine.reconcile_one(self, "Ada")
                except ReconciliationInProgressError as exc:
                    inner_errors.append(exc)
            return super().get(name)

    store = ReentrantStore()
    seed_roster(store, "Ada")

    engine.reconcile_all(store)

    assert len(inner_errors) == 1
    assert not engine.running
