"""Reconciliation of the ledger table against sources and the redemption log."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from bpledger.domain.aggregation import aggregate_all
from bpledger.domain.clock import utcnow
from bpledger.domain.errors import ReconciliationInProgressError, RosterMissingError
from bpledger.domain.model import RowOutcome
from bpledger.domain.redemptions import RedemptionLedger
from bpledger.domain.schema import NAME_ALIASES, find_column
from bpledger.domain.values import normalize_name

from .derive import derive_balance
from .ledger_table import LedgerTable, plan_writes

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bpledger.config import LedgerConfig
    from bpledger.domain.aggregation import SourceTotals
    from bpledger.domain.clock import Clock
    from bpledger.domain.model import PlayerBalance
    from bpledger.domain.ports import Table, TableStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcileSummary:
    """Outcome of a full reconciliation pass."""

    players: int
    updated: int = 0
    added: int = 0

    @property
    def changed(self) -> int:
        return self.updated + self.added


@dataclass(frozen=True, slots=True)
class _Inputs:
    sources: SourceTotals
    redeemed: dict[str, float]


class ReconciliationEngine:
    """Derives every ledger row from its inputs and writes only what differs.

    All tables are read before anything is written, and each pass issues at
    most one batch of row updates plus one batch of appends.
    """

    def __init__(self, config: LedgerConfig, *, clock: Clock = utcnow) -> None:
        self.config = config
        self._clock = clock
        self._running = False

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self._running:
            raise ReconciliationInProgressError("A reconciliation is already running")
        self._running = True
        try:
            yield
        finally:
            self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def load_roster(self, store: TableStore) -> list[str]:
        """Player names of the first roster table that exists, in table order."""

        for table_name in self.config.roster_tables:
            table = store.get(table_name)
            if table is not None:
                return _roster_names(table)
        raise RosterMissingError(self.config.roster_tables)

    def _read_inputs(self, store: TableStore) -> _Inputs:
        return _Inputs(
            sources=aggregate_all(self.config, store),
            redeemed=RedemptionLedger(store, self.config.redemption_table).totals(),
        )

    def _derive(self, name: str, inputs: _Inputs, adjustment: float = 0.0) -> PlayerBalance:
        return derive_balance(
            name,
            inputs.sources.points(name),
            inputs.redeemed.get(name, 0.0),
            self.config.cap,
            adjustment,
        )

    def snapshot(self, store: TableStore, name: str) -> PlayerBalance:
        """Balance ``reconcile_one`` would write for ``name``; nothing is written.

        A manual adjustment held by the stored row is carried over.
        """

        player = normalize_name(name)
        inputs = self._read_inputs(store)
        stored = LedgerTable(store, self.config.ledger_table).load().get(player)
        if stored is None:
            return self._derive(player, inputs)
        balance = self._derive(player, inputs, stored.adjustment)
        return replace(balance, last_updated=stored.balance.last_updated)

    def reconcile_all(self, store: TableStore) -> ReconcileSummary:
        with self._exclusive():
            roster = self.load_roster(store)
            inputs = self._read_inputs(store)
            ledger = LedgerTable(store, self.config.ledger_table)
            ledger.ensure()
            state = ledger.load()

            known = set(roster)
            others = (inputs.sources.names() | set(inputs.redeemed) | set(state.rows)) - known
            players = [*roster, *sorted(others)]

            plan = plan_writes(state, (self._derive(name, inputs) for name in players), self._clock())
            ledger.apply(plan)

        summary = ReconcileSummary(
            players=len(players),
            updated=len(plan.updated),
            added=len(plan.added),
        )
        log.info(
            "Reconciled %s players: %s updated, %s added",
            summary.players,
            summary.updated,
            summary.added,
        )
        return summary

    def reconcile_one(self, store: TableStore, name: str) -> RowOutcome:
        """Reconcile a single player, keeping any manual adjustment on its row.

        Only ``reconcile_all`` resets historical to the plain source sum.
        """

        player = normalize_name(name)
        if not player:
            raise ValueError("A player name is required")

        with self._exclusive():
            inputs = self._read_inputs(store)
            ledger = LedgerTable(store, self.config.ledger_table)
            ledger.ensure()
            state = ledger.load()

            stored = state.get(player)
            if stored is None and not self._is_known(store, player, inputs):
                log.debug("Skipping unknown player %r", player)
                return RowOutcome.UNCHANGED

            adjustment = stored.adjustment if stored is not None else 0.0
            plan = plan_writes(state, [self._derive(player, inputs, adjustment)], self._clock())
            ledger.apply(plan)

        if plan.is_empty:
            return RowOutcome.UNCHANGED
        log.info("Reconciled %r", player)
        return RowOutcome.UPDATED

    def _is_known(self, store: TableStore, name: str, inputs: _Inputs) -> bool:
        if name in inputs.redeemed or name in inputs.sources.names():
            return True
        try:
            return name in self.load_roster(store)
        except RosterMissingError:
            return False


def _roster_names(table: Table) -> list[str]:
    name_col = find_column(table.headers, NAME_ALIASES)
    if name_col is None:
        name_col = 0
    names: list[str] = []
    seen: set[str] = set()
    for index in range(len(table.rows)):
        name = normalize_name(table.cell(index, name_col))
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names

