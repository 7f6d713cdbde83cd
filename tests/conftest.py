from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from bpledger.adapters.sqlalchemy import start_mappers
from bpledger.adapters.sqlalchemy.migrations import upgrade_head
from bpledger.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    shutdown,
    startup,
)
from bpledger.config import LedgerConfig
from bpledger.domain.reconciliation import ReconciliationEngine
from tests.helpers.ledger import (
    FixedClock,
    InMemoryTableStore,
    RecordingAuditSink,
    UnitOfWorkFactory,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def ledger_config() -> LedgerConfig:
    return LedgerConfig()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryTableStore:
    return InMemoryTableStore()


@pytest.fixture
def uow_factory(store: InMemoryTableStore) -> UnitOfWorkFactory:
    return UnitOfWorkFactory(store)


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def engine(ledger_config: LedgerConfig, clock: FixedClock) -> ReconciliationEngine:
    return ReconciliationEngine(ledger_config, clock=clock)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyLedgerUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyLedgerUnitOfWork:
        return SqlAlchemyLedgerUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
