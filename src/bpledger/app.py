"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from bpledger.adapters.logging_audit import LoggingAuditSink
from bpledger.adapters.sqlalchemy import (
    SqlAlchemyAuditSink,
    SqlAlchemyLedgerUnitOfWork,
    is_started,
    startup,
)
from bpledger.adapters.workbook import import_workbook, load_workbook
from bpledger.config import get_ledger_config
from bpledger.domain.audit import FanOutAuditSink, emit_audit
from bpledger.domain.balances import BalanceFacade
from bpledger.domain.clock import utcnow
from bpledger.domain.model import AuditAction, AuditStatus
from bpledger.domain.ports.unit_of_work import LedgerUnitOfWork
from bpledger.domain.reconciliation import ReconciliationEngine, ReconciliationService
from bpledger.domain.redemptions import RedemptionService
from bpledger.domain.validation import TableCheck, validate_tables

if TYPE_CHECKING:
    from pathlib import Path

    from bpledger.config import LedgerConfig
    from bpledger.domain.clock import Clock
    from bpledger.domain.ports import AuditSink

UnitOfWorkFactory = Callable[[], LedgerUnitOfWork]

log = getLogger(__name__)


@dataclass(slots=True)
class LedgerServices:
    """Services sharing one engine, unit-of-work factory and audit sink."""

    engine: ReconciliationEngine
    reconciliation: ReconciliationService
    redemptions: RedemptionService
    balances: BalanceFacade
    unit_of_work_factory: UnitOfWorkFactory
    audit: AuditSink | None = None

    @property
    def config(self) -> LedgerConfig:
        return self.engine.config


def build_services(
    *,
    config: LedgerConfig | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    audit: AuditSink | None = None,
    clock: Clock = utcnow,
) -> LedgerServices:
    """Wire the ledger services, defaulting to the SQLAlchemy adapters."""

    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyLedgerUnitOfWork
        if audit is None:
            audit = FanOutAuditSink(SqlAlchemyAuditSink(unit_of_work_factory), LoggingAuditSink())
    elif audit is None:
        audit = LoggingAuditSink()

    engine = ReconciliationEngine(config or get_ledger_config(), clock=clock)
    reconciliation = ReconciliationService(unit_of_work_factory, engine, audit, clock=clock)
    return LedgerServices(
        engine=engine,
        reconciliation=reconciliation,
        redemptions=RedemptionService(unit_of_work_factory, engine, audit, clock=clock),
        balances=BalanceFacade(unit_of_work_factory, engine, reconciliation, audit, clock=clock),
        unit_of_work_factory=unit_of_work_factory,
        audit=audit,
    )


def import_workbook_file(services: LedgerServices, path: Path) -> list[str]:
    """Load the sheets of a JSON workbook export into the store."""

    payload = load_workbook(path)
    try:
        with services.unit_of_work_factory() as uow:
            imported = import_workbook(uow.repositories.tables, payload)
            uow.commit()
    except Exception as exc:
        emit_audit(
            services.audit,
            AuditAction.IMPORT,
            f"Import of {path.name} failed: {exc}",
            status=AuditStatus.FAILED,
        )
        raise

    emit_audit(services.audit, AuditAction.IMPORT, f"Imported {', '.join(imported) or 'nothing'}")
    log.info("Finished workbook import: sheets=%s, source=%s", len(imported), path)
    return imported


def check_tables(services: LedgerServices) -> list[TableCheck]:
    with services.unit_of_work_factory() as uow:
        return validate_tables(uow.repositories.tables, services.config)
