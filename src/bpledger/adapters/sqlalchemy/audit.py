"""Audit sink persisting events to the ``audit_log`` table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bpledger.adapters.sqlalchemy.unit_of_work import SqlAlchemyLedgerUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Callable

    from bpledger.domain.model import AuditEvent
    from bpledger.domain.ports import LedgerUnitOfWork


class SqlAlchemyAuditSink:
    """Writes each event in its own unit of work.

    Events are stored after the operation they describe has committed, so a
    failing audit write never rolls back ledger changes.
    """

    def __init__(
        self,
        unit_of_work_factory: Callable[[], LedgerUnitOfWork] = SqlAlchemyLedgerUnitOfWork,
    ) -> None:
        self._uow_factory = unit_of_work_factory

    def __call__(self, event: AuditEvent) -> None:
        with self._uow_factory() as uow:
            audit_log = uow.repositories.audit_log
            if audit_log is None:
                raise RuntimeError("Unit of work has no audit log repository")
            audit_log.add(event)
            uow.commit()
