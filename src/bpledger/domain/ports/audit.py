"""Ports for the audit trail."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bpledger.domain.model import AuditEvent


@runtime_checkable
class AuditSink(Protocol):
    """One-way, fire-and-forget consumer of audit events."""

    def __call__(self, event: AuditEvent) -> None: ...


@runtime_checkable
class AuditLogRepository(Protocol):
    """Persistence contract for stored audit events."""

    def add(self, event: AuditEvent) -> None: ...

    def recent(self, limit: int = 50) -> list[AuditEvent]: ...
