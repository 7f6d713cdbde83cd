"""Fire-and-forget emission of audit events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bpledger.domain.clock import utcnow
from bpledger.domain.model import AuditEvent, AuditStatus

if TYPE_CHECKING:
    from bpledger.domain.clock import Clock
    from bpledger.domain.model import AuditAction
    from bpledger.domain.ports.audit import AuditSink

log = logging.getLogger(__name__)


def emit_audit(
    sink: AuditSink | None,
    action: AuditAction,
    details: str,
    *,
    status: AuditStatus = AuditStatus.SUCCESS,
    player_name: str | None = None,
    clock: Clock = utcnow,
) -> None:
    """Hand an event to ``sink``; a failing sink never interrupts the caller."""

    if sink is None:
        return
    event = AuditEvent(
        action=action,
        details=details,
        status=status,
        player_name=player_name,
        occurred_at=clock(),
    )
    try:
        sink(event)
    except Exception:  # noqa: BLE001
        log.warning("Audit sink failed for %s (%s)", action, status, exc_info=True)


class FanOutAuditSink:
    """Forwards each event to several sinks; one failing sink does not starve the others."""

    def __init__(self, *sinks: AuditSink) -> None:
        self._sinks = sinks

    def __call__(self, event: AuditEvent) -> None:
        for sink in self._sinks:
            try:
                sink(event)
            except Exception:  # noqa: BLE001
                log.warning("Audit sink %r failed for %s", sink, event.action, exc_info=True)
