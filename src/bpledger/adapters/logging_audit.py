"""Audit sink that writes events to the logging tree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bpledger.domain.model import AuditStatus

if TYPE_CHECKING:
    from bpledger.domain.model import AuditEvent


class LoggingAuditSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or logging.getLogger("bpledger.audit")

    def __call__(self, event: AuditEvent) -> None:
        level = logging.INFO if event.status is AuditStatus.SUCCESS else logging.WARNING
        self._log.log(
            level,
            "%s %s player=%s: %s",
            event.action,
            event.status,
            event.player_name or "-",
            event.details,
        )
