"""Audit records emitted by ledger operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .enums import AuditStatus

if TYPE_CHECKING:
    from .enums import AuditAction


@dataclass(eq=False)
class AuditEvent:
    """One fire-and-forget entry for the external audit log."""

    action: AuditAction
    details: str
    status: AuditStatus = AuditStatus.SUCCESS
    player_name: str | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
