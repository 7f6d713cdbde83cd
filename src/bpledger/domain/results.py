"""Explicit result values for player-facing operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import FailureReason, LedgerError


@dataclass(frozen=True, slots=True)
class OperationResult[T]:
    """Success value or structured failure; never raised past the service boundary."""

    value: T | None = None
    reason: FailureReason | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> OperationResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: LedgerError) -> OperationResult[T]:
        return cls(reason=error.reason, message=str(error))

    def unwrap(self) -> T:
        if self.reason is not None or self.value is None:
            raise ValueError(f"Operation failed: {self.reason} {self.message or ''}".strip())
        return self.value
