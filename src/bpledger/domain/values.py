"""Coercion of raw table cells into names, points and timestamps."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bpledger.domain.ports.tables import Cell


def normalize_name(value: Cell) -> str:
    """Trimmed, case-sensitive player identity; empty string for blanks."""

    if value is None:
        return ""
    return str(value).strip()


def coerce_number(value: Cell, default: float = 0.0) -> float:
    """Return ``value`` as a finite float, or ``default`` when it is not numeric."""

    if value is None or isinstance(value, datetime):
        return default
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    return number if math.isfinite(number) else default


def is_numeric_cell(value: Cell) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def coerce_timestamp(value: Cell) -> datetime | None:
    """Parse a timestamp cell into an aware UTC datetime."""

    if isinstance(value, datetime):
        return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value.strip():
        return None
    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    return parsed.astimezone(UTC) if parsed.tzinfo else parsed.replace(tzinfo=UTC)
