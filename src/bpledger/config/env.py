"""Environment variable loaders for configuration."""

from __future__ import annotations

import math
import os

from .errors import ConfigurationError


def optional_env_str(name: str, default: str) -> str:
    """Return a stripped environment variable, falling back when unset or blank."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def optional_env_float(name: str, default: float) -> float:
    """Return a numeric environment variable or ``default`` when unset or blank."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {raw!r}")
    return value
