"""Errors raised while building the ledger configuration."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a configured value (cap, source mapping, env override) is unusable."""
