"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_float, optional_env_str
from .errors import ConfigurationError
from .ledger import (
    DEFAULT_CAP,
    DEFAULT_SOURCES,
    LedgerConfig,
    SourceConfig,
    get_ledger_config,
)
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_CAP",
    "DEFAULT_SOURCES",
    "ConfigurationError",
    "DatabaseConfig",
    "LedgerConfig",
    "SourceConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_ledger_config",
    "get_storage_config",
    "optional_env_float",
    "optional_env_str",
]
