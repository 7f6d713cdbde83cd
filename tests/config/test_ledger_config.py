from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bpledger.config import (
    ConfigurationError,
    LedgerConfig,
    get_database_config,
    get_ledger_config,
)
from bpledger.config.ledger import DICE_SOURCE, FLAG_SOURCE
from bpledger.domain.model import Category

if TYPE_CHECKING:
    from pathlib import Path


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BP_GLOBAL_CAP", raising=False)
    monkeypatch.delenv("BPLEDGER_STAFF", raising=False)

    config = get_ledger_config()

    assert config.cap == 100
    assert config.ledger_table == "BP_Total"
    assert config.redemption_table == "BP_Redeemed_Log"
    assert config.roster_tables == ("PreferredNames", "Key_Tracker")
    assert config.default_staff == "Unknown"
    assert config.source_for(Category.DICE) is DICE_SOURCE
    assert "Dice_Points" in config.source_tables


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BP_GLOBAL_CAP", " 250 ")
    monkeypatch.setenv("BPLEDGER_STAFF", "Front desk")

    config = get_ledger_config()

    assert config.cap == 250
    assert config.default_staff == "Front desk"


@pytest.mark.parametrize("raw", ["lots", "inf", "-1"])
def test_invalid_cap_is_rejected(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("BP_GLOBAL_CAP", raw)

    with pytest.raises(ConfigurationError):
        get_ledger_config()


def test_duplicate_categories_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        LedgerConfig(sources=(FLAG_SOURCE, FLAG_SOURCE))


def test_flag_checkbox_values() -> None:
    assert FLAG_SOURCE.checkbox_value("Gravitational_Pull") == 5
    assert FLAG_SOURCE.checkbox_value("Something_New") == 1


def test_database_uri_prefers_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"

    monkeypatch.delenv("DATABASE_URI")
    monkeypatch.setenv("BPLEDGER_DATA_DIR", str(tmp_path))
    assert get_database_config().uri == f"sqlite+pysqlite:///{tmp_path.resolve() / 'bpledger.db'}"
