"""Ledger configuration: cap, table names and source layouts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from bpledger.domain.model.enums import Category

from .env import optional_env_float, optional_env_str
from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_CAP: Final[float] = 100.0
DEFAULT_STAFF: Final[str] = "Unknown"

LEDGER_TABLE: Final[str] = "BP_Total"
REDEMPTION_TABLE: Final[str] = "BP_Redeemed_Log"
ROSTER_TABLES: Final[tuple[str, ...]] = ("PreferredNames", "Key_Tracker")

FLAG_MISSION_VALUES: Final[dict[str, float]] = {
    "Cosmic_Selfie": 1,
    "Review_Writer": 2,
    "Social_Media_Star": 2,
    "App_Explorer": 1,
    "Cosmic_Merchant": 3,
    "Precon_Pioneer": 2,
    "Gravitational_Pull": 5,
    "Rogue_Planet": 3,
    "Quantum_Collector": 5,
}


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """Where one point category is read from and how its columns are found."""

    category: Category
    tables: tuple[str, ...]
    points_aliases: tuple[str, ...]
    sum_columns_fallback: bool = True
    checkbox_values: Mapping[str, float] = field(default_factory=dict[str, float])
    default_checkbox_value: float = 1.0
    ignored_headers: tuple[str, ...] = ("LastUpdated", "Last Updated", "Timestamp")

    def checkbox_value(self, header: str) -> float:
        return self.checkbox_values.get(header, self.default_checkbox_value)


ATTENDANCE_SOURCE = SourceConfig(
    category=Category.ATTENDANCE,
    tables=("Attendance_Missions",),
    points_aliases=(
        "Attendance Mission Points",
        "Attendance Missions Points",
        "Attendance Points",
        "Attendance Missions",
        "Points",
        "Total Points",
        "Total Events Attended",
    ),
)

FLAG_SOURCE = SourceConfig(
    category=Category.FLAG,
    tables=("Flag_Missions",),
    points_aliases=(
        "Flag Mission Points",
        "Flag Points",
        "Flag Missions",
        "Points",
        "Total Points",
    ),
    checkbox_values=FLAG_MISSION_VALUES,
)

DICE_SOURCE = SourceConfig(
    category=Category.DICE,
    tables=("Dice Roll Points", "Dice_Points"),
    points_aliases=("Dice Roll Points", "Dice Points", "Points"),
    sum_columns_fallback=False,
)

DEFAULT_SOURCES: Final[tuple[SourceConfig, ...]] = (ATTENDANCE_SOURCE, FLAG_SOURCE, DICE_SOURCE)


@dataclass(frozen=True, slots=True)
class LedgerConfig:
    """Holds the values the reconciliation engine and facade consult."""

    cap: float = DEFAULT_CAP
    ledger_table: str = LEDGER_TABLE
    redemption_table: str = REDEMPTION_TABLE
    roster_tables: tuple[str, ...] = ROSTER_TABLES
    sources: tuple[SourceConfig, ...] = DEFAULT_SOURCES
    default_staff: str = DEFAULT_STAFF

    def __post_init__(self) -> None:
        if self.cap < 0:
            raise ConfigurationError(f"Global cap must be non-negative, got {self.cap}")
        categories = [source.category for source in self.sources]
        if len(set(categories)) != len(categories):
            raise ConfigurationError("Each category may only be configured once")

    def source_for(self, category: Category) -> SourceConfig | None:
        for source in self.sources:
            if source.category is category:
                return source
        return None

    @property
    def source_tables(self) -> tuple[str, ...]:
        return tuple(table for source in self.sources for table in source.tables)


def get_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        cap=optional_env_float("BP_GLOBAL_CAP", DEFAULT_CAP),
        default_staff=optional_env_str("BPLEDGER_STAFF", DEFAULT_STAFF),
    )
