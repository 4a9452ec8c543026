"""
Time log configuration schema.

YAML sets under ``timelog_config/sets/`` are parsed by the loader into these
frozen types.  Nothing here knows about the kernel; ``bridges.py`` turns a
``TimeLogConfig`` into kernel policy objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class TierSettings:
    """Daily tier thresholds, in hours."""

    regular_hours: Decimal
    overtime_hours: Decimal


@dataclass(frozen=True)
class GroupingSettings:
    continuity_tolerance_seconds: int = 60


@dataclass(frozen=True)
class CalendarSettings:
    day_timezone: str = "UTC"


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///:memory:"
    echo: bool = False


@dataclass(frozen=True)
class TimeLogConfig:
    """One named configuration set, identified by its checksum."""

    config_id: str
    version: int
    tiers: TierSettings
    grouping: GroupingSettings
    calendar: CalendarSettings
    database: DatabaseSettings
    checksum: str
