"""
Configuration Loader (``timelog_config.loader``).

Responsibility
--------------
Load a YAML configuration set and parse it into ``timelog_config.schema``
dataclasses.  Runtime callers use ``timelog_config.get_active_config()``;
this module is its implementation.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from timelog_config.schema import (
    CalendarSettings,
    DatabaseSettings,
    GroupingSettings,
    TierSettings,
    TimeLogConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_hours(value: Any, field_name: str) -> Decimal:
    """Parse an hours figure; YAML floats go through str to stay exact."""
    try:
        hours = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field_name}: cannot parse hours from {value!r}") from None
    if hours < 0:
        raise ValueError(f"{field_name}: hours must not be negative, got {hours}")
    return hours


def parse_tiers(data: dict[str, Any]) -> TierSettings:
    regular = parse_hours(data["regular_hours"], "tiers.regular_hours")
    if regular == 0:
        raise ValueError("tiers.regular_hours must be positive")
    return TierSettings(
        regular_hours=regular,
        overtime_hours=parse_hours(data["overtime_hours"], "tiers.overtime_hours"),
    )


def parse_grouping(data: dict[str, Any]) -> GroupingSettings:
    seconds = int(data.get("continuity_tolerance_seconds", 60))
    if seconds < 0:
        raise ValueError("grouping.continuity_tolerance_seconds must not be negative")
    return GroupingSettings(continuity_tolerance_seconds=seconds)


def parse_calendar(data: dict[str, Any]) -> CalendarSettings:
    return CalendarSettings(day_timezone=data.get("day_timezone", "UTC"))


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=data.get("url", "sqlite:///:memory:"),
        echo=bool(data.get("echo", False)),
    )


def parse_config(data: dict[str, Any]) -> TimeLogConfig:
    """Parse a whole configuration set dict."""
    return TimeLogConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        tiers=parse_tiers(data["tiers"]),
        grouping=parse_grouping(data.get("grouping") or {}),
        calendar=parse_calendar(data.get("calendar") or {}),
        database=parse_database(data.get("database") or {}),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> TimeLogConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    SHA-256 of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
