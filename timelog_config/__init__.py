"""
timelog_config -- single public entrypoint for time log configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains tier
    thresholds, the continuity tolerance, the day-boundary timezone and the
    default database URL.  The kernel never reads configuration files
    itself; ``timelog_config.bridges`` translates a loaded set into kernel
    policy objects.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ValueError`` / ``KeyError`` -- malformed configuration set.

Every successful load emits a ``TIMELOG_CONFIG_TRACE`` log entry with the
set id, version and checksum, tying recorded hours to the thresholds that
split them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from timelog_config.loader import load_config_file
from timelog_config.schema import TimeLogConfig

_logger = logging.getLogger("timelog_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> TimeLogConfig:
    """Load the named configuration set.

    Args:
        name: Set name; resolves to ``<config_dir>/<name>.yaml``.
        config_dir: Override path to the configuration sets directory.
            Defaults to timelog_config/sets/.

    Raises:
        FileNotFoundError: If the set does not exist.
        ValueError: If the set fails validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = load_config_file(path)

    _logger.info(
        "TIMELOG_CONFIG_TRACE",
        extra={
            "trace_type": "TIMELOG_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "regular_hours": str(config.tiers.regular_hours),
            "overtime_hours": str(config.tiers.overtime_hours),
            "day_timezone": config.calendar.day_timezone,
        },
    )
    return config


__all__ = ["get_active_config", "TimeLogConfig"]
