"""
Config -> Kernel Bridges.

Convert a ``TimeLogConfig`` into the kernel's policy objects.  These live
in timelog_config because the kernel never imports timelog_config.

Usage:
    from timelog_config import get_active_config
    from timelog_config.bridges import build_tier_policy, build_grouping_policy

    config = get_active_config()
    service = TimeLogService(session, tier_policy=build_tier_policy(config))
"""

from __future__ import annotations

from datetime import timedelta

from timelog_config.schema import TimeLogConfig
from timelog_kernel.domain.tiers import GroupingPolicy, TierPolicy


def build_tier_policy(config: TimeLogConfig) -> TierPolicy:
    return TierPolicy(
        regular_hours=config.tiers.regular_hours,
        overtime_hours=config.tiers.overtime_hours,
        day_timezone=config.calendar.day_timezone,
    )


def build_grouping_policy(config: TimeLogConfig) -> GroupingPolicy:
    return GroupingPolicy(
        continuity_tolerance=timedelta(
            seconds=config.grouping.continuity_tolerance_seconds
        ),
    )
