"""
Tier vocabulary and the policies that parameterise splitting and grouping.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

``TierPolicy`` and ``GroupingPolicy`` are built from YAML configuration by
``timelog_config.bridges``; nothing in the kernel reads tier constants from
module globals.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from zoneinfo import ZoneInfo

from timelog_kernel.domain.duration import hours_to_minutes


class Tier(str, Enum):
    """Band of the working day a segment falls into."""

    REGULAR = "regular"
    OVERTIME = "overtime"
    EXTENDED_OVERTIME = "extended_overtime"

    @property
    def is_overtime(self) -> bool:
        return self is not Tier.REGULAR


class OvertimeStatus(str, Enum):
    """Review state of an Overtime or Extended segment."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LifecycleStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class TierPolicy:
    """
    Tier thresholds for one working day.

    Attributes:
        regular_hours: Length of the Regular tier (cumulative per day).
        overtime_hours: Length of the Overtime tier that follows it.
            Anything beyond both is Extended Overtime.
        day_timezone: IANA zone whose midnight separates working days.
    """

    regular_hours: Decimal = Decimal("9")
    overtime_hours: Decimal = Decimal("3")
    day_timezone: str = "UTC"

    def __post_init__(self):
        if Decimal(self.regular_hours) <= 0:
            raise ValueError("regular_hours must be positive")
        if Decimal(self.overtime_hours) < 0:
            raise ValueError("overtime_hours must not be negative")
        ZoneInfo(self.day_timezone)

    @property
    def regular_minutes(self) -> int:
        return hours_to_minutes(self.regular_hours)

    @property
    def overtime_minutes(self) -> int:
        return hours_to_minutes(self.overtime_hours)

    @property
    def overtime_limit_minutes(self) -> int:
        """Cumulative minute mark where Extended Overtime begins."""
        return self.regular_minutes + self.overtime_minutes


@dataclass(frozen=True)
class GroupingPolicy:
    """Maximum gap between two segments that still counts as one session."""

    continuity_tolerance: timedelta = timedelta(minutes=1)

    def __post_init__(self):
        if self.continuity_tolerance < timedelta(0):
            raise ValueError("continuity_tolerance must not be negative")


DEFAULT_TIER_POLICY = TierPolicy()
DEFAULT_GROUPING_POLICY = GroupingPolicy()
