"""
Duration arithmetic -- elapsed time with truncation semantics.

Responsibility:
    Convert pairs of instants into whole completed minutes and into hours
    truncated to two decimals.  Every hour figure the kernel reports goes
    through ``minutes_to_hours`` so that the same inputs always give the same
    digits.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Never rounds up.  Partial minutes are dropped before anything is
      converted to hours, and hours are truncated (ROUND_DOWN), not rounded.
    - Aggregates truncate each member to whole minutes, sum the minutes and
      convert only the final sum.  Three 20-minute segments are 1.00 hour,
      not 0.99.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Iterable
from zoneinfo import ZoneInfo

MINUTES_PER_HOUR = 60
ONE_MINUTE = timedelta(minutes=1)
_TWO_PLACES = Decimal("0.01")


def truncate2(value: Decimal | int | str) -> Decimal:
    """Truncate (never round) to two decimal places."""
    return Decimal(value).quantize(_TWO_PLACES, rounding=ROUND_DOWN)


def truncate_to_minute(instant: datetime) -> datetime:
    """Drop seconds and microseconds."""
    return instant.replace(second=0, microsecond=0)


def minutes_to_hours(minutes: int) -> Decimal:
    """Whole minutes to hours, truncated to two decimals."""
    return truncate2(Decimal(minutes) / MINUTES_PER_HOUR)


def hours_to_minutes(hours: Decimal | int | str) -> int:
    """Hours (e.g. a policy threshold) to whole minutes, dropping any remainder."""
    return int(Decimal(hours) * MINUTES_PER_HOUR)


@dataclass(frozen=True)
class ElapsedTime:
    """Whole completed minutes plus the truncated hour figure."""

    minutes: int
    hours: Decimal

    @classmethod
    def of_minutes(cls, minutes: int) -> "ElapsedTime":
        return cls(minutes=minutes, hours=minutes_to_hours(minutes))

    def __add__(self, other: "ElapsedTime") -> "ElapsedTime":
        return ElapsedTime.of_minutes(self.minutes + other.minutes)

    def __str__(self) -> str:
        return format_duration(self.minutes)


ZERO = ElapsedTime.of_minutes(0)


def elapsed(start: datetime, end: datetime) -> ElapsedTime:
    """
    Completed minutes between two instants.

    Returns ZERO when ``end`` is not after ``start``.
    """
    if end <= start:
        return ZERO
    return ElapsedTime.of_minutes((end - start) // ONE_MINUTE)


def sum_elapsed(pairs: Iterable[tuple[datetime, datetime]]) -> ElapsedTime:
    """Sum of per-pair whole minutes, converted once."""
    total = 0
    for start, end in pairs:
        total += elapsed(start, end).minutes
    return ElapsedTime.of_minutes(total)


def format_duration(minutes: int) -> str:
    """Render whole minutes as ``"Hh MMm"``."""
    hours, rest = divmod(max(minutes, 0), MINUTES_PER_HOUR)
    return f"{hours}h {rest:02d}m"


def local_day(instant: datetime, tz_name: str) -> date:
    """Calendar date of ``instant`` in the named timezone."""
    return instant.astimezone(ZoneInfo(tz_name)).date()


def local_day_bounds(instant: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` of the local day containing ``instant``."""
    tz = ZoneInfo(tz_name)
    day = instant.astimezone(tz).date()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end
