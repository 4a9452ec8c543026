"""
Tiered session splitter.

Responsibility:
    Turn one clock-in/clock-out range into the Regular, Overtime and
    Extended Overtime rows that represent it.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.  Services persist the
    ``SegmentSpec`` values this module returns.

Invariants enforced:
    - Both endpoints are truncated to the minute before any boundary is
      computed, so every emitted boundary is minute-aligned.
    - Tier thresholds are cumulative for the day.  A session starting with
      ``accrued_minutes`` already worked is placed on the same daily scale,
      which moves its cut points earlier; with nothing accrued the cuts are
      exactly ``time_in + regular`` and ``time_in + regular + overtime``.
    - Emitted segments are contiguous, non-overlapping, non-empty, and cover
      ``[time_in, time_out)`` exactly (discard mode excepted).

Failure modes:
    - InvalidTimeRangeError when time_out is not after time_in.
    - ZeroLengthDurationError when the minute-truncated range is empty.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from timelog_kernel.domain.duration import ElapsedTime, elapsed, truncate_to_minute
from timelog_kernel.domain.tiers import (
    DEFAULT_TIER_POLICY,
    OvertimeStatus,
    Tier,
    TierPolicy,
)
from timelog_kernel.exceptions import InvalidTimeRangeError, ZeroLengthDurationError


@dataclass(frozen=True)
class SegmentSpec:
    """A segment to be written: bounds, tier and (for overtime) status."""

    time_in: datetime
    time_out: datetime
    tier: Tier
    overtime_status: OvertimeStatus | None

    @property
    def duration(self) -> ElapsedTime:
        return elapsed(self.time_in, self.time_out)


@dataclass(frozen=True)
class SplitResult:
    segments: tuple[SegmentSpec, ...]
    total: ElapsedTime
    discarded_minutes: int = 0

    @property
    def primary(self) -> SegmentSpec:
        """The Regular segment if there is one, else the earliest."""
        for spec in self.segments:
            if spec.tier == Tier.REGULAR:
                return spec
        return self.segments[0]

    @property
    def has_overtime(self) -> bool:
        return any(spec.tier.is_overtime for spec in self.segments)


def classify_open_tier(
    accrued_minutes: int,
    policy: TierPolicy = DEFAULT_TIER_POLICY,
) -> tuple[Tier, OvertimeStatus | None]:
    """Tier (and initial status) for a clock-in after ``accrued_minutes`` today."""
    if accrued_minutes < policy.regular_minutes:
        return Tier.REGULAR, None
    if accrued_minutes < policy.overtime_limit_minutes:
        return Tier.OVERTIME, OvertimeStatus.PENDING
    return Tier.EXTENDED_OVERTIME, OvertimeStatus.PENDING


def validate_range(time_in: datetime, time_out: datetime) -> tuple[datetime, datetime]:
    """Minute-truncated bounds of a range that must be at least one minute long."""
    if time_out <= time_in:
        raise InvalidTimeRangeError(time_in, time_out)
    start = truncate_to_minute(time_in)
    end = truncate_to_minute(time_out)
    if end - start < timedelta(minutes=1):
        raise ZeroLengthDurationError(time_in, time_out)
    return start, end


def split_session(
    time_in: datetime,
    time_out: datetime,
    *,
    accrued_minutes: int = 0,
    policy: TierPolicy = DEFAULT_TIER_POLICY,
    discard_excess: bool = False,
    overtime_status: OvertimeStatus = OvertimeStatus.PENDING,
) -> SplitResult:
    """
    Split ``[time_in, time_out)`` into tiered segments.

    Args:
        time_in: Session start.
        time_out: Session end; must be after ``time_in``.
        accrued_minutes: Minutes already worked earlier the same day.
        policy: Tier thresholds.
        discard_excess: Keep only the Regular allowance left for the day
            (``policy.regular_minutes - accrued_minutes``) as one Regular
            segment and drop the rest.  With no allowance left there is
            nothing Regular to keep and the session is split as usual.
        overtime_status: Status stamped on every Overtime/Extended segment
            (``APPROVED`` when an edit approval re-splits).

    Returns:
        SplitResult with segments in chronological order.
    """
    start, end = validate_range(time_in, time_out)
    total = elapsed(start, end)

    accrued = max(accrued_minutes, 0)
    allowance = policy.regular_minutes - accrued

    if discard_excess and allowance > 0:
        cut = min(end, start + timedelta(minutes=allowance))
        kept = SegmentSpec(start, cut, Tier.REGULAR, None)
        return SplitResult(
            segments=(kept,),
            total=total,
            discarded_minutes=total.minutes - kept.duration.minutes,
        )

    # Daily-scale minute marks where each tier ends, relative to this session.
    marks = (
        (Tier.REGULAR, allowance),
        (Tier.OVERTIME, policy.overtime_limit_minutes - accrued),
        (Tier.EXTENDED_OVERTIME, None),
    )

    segments: list[SegmentSpec] = []
    cursor = start
    for tier, limit in marks:
        boundary = end if limit is None else min(end, start + timedelta(minutes=limit))
        if boundary > cursor:
            status = overtime_status if tier.is_overtime else None
            segments.append(SegmentSpec(cursor, boundary, tier, status))
            cursor = boundary
        if cursor >= end:
            break

    return SplitResult(segments=tuple(segments), total=total)
