"""
Internship progress and completion eligibility.

Responsibility:
    Compute completed hours from stored segments with the same truncation
    rules the certificate uses, and break overtime down by review status.

Architecture position:
    Kernel > Domain -- pure functions.  ProgressService feeds it selector
    output.

Invariants enforced:
    - Only closed segments count.  Regular segments always count; Overtime
      and Extended segments count only once approved.
    - Per-segment minutes are summed first; the sum is converted to hours
      and truncated to two decimals once.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from timelog_kernel.domain.duration import minutes_to_hours, truncate2
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.splitter import split_session
from timelog_kernel.domain.tiers import (
    DEFAULT_TIER_POLICY,
    OvertimeStatus,
    Tier,
    TierPolicy,
)


@dataclass(frozen=True)
class OvertimeBreakdown:
    approved_minutes: int = 0
    pending_minutes: int = 0
    rejected_minutes: int = 0

    @property
    def approved_hours(self) -> Decimal:
        return minutes_to_hours(self.approved_minutes)

    @property
    def pending_hours(self) -> Decimal:
        return minutes_to_hours(self.pending_minutes)

    @property
    def rejected_hours(self) -> Decimal:
        return minutes_to_hours(self.rejected_minutes)

    @property
    def total_hours(self) -> Decimal:
        return minutes_to_hours(
            self.approved_minutes + self.pending_minutes + self.rejected_minutes
        )


@dataclass(frozen=True)
class EditOverlay:
    """
    An approved edit whose stored segments do not reflect its requested range.

    For progress purposes the listed segments are replaced by the requested
    range, split with overtime approved.
    """

    segment_ids: frozenset[UUID]
    time_in: datetime
    time_out: datetime


@dataclass(frozen=True)
class ProgressSummary:
    required_hours: Decimal
    regular_minutes: int
    overtime: OvertimeBreakdown

    @property
    def completed_minutes(self) -> int:
        return self.regular_minutes + self.overtime.approved_minutes

    @property
    def completed_hours(self) -> Decimal:
        return minutes_to_hours(self.completed_minutes)

    @property
    def regular_hours(self) -> Decimal:
        return minutes_to_hours(self.regular_minutes)

    @property
    def remaining_hours(self) -> Decimal:
        return max(Decimal("0.00"), truncate2(self.required_hours - self.completed_hours))

    @property
    def percentage(self) -> Decimal:
        if self.required_hours <= 0:
            return Decimal("100.00")
        pct = truncate2(self.completed_hours * 100 / self.required_hours)
        return min(pct, Decimal("100.00"))

    @property
    def is_eligible(self) -> bool:
        """Completed hours have reached the required total."""
        return self.completed_hours >= self.required_hours

    def to_dict(self) -> dict:
        return {
            "required_hours": str(truncate2(self.required_hours)),
            "completed_hours": str(self.completed_hours),
            "regular_hours": str(self.regular_hours),
            "remaining_hours": str(self.remaining_hours),
            "percentage": str(self.percentage),
            "is_eligible": self.is_eligible,
            "overtime": {
                "approved": str(self.overtime.approved_hours),
                "pending": str(self.overtime.pending_hours),
                "rejected": str(self.overtime.rejected_hours),
                "total": str(self.overtime.total_hours),
            },
        }


def compute_progress(
    segments: Iterable[SegmentRecord],
    required_hours: Decimal | int | str,
    overlays: Iterable[EditOverlay] = (),
    policy: TierPolicy = DEFAULT_TIER_POLICY,
) -> ProgressSummary:
    """
    Sum a person's closed segments into a ProgressSummary.

    Args:
        segments: The person's stored segments.
        required_hours: Internship target.
        overlays: Approved edits to apply on top of stored rows.
        policy: Tier thresholds used to split overlay ranges.
    """
    overlays = list(overlays)
    replaced: set[UUID] = set()
    for overlay in overlays:
        replaced |= overlay.segment_ids

    regular = 0
    by_status = {status: 0 for status in OvertimeStatus}

    for seg in segments:
        if seg.id in replaced or seg.is_open or seg.time_out is None:
            continue
        minutes = seg.duration().minutes
        if seg.tier == Tier.REGULAR:
            regular += minutes
        else:
            by_status[seg.overtime_status or OvertimeStatus.PENDING] += minutes

    for overlay in overlays:
        result = split_session(
            overlay.time_in,
            overlay.time_out,
            policy=policy,
            overtime_status=OvertimeStatus.APPROVED,
        )
        for spec in result.segments:
            if spec.tier == Tier.REGULAR:
                regular += spec.duration.minutes
            else:
                by_status[OvertimeStatus.APPROVED] += spec.duration.minutes

    return ProgressSummary(
        required_hours=Decimal(required_hours),
        regular_minutes=regular,
        overtime=OvertimeBreakdown(
            approved_minutes=by_status[OvertimeStatus.APPROVED],
            pending_minutes=by_status[OvertimeStatus.PENDING],
            rejected_minutes=by_status[OvertimeStatus.REJECTED],
        ),
    )
