"""
ClockService -- clock-in and clock-out.

Responsibility:
    Open a segment at clock-in in the tier the day's accrued hours call for,
    and at clock-out close it, splitting the session across tiers.

Architecture position:
    Kernel > Services -- flush-only; TimeLogService owns the transaction.

Invariants enforced:
    - At most one open segment per person.
    - Stored instants are truncated to the minute.
    - Discard mode never produces Regular time beyond the day's allowance;
      the kept Regular segment inherits references from same-day
      Overtime/Extended rows before those rows are deleted.

Failure modes:
    - AlreadyClockedInError, NoActiveSegmentError.
    - InvalidTimeRangeError / ZeroLengthDurationError from the splitter.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from timelog_kernel.domain.clock import Clock
from timelog_kernel.domain.duration import local_day_bounds, truncate_to_minute
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.splitter import classify_open_tier, split_session
from timelog_kernel.domain.tiers import (
    DEFAULT_TIER_POLICY,
    LifecycleStatus,
    Tier,
    TierPolicy,
)
from timelog_kernel.exceptions import AlreadyClockedInError, NoActiveSegmentError
from timelog_kernel.logging_config import get_logger
from timelog_kernel.models.segment import TimeSegment
from timelog_kernel.selectors.segment_selector import SegmentSelector
from timelog_kernel.services.base import BaseService
from timelog_kernel.services.segment_replacer import SegmentReplacer

logger = get_logger("services.clock")


@dataclass(frozen=True)
class ClockOutResult:
    segments: tuple[SegmentRecord, ...]
    discarded_minutes: int = 0
    removed_overtime_ids: tuple[UUID, ...] = ()


class ClockService(BaseService[TimeSegment]):
    """Clock-in / clock-out against ``time_segments``."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: TierPolicy = DEFAULT_TIER_POLICY,
    ):
        super().__init__(session, clock)
        self.policy = policy
        self._selector = SegmentSelector(session)
        self._replacer = SegmentReplacer(session, self.clock)

    def _open_row(self, person_id: UUID) -> TimeSegment | None:
        return self.session.scalars(
            select(TimeSegment)
            .where(
                TimeSegment.person_id == person_id,
                TimeSegment.lifecycle_status == LifecycleStatus.OPEN.value,
                TimeSegment.is_placeholder.is_(False),
            )
            .with_for_update()
        ).first()

    def _accrued_before(self, person_id: UUID, instant: datetime) -> int:
        day_start, _ = local_day_bounds(instant, self.policy.day_timezone)
        return self._selector.minutes_accrued(person_id, day_start, instant)

    def clock_in(self, person_id: UUID, time: datetime | None = None) -> SegmentRecord:
        """Open a segment for ``person_id`` at ``time`` (default: now)."""
        instant = truncate_to_minute(time or self.clock.now())

        existing = self._open_row(person_id)
        if existing is not None:
            raise AlreadyClockedInError(str(person_id), str(existing.id))

        accrued = self._accrued_before(person_id, instant)
        tier, status = classify_open_tier(accrued, self.policy)

        row = TimeSegment(
            person_id=person_id,
            time_in=instant,
            time_out=None,
            tier=tier.value,
            overtime_status=status.value if status else None,
            lifecycle_status=LifecycleStatus.OPEN.value,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "clock_in_completed",
            extra={
                "segment_id": str(row.id),
                "tier": tier.value,
                "accrued_minutes": accrued,
            },
        )
        return row.to_dto()

    def clock_out(
        self,
        person_id: UUID,
        time: datetime | None = None,
        discard_overtime: bool = False,
        note: str | None = None,
    ) -> ClockOutResult:
        """
        Close the open segment, splitting it across tiers.

        With ``discard_overtime`` a Regular session is cut where the day's
        Regular allowance runs out and every Overtime/Extended segment the
        person has on that day is removed.  A session opened as Overtime or
        Extended is closed in its own tier regardless.
        """
        row = self._open_row(person_id)
        if row is None:
            raise NoActiveSegmentError(str(person_id))

        instant = truncate_to_minute(time or self.clock.now())
        accrued = self._accrued_before(person_id, row.time_in)
        discarding = (
            discard_overtime
            and row.tier == Tier.REGULAR.value
            and accrued < self.policy.regular_minutes
        )
        result = split_session(
            row.time_in,
            instant,
            accrued_minutes=accrued,
            policy=self.policy,
            discard_excess=discarding,
        )

        first, *rest = result.segments
        row.time_out = first.time_out
        row.tier = first.tier.value
        row.overtime_status = first.overtime_status.value if first.overtime_status else None
        row.lifecycle_status = LifecycleStatus.CLOSED.value
        row.note = note

        siblings = [
            TimeSegment(
                person_id=person_id,
                time_in=spec.time_in,
                time_out=spec.time_out,
                tier=spec.tier.value,
                overtime_status=spec.overtime_status.value if spec.overtime_status else None,
                lifecycle_status=LifecycleStatus.CLOSED.value,
                note=note,
            )
            for spec in rest
        ]
        self.session.add_all(siblings)
        self.session.flush()

        removed: tuple[UUID, ...] = ()
        if discarding:
            removed = self._discard_same_day_overtime(person_id, row)

        logger.info(
            "clock_out_completed",
            extra={
                "segment_id": str(row.id),
                "segment_count": 1 + len(siblings),
                "total_minutes": result.total.minutes,
                "discarded_minutes": result.discarded_minutes,
                "removed_overtime_count": len(removed),
            },
        )
        return ClockOutResult(
            segments=tuple(r.to_dto() for r in [row, *siblings]),
            discarded_minutes=result.discarded_minutes,
            removed_overtime_ids=removed,
        )

    def _discard_same_day_overtime(
        self, person_id: UUID, kept: TimeSegment,
    ) -> tuple[UUID, ...]:
        day_start, day_end = local_day_bounds(kept.time_in, self.policy.day_timezone)
        doomed = [
            s.id
            for s in self._selector.closed_between(person_id, day_start, day_end)
            if s.tier.is_overtime and s.id != kept.id
        ]
        if not doomed:
            return ()
        replacement = self._replacer.replace_segments(doomed, [], repoint_to=kept.id)
        return replacement.removed_ids
