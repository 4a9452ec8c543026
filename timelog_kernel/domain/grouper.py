"""
Continuous session grouper.

Responsibility:
    Fold stored segments back into the sessions a person actually worked:
    a maximal run of segments where each one starts within the continuity
    tolerance (one minute by default) of the previous one's end.

Architecture position:
    Kernel > Domain -- pure functions over ``SegmentRecord`` values.

Invariants enforced:
    - A session's total is the sum of its members' whole minutes.
    - Grouping the members of already-grouped sessions yields the same
      sessions (idempotent).
    - Segments of different people never share a session.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID

from timelog_kernel.domain.duration import local_day, minutes_to_hours
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.tiers import (
    DEFAULT_GROUPING_POLICY,
    DEFAULT_TIER_POLICY,
    GroupingPolicy,
    OvertimeStatus,
    Tier,
    TierPolicy,
)


class SessionClassification(str, Enum):
    REGULAR = "regular"
    OVERTIME = "overtime"
    EXTENDED_OVERTIME = "extended_overtime"
    MIXED = "mixed"


@dataclass(frozen=True)
class Session:
    """One continuous stretch of work, derived and never stored."""

    person_id: UUID
    segments: tuple[SegmentRecord, ...]
    time_in: datetime
    time_out: datetime | None
    classification: SessionClassification
    overtime_status: OvertimeStatus | None
    regular_minutes: int
    overtime_minutes: int

    @property
    def is_active(self) -> bool:
        return self.time_out is None

    @property
    def segment_ids(self) -> tuple[UUID, ...]:
        return tuple(s.id for s in self.segments)

    @property
    def total_minutes(self) -> int:
        return self.regular_minutes + self.overtime_minutes

    @property
    def regular_hours(self) -> Decimal:
        return minutes_to_hours(self.regular_minutes)

    @property
    def overtime_hours(self) -> Decimal:
        return minutes_to_hours(self.overtime_minutes)

    @property
    def total_hours(self) -> Decimal:
        return minutes_to_hours(self.total_minutes)


@dataclass(frozen=True)
class DaySummary:
    """
    Per-day totals.

    Regular beyond the daily limit is reported as overtime.  Rejected
    overtime is kept out of ``overtime_minutes`` and the day total.
    """

    day: date
    session_count: int
    regular_minutes: int
    overtime_minutes: int
    rejected_overtime_minutes: int = 0
    overtime_status: OvertimeStatus | None = None

    @property
    def regular_hours(self) -> Decimal:
        return minutes_to_hours(self.regular_minutes)

    @property
    def overtime_hours(self) -> Decimal:
        return minutes_to_hours(self.overtime_minutes)

    @property
    def rejected_overtime_hours(self) -> Decimal:
        return minutes_to_hours(self.rejected_overtime_minutes)

    @property
    def total_hours(self) -> Decimal:
        return minutes_to_hours(self.regular_minutes + self.overtime_minutes)


def aggregate_overtime_status(
    members: Iterable[SegmentRecord],
) -> OvertimeStatus | None:
    """
    Session-level overtime status.

    Rejected if any overtime member is rejected and none approved; approved
    if any is approved; pending otherwise; None without overtime members.
    """
    statuses = [m.overtime_status for m in members if m.tier.is_overtime]
    if not statuses:
        return None
    if OvertimeStatus.APPROVED in statuses:
        return OvertimeStatus.APPROVED
    if OvertimeStatus.REJECTED in statuses:
        return OvertimeStatus.REJECTED
    return OvertimeStatus.PENDING


def _classify(members: Iterable[SegmentRecord]) -> SessionClassification:
    tiers = {m.tier for m in members}
    if len(tiers) > 1:
        return SessionClassification.MIXED
    return SessionClassification(tiers.pop().value)


def _build_session(members: list[SegmentRecord], now: datetime) -> Session:
    regular = 0
    overtime = 0
    for m in members:
        minutes = m.duration(now).minutes
        if m.tier == Tier.REGULAR:
            regular += minutes
        else:
            overtime += minutes

    active = any(m.is_open for m in members)
    return Session(
        person_id=members[0].person_id,
        segments=tuple(members),
        time_in=members[0].time_in,
        time_out=None if active else max(m.time_out for m in members),
        classification=_classify(members),
        overtime_status=aggregate_overtime_status(members),
        regular_minutes=regular,
        overtime_minutes=overtime,
    )


def group_sessions(
    segments: Iterable[SegmentRecord],
    now: datetime,
    policy: GroupingPolicy = DEFAULT_GROUPING_POLICY,
) -> list[Session]:
    """
    Group segments into continuous sessions.

    Args:
        segments: Any mix of people, in any order.
        now: End instant for open segments (current time, or a freeze
            instant for reports).
        policy: Continuity tolerance.

    Returns:
        Sessions ordered by person, then start time.
    """
    by_person: dict[UUID, list[SegmentRecord]] = defaultdict(list)
    for seg in segments:
        by_person[seg.person_id].append(seg)

    sessions: list[Session] = []
    for person_id in sorted(by_person, key=str):
        ordered = sorted(by_person[person_id], key=lambda s: (s.time_in, str(s.id)))
        current: list[SegmentRecord] = []
        current_end: datetime | None = None
        for seg in ordered:
            if current and seg.time_in - current_end <= policy.continuity_tolerance:
                current.append(seg)
                current_end = max(current_end, seg.end_or(now))
                continue
            if current:
                sessions.append(_build_session(current, now))
            current = [seg]
            current_end = seg.end_or(now)
        if current:
            sessions.append(_build_session(current, now))
    return sessions


def _day_status(
    sessions: list[Session], has_overflow: bool,
) -> OvertimeStatus | None:
    statuses = {
        m.overtime_status
        for s in sessions
        for m in s.segments
        if m.tier.is_overtime
    }
    for status in (OvertimeStatus.REJECTED, OvertimeStatus.APPROVED, OvertimeStatus.PENDING):
        if status in statuses:
            return status
    return OvertimeStatus.PENDING if has_overflow else None


def summarize_sessions(
    sessions: Iterable[Session],
    policy: TierPolicy = DEFAULT_TIER_POLICY,
) -> list[DaySummary]:
    """
    Day totals keyed by the local date of each session's start.

    Regular minutes above the daily Regular limit are moved to overtime, so
    rows stored before splitting existed are still reported sensibly.
    Rejected overtime rows are reported separately.  At day level a
    rejection outranks an approval: a day with any rejected overtime is
    ``REJECTED``.
    """
    buckets: dict[date, list[Session]] = defaultdict(list)
    for session in sessions:
        buckets[local_day(session.time_in, policy.day_timezone)].append(session)

    summaries = []
    for day in sorted(buckets):
        day_sessions = buckets[day]
        regular = sum(s.regular_minutes for s in day_sessions)
        rejected = sum(
            m.duration().minutes
            for s in day_sessions
            for m in s.segments
            if m.tier.is_overtime
            and m.overtime_status == OvertimeStatus.REJECTED
            and m.time_out is not None
        )
        overtime = sum(s.overtime_minutes for s in day_sessions) - rejected
        overflow = max(0, regular - policy.regular_minutes)
        summaries.append(
            DaySummary(
                day=day,
                session_count=len(day_sessions),
                regular_minutes=regular - overflow,
                overtime_minutes=overtime + overflow,
                rejected_overtime_minutes=rejected,
                overtime_status=_day_status(day_sessions, overflow > 0),
            )
        )
    return summaries
