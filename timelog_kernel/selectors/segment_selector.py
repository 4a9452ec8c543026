"""
Module: timelog_kernel.selectors.segment_selector
Responsibility: Read paths over time_segments and time_segment_edit_requests.

Placeholder rows are filtered out of every query here; they exist only
inside an in-flight replacement.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select

from timelog_kernel.domain.duration import hours_to_minutes
from timelog_kernel.domain.edit_request import EditRequestRecord, EditRequestStatus
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.tiers import LifecycleStatus, Tier
from timelog_kernel.models.edit_request import TimeSegmentEditRequest
from timelog_kernel.models.segment import TimeSegment
from timelog_kernel.selectors.base import BaseSelector


class SegmentSelector(BaseSelector[TimeSegment]):
    """Segment queries returning SegmentRecord DTOs."""

    def _visible(self):
        return select(TimeSegment).where(TimeSegment.is_placeholder.is_(False))

    def get(self, segment_id: UUID) -> SegmentRecord | None:
        row = self.session.scalars(
            self._visible().where(TimeSegment.id == segment_id)
        ).one_or_none()
        return row.to_dto() if row is not None else None

    def get_many(self, segment_ids: Iterable[UUID]) -> list[SegmentRecord]:
        ids = list(segment_ids)
        if not ids:
            return []
        rows = self.session.scalars(
            self._visible()
            .where(TimeSegment.id.in_(ids))
            .order_by(TimeSegment.time_in)
        ).all()
        return [r.to_dto() for r in rows]

    def open_segment(self, person_id: UUID) -> SegmentRecord | None:
        row = self.session.scalars(
            self._visible().where(
                TimeSegment.person_id == person_id,
                TimeSegment.lifecycle_status == LifecycleStatus.OPEN.value,
            )
        ).first()
        return row.to_dto() if row is not None else None

    def for_person(
        self,
        person_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[SegmentRecord]:
        """
        A person's segments ordered by time_in.

        ``start``/``end`` filter on time_in (inclusive start, exclusive end).
        """
        stmt = self._visible().where(TimeSegment.person_id == person_id)
        if start is not None:
            stmt = stmt.where(TimeSegment.time_in >= start)
        if end is not None:
            stmt = stmt.where(TimeSegment.time_in < end)
        rows = self.session.scalars(stmt.order_by(TimeSegment.time_in)).all()
        return [r.to_dto() for r in rows]

    def closed_between(
        self,
        person_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[SegmentRecord]:
        """Closed segments whose time_in lies in ``[start, end)``."""
        return [
            s for s in self.for_person(person_id, start, end)
            if s.lifecycle_status == LifecycleStatus.CLOSED
        ]

    def minutes_accrued(
        self,
        person_id: UUID,
        day_start: datetime,
        before: datetime,
        exclude: Iterable[UUID] = (),
    ) -> int:
        """
        Whole minutes of closed work, any tier, starting in ``[day_start, before)``.

        Segments named in ``exclude`` are left out; they are about to be
        replaced.
        """
        skip = set(exclude)
        return sum(
            s.duration().minutes
            for s in self.closed_between(person_id, day_start, before)
            if s.id not in skip
        )

    def long_segments(
        self,
        threshold_hours: Decimal,
        person_id: UUID | None = None,
    ) -> list[SegmentRecord]:
        """
        Closed Regular or Overtime segments longer than ``threshold_hours``.

        These were stored before splitting existed and are migration input.
        """
        stmt = self._visible().where(
            TimeSegment.lifecycle_status == LifecycleStatus.CLOSED.value,
            TimeSegment.time_out.is_not(None),
            TimeSegment.tier.in_([Tier.REGULAR.value, Tier.OVERTIME.value]),
        )
        if person_id is not None:
            stmt = stmt.where(TimeSegment.person_id == person_id)
        rows = self.session.scalars(
            stmt.order_by(TimeSegment.created_at, TimeSegment.time_in)
        ).all()
        limit = hours_to_minutes(threshold_hours)
        return [
            dto for dto in (r.to_dto() for r in rows)
            if dto.duration().minutes > limit
        ]


class EditRequestSelector(BaseSelector[TimeSegmentEditRequest]):
    """Edit request queries returning EditRequestRecord DTOs."""

    def get(self, request_id: UUID) -> EditRequestRecord | None:
        row = self.session.get(TimeSegmentEditRequest, request_id)
        return row.to_dto() if row is not None else None

    def for_person(
        self,
        person_id: UUID,
        status: EditRequestStatus | None = None,
    ) -> list[EditRequestRecord]:
        stmt = select(TimeSegmentEditRequest).where(
            TimeSegmentEditRequest.person_id == person_id
        )
        if status is not None:
            stmt = stmt.where(TimeSegmentEditRequest.status == status.value)
        rows = self.session.scalars(
            stmt.order_by(TimeSegmentEditRequest.created_at)
        ).all()
        return [r.to_dto() for r in rows]
