"""
ProgressService -- read-side views built from current segments.

Responsibility:
    Continuous sessions for display/editing, day summaries, and internship
    progress with its completion gate.  Read-only: nothing here flushes.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from timelog_kernel.domain.clock import Clock
from timelog_kernel.domain.edit_request import EditRequestRecord, EditRequestStatus, envelope
from timelog_kernel.domain.grouper import DaySummary, Session as WorkSession
from timelog_kernel.domain.grouper import group_sessions, summarize_sessions
from timelog_kernel.domain.progress import EditOverlay, ProgressSummary, compute_progress
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.tiers import (
    DEFAULT_GROUPING_POLICY,
    DEFAULT_TIER_POLICY,
    GroupingPolicy,
    TierPolicy,
)
from timelog_kernel.logging_config import get_logger
from timelog_kernel.models.segment import TimeSegment
from timelog_kernel.selectors.segment_selector import EditRequestSelector, SegmentSelector
from timelog_kernel.services.base import BaseService

logger = get_logger("services.progress")


class ProgressService(BaseService[TimeSegment]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        tier_policy: TierPolicy = DEFAULT_TIER_POLICY,
        grouping_policy: GroupingPolicy = DEFAULT_GROUPING_POLICY,
    ):
        super().__init__(session, clock)
        self.tier_policy = tier_policy
        self.grouping_policy = grouping_policy
        self._segments = SegmentSelector(session)
        self._requests = EditRequestSelector(session)

    def sessions_for_person(
        self,
        person_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> list[WorkSession]:
        """Continuous sessions starting in ``[start, end)``; open ones end at ``now``."""
        segments = self._segments.for_person(person_id, start, end)
        return group_sessions(segments, now or self.clock.now(), self.grouping_policy)

    def day_summaries(
        self,
        person_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DaySummary]:
        return summarize_sessions(
            self.sessions_for_person(person_id, start, end),
            self.tier_policy,
        )

    def progress(
        self,
        person_id: UUID,
        required_hours: Decimal | int | str,
        include_edit_requests: bool = False,
    ) -> ProgressSummary:
        """
        Completed hours against ``required_hours``.

        With ``include_edit_requests``, approved requests whose member rows
        do not span the requested range are counted at the requested range.
        """
        segments = self._segments.for_person(person_id)
        overlays = self._overlays(person_id) if include_edit_requests else []
        summary = compute_progress(
            segments, required_hours, overlays=overlays, policy=self.tier_policy,
        )
        logger.debug(
            "progress_computed",
            extra={
                "completed_hours": str(summary.completed_hours),
                "overlay_count": len(overlays),
            },
        )
        return summary

    def _overlays(self, person_id: UUID) -> list[EditOverlay]:
        """
        Approved requests whose member rows no longer span the requested range.

        A later approval on the same rows rewrites the earlier request's
        ``segment_ids``, so several approved requests can name one set of
        rows.  Only one of them may speak for those rows: none when any of
        them matches the live envelope, otherwise the most recently reviewed.
        """
        pending: list[tuple[EditRequestRecord, list[SegmentRecord]]] = []
        claimed: set[UUID] = set()
        for req in self._requests.for_person(person_id, EditRequestStatus.APPROVED):
            members = [
                m for m in self._segments.get_many(req.segment_ids)
                if m.time_out is not None
            ]
            requested = (req.requested_time_in, req.requested_time_out)
            if members and envelope((m.time_in, m.time_out) for m in members) == requested:
                claimed.update(m.id for m in members)
            else:
                pending.append((req, members))

        # newest review first; ties go to the later request
        pending = sorted(
            reversed(pending), key=lambda item: item[0].reviewed_at, reverse=True,
        )
        overlays = []
        for req, members in pending:
            ids = frozenset(m.id for m in members)
            if ids & claimed:
                continue
            claimed |= ids
            overlays.append(
                EditOverlay(
                    segment_ids=ids,
                    time_in=req.requested_time_in,
                    time_out=req.requested_time_out,
                )
            )
        return overlays
