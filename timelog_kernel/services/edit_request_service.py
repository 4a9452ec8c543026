"""
EditRequestService -- the edit reconciliation workflow.

Responsibility:
    Create edit requests against one continuous session, and approve,
    reject or revert them.  Approve and revert re-split a range and swap the
    stored rows through SegmentReplacer.

Architecture position:
    Kernel > Services -- flush-only; TimeLogService owns the transaction.

Invariants enforced:
    - Status changes follow EDIT_TRANSITIONS only.
    - Approve re-splits the requested range with Overtime/Extended forced to
      approved; revert re-splits the original range with them back at
      pending.  Both place the tiers on the day's scale, counting the
      person's other work earlier that day but not the rows being replaced.
    - After approve or revert every participating request names the newly
      created rows in segment_ids and the new Regular row as its
      representative.  metadata.original_segments is never touched.
    - Validation runs before any write, so a failed call leaves the request
      exactly as it was.

Failure modes:
    - EditRequestNotFoundError, SegmentNotFoundError.
    - InvalidSessionSelectionError, InvalidTimeRangeError,
      ZeroLengthDurationError on create.
    - InvalidEditActionError, InvalidEditTransitionError on process.
    - SegmentConflictError (retryable) when member rows vanished.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from timelog_kernel.domain.clock import Clock
from timelog_kernel.domain.duration import local_day_bounds
from timelog_kernel.domain.edit_request import (
    ContinuousSessionMetadata,
    EditAction,
    EditRequestRecord,
    EditRequestStatus,
    can_transition,
    envelope,
)
from timelog_kernel.domain.grouper import group_sessions
from timelog_kernel.domain.splitter import split_session, validate_range
from timelog_kernel.domain.tiers import (
    DEFAULT_GROUPING_POLICY,
    DEFAULT_TIER_POLICY,
    GroupingPolicy,
    OvertimeStatus,
    Tier,
    TierPolicy,
)
from timelog_kernel.exceptions import (
    EditRequestNotFoundError,
    InvalidEditTransitionError,
    InvalidSessionSelectionError,
    SegmentNotFoundError,
)
from timelog_kernel.logging_config import LogContext, get_logger
from timelog_kernel.models.edit_request import TimeSegmentEditRequest
from timelog_kernel.selectors.segment_selector import SegmentSelector
from timelog_kernel.services.base import BaseService
from timelog_kernel.services.segment_replacer import SegmentReplacer

logger = get_logger("services.edit_request")


@dataclass(frozen=True)
class ProcessOutcome:
    action: EditAction
    requests: tuple[EditRequestRecord, ...]
    removed_segment_ids: tuple[UUID, ...] = ()
    new_segment_ids: tuple[UUID, ...] = ()


class EditRequestService(BaseService[TimeSegmentEditRequest]):
    """Create / approve / reject / revert edit requests."""

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
        self._selector = SegmentSelector(session)
        self._replacer = SegmentReplacer(session, self.clock)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        segment_ids: Sequence[UUID],
        requested_time_in: datetime,
        requested_time_out: datetime,
        requested_by: UUID,
    ) -> EditRequestRecord:
        """
        Record a request to move one session to new bounds.

        The segment ids must exist, belong to one person, be closed, and
        form exactly one continuous session.
        """
        ids = list(dict.fromkeys(segment_ids))
        if not ids:
            raise InvalidSessionSelectionError([], "no segments selected")

        new_in, new_out = validate_range(requested_time_in, requested_time_out)

        members = self._selector.get_many(ids)
        found = {m.id for m in members}
        for segment_id in ids:
            if segment_id not in found:
                raise SegmentNotFoundError(str(segment_id))

        str_ids = [str(i) for i in ids]
        if len({m.person_id for m in members}) != 1:
            raise InvalidSessionSelectionError(str_ids, "segments belong to different people")
        if any(m.is_open for m in members):
            raise InvalidSessionSelectionError(str_ids, "segment is still open")

        sessions = group_sessions(members, self.clock.now(), self.grouping_policy)
        if len(sessions) != 1:
            raise InvalidSessionSelectionError(
                str_ids, f"segments form {len(sessions)} sessions, expected 1",
            )
        session = sessions[0]

        metadata = ContinuousSessionMetadata.capture(members)
        representative = next(
            (m for m in session.segments if m.tier == Tier.REGULAR),
            session.segments[0],
        )

        row = TimeSegmentEditRequest(
            person_id=session.person_id,
            representative_segment_id=representative.id,
            segment_ids=[str(m.id) for m in session.segments],
            kind=metadata.kind.value,
            session_metadata=metadata.to_dict(),
            original_time_in=session.time_in,
            original_time_out=session.time_out,
            requested_time_in=new_in,
            requested_time_out=new_out,
            status=EditRequestStatus.PENDING.value,
            requested_by=requested_by,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "edit_request_created",
            extra={
                "request_id": str(row.id),
                "kind": row.kind,
                "segment_count": len(members),
            },
        )
        return row.to_dto()

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    def process(
        self,
        request_ids: Sequence[UUID],
        action: EditAction | str,
        reviewer_id: UUID | None = None,
    ) -> ProcessOutcome:
        """
        Apply ``action`` to one request, or to several legacy requests that
        cover the same physical session.
        """
        action = EditAction.parse(action)
        requests = self._load_for_update(request_ids)

        if len({r.person_id for r in requests}) != 1:
            raise InvalidSessionSelectionError(
                [str(r.id) for r in requests], "requests belong to different people",
            )

        target = action.target_status
        for req in requests:
            current = EditRequestStatus(req.status)
            if not can_transition(current, target):
                raise InvalidEditTransitionError(str(req.id), current.value, target.value)

        with LogContext.bind(request_id=",".join(str(r.id) for r in requests)):
            if action == EditAction.REJECT:
                return self._reject(requests, reviewer_id)
            if action == EditAction.APPROVE:
                return self._approve(requests, reviewer_id)
            return self._revert(requests)

    def _load_for_update(self, request_ids: Iterable[UUID]) -> list[TimeSegmentEditRequest]:
        ids = list(dict.fromkeys(request_ids))
        if not ids:
            raise EditRequestNotFoundError("<none>")
        rows = self.session.scalars(
            select(TimeSegmentEditRequest)
            .where(TimeSegmentEditRequest.id.in_(ids))
            .with_for_update()
        ).all()
        by_id = {r.id: r for r in rows}
        for request_id in ids:
            if request_id not in by_id:
                raise EditRequestNotFoundError(str(request_id))
        return [by_id[i] for i in ids]

    def _reject(
        self, requests: list[TimeSegmentEditRequest], reviewer_id: UUID | None,
    ) -> ProcessOutcome:
        now = self.clock.now()
        for req in requests:
            req.status = EditRequestStatus.REJECTED.value
            req.reviewed_by = reviewer_id
            req.reviewed_at = now
        self.session.flush()

        logger.info("edit_request_rejected", extra={"request_count": len(requests)})
        return ProcessOutcome(
            action=EditAction.REJECT,
            requests=tuple(r.to_dto() for r in requests),
        )

    def _approve(
        self, requests: list[TimeSegmentEditRequest], reviewer_id: UUID | None,
    ) -> ProcessOutcome:
        now = self.clock.now()
        time_in, time_out = envelope(
            (r.requested_time_in, r.requested_time_out) for r in requests
        )
        replacement = self._swap(
            requests,
            time_in,
            time_out,
            OvertimeStatus.APPROVED,
            reviewer_id=reviewer_id,
            reviewed_at=now,
        )
        for req in requests:
            req.status = EditRequestStatus.APPROVED.value
            req.reviewed_by = reviewer_id
            req.reviewed_at = now
        self.session.flush()

        logger.info(
            "edit_request_approved",
            extra={
                "request_count": len(requests),
                "removed_count": len(replacement.removed_ids),
                "created_count": len(replacement.new_ids),
            },
        )
        return ProcessOutcome(
            action=EditAction.APPROVE,
            requests=tuple(r.to_dto() for r in requests),
            removed_segment_ids=replacement.removed_ids,
            new_segment_ids=replacement.new_ids,
        )

    def _revert(self, requests: list[TimeSegmentEditRequest]) -> ProcessOutcome:
        time_in, time_out = envelope(
            (r.original_time_in, r.original_time_out) for r in requests
        )
        replacement = self._swap(requests, time_in, time_out, OvertimeStatus.PENDING)
        for req in requests:
            req.status = EditRequestStatus.PENDING.value
            req.reviewed_by = None
            req.reviewed_at = None
        self.session.flush()

        logger.info(
            "edit_request_reverted",
            extra={
                "request_count": len(requests),
                "removed_count": len(replacement.removed_ids),
                "created_count": len(replacement.new_ids),
            },
        )
        return ProcessOutcome(
            action=EditAction.REVERT,
            requests=tuple(r.to_dto() for r in requests),
            removed_segment_ids=replacement.removed_ids,
            new_segment_ids=replacement.new_ids,
        )

    def _swap(
        self,
        requests: list[TimeSegmentEditRequest],
        time_in: datetime,
        time_out: datetime,
        overtime_status: OvertimeStatus,
        reviewer_id: UUID | None = None,
        reviewed_at: datetime | None = None,
    ):
        members: list[UUID] = []
        for req in requests:
            members.extend(req.member_ids)
        members = list(dict.fromkeys(members))

        day_start, _ = local_day_bounds(time_in, self.tier_policy.day_timezone)
        accrued = self._selector.minutes_accrued(
            requests[0].person_id, day_start, time_in, exclude=members,
        )
        result = split_session(
            time_in,
            time_out,
            accrued_minutes=accrued,
            policy=self.tier_policy,
            overtime_status=overtime_status,
        )
        replacement = self._replacer.replace_segments(
            members,
            result.segments,
            reviewer_id=reviewer_id,
            reviewed_at=reviewed_at,
        )
        for req in requests:
            req.representative_segment_id = replacement.primary_id
            req.set_member_ids(list(replacement.new_ids))
        return replacement
