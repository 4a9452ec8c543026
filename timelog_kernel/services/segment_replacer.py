"""
SegmentReplacer -- delete-and-recreate segments without breaking references.

Responsibility:
    Replace a known set of segment rows with freshly split rows while edit
    requests keep pointing at live rows.  Approval, revert, long-segment
    migration and discard-mode clock-out all go through here.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - Deletion scope is exactly the ids passed in, never a date range.
    - ``time_segment_edit_requests.representative_segment_id`` is
      ON DELETE RESTRICT.  References are parked on a placeholder row
      before the originals go, moved to the new primary row afterwards, and
      the placeholder is removed before returning.  No placeholder survives
      a successful call.
    - Every request whose ``segment_ids`` named a replaced row is rewritten
      to name the new rows instead.

Failure modes:
    - SegmentConflictError (retryable) if any expected row is missing,
      usually because a concurrent operation replaced it first.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select

from timelog_kernel.domain.splitter import SegmentSpec
from timelog_kernel.domain.tiers import LifecycleStatus, OvertimeStatus, Tier
from timelog_kernel.exceptions import SegmentConflictError
from timelog_kernel.logging_config import get_logger
from timelog_kernel.models.edit_request import TimeSegmentEditRequest
from timelog_kernel.models.segment import TimeSegment
from timelog_kernel.services.base import BaseService

logger = get_logger("services.segment_replacer")


@dataclass(frozen=True)
class Replacement:
    """What replace_segments did."""

    removed_ids: tuple[UUID, ...]
    new_ids: tuple[UUID, ...]
    primary_id: UUID
    repointed_request_ids: tuple[UUID, ...] = ()


class SegmentReplacer(BaseService[TimeSegment]):
    """Row swap with the placeholder protocol hidden inside."""

    def lock(self, segment_ids: Iterable[UUID]) -> list[TimeSegment]:
        """
        Lock exactly ``segment_ids`` FOR UPDATE.

        Raises:
            SegmentConflictError: if any id no longer resolves.
        """
        expected = list(dict.fromkeys(segment_ids))
        rows = self.session.scalars(
            select(TimeSegment)
            .where(
                TimeSegment.id.in_(expected),
                TimeSegment.is_placeholder.is_(False),
            )
            .order_by(TimeSegment.time_in)
            .with_for_update()
        ).all()
        found = {r.id for r in rows}
        missing = [i for i in expected if i not in found]
        if missing:
            raise SegmentConflictError(
                expected_ids=[str(i) for i in expected],
                missing_ids=[str(i) for i in missing],
            )
        return list(rows)

    def replace_segments(
        self,
        old_ids: Sequence[UUID],
        new_specs: Sequence[SegmentSpec],
        *,
        repoint_to: UUID | None = None,
        reviewer_id: UUID | None = None,
        reviewed_at: datetime | None = None,
        note: str | None = None,
    ) -> Replacement:
        """
        Replace ``old_ids`` with rows built from ``new_specs``.

        Args:
            old_ids: Exact ids to remove.
            new_specs: Rows to create (closed).  May be empty when
                ``repoint_to`` names a surviving row.
            repoint_to: Row that inherits references when nothing new is
                created.
            reviewer_id: Stamped as approved_by on approved overtime rows.
            reviewed_at: Stamped as approved_at on approved overtime rows.
            note: Carried onto every new row.

        Returns:
            Replacement describing removed/new ids and the request rows
            whose references moved.
        """
        if not new_specs and repoint_to is None:
            raise ValueError("replace_segments needs new rows or a repoint target")

        old_rows = self.lock(old_ids)
        removed = tuple(r.id for r in old_rows)
        person_id = old_rows[0].person_id
        if note is None:
            note = next((r.note for r in old_rows if r.note), None)

        # 1. Park references on a placeholder.
        placeholder = TimeSegment(
            person_id=person_id,
            time_in=old_rows[0].time_in,
            time_out=old_rows[0].time_in + timedelta(minutes=1),
            tier=Tier.REGULAR.value,
            overtime_status=None,
            lifecycle_status=LifecycleStatus.CLOSED.value,
            is_placeholder=True,
        )
        self.session.add(placeholder)
        self.session.flush()

        removed_set = set(removed)
        requests = self._requests_touching(person_id, removed_set)
        for req in requests:
            if req.representative_segment_id in removed_set:
                req.representative_segment_id = placeholder.id
        self.session.flush()

        # 2. Delete the originals by id.
        for row in old_rows:
            self.session.delete(row)
        self.session.flush()

        # 3. Create the replacements.
        new_rows = [
            self._row_from_spec(person_id, spec, reviewer_id, reviewed_at, note)
            for spec in new_specs
        ]
        self.session.add_all(new_rows)
        self.session.flush()

        new_ids = tuple(r.id for r in new_rows)
        primary_id = self._primary(new_rows) if new_rows else repoint_to

        # 4. Move references to live rows and drop the placeholder.
        for req in requests:
            if req.representative_segment_id == placeholder.id:
                req.representative_segment_id = primary_id
            members = [m for m in req.member_ids if m not in removed_set]
            members.extend(new_ids)
            if not members:
                members = [primary_id]
            req.set_member_ids(list(dict.fromkeys(members)))
        self.session.flush()

        self.session.delete(placeholder)
        self.session.flush()

        logger.info(
            "segments_replaced",
            extra={
                "person_id": str(person_id),
                "removed_count": len(removed),
                "created_count": len(new_ids),
                "repointed_requests": len(requests),
            },
        )

        return Replacement(
            removed_ids=removed,
            new_ids=new_ids,
            primary_id=primary_id,
            repointed_request_ids=tuple(r.id for r in requests),
        )

    def _requests_touching(
        self, person_id: UUID, ids: set[UUID],
    ) -> list[TimeSegmentEditRequest]:
        candidates = self.session.scalars(
            select(TimeSegmentEditRequest)
            .where(TimeSegmentEditRequest.person_id == person_id)
            .with_for_update()
        ).all()
        return [
            req for req in candidates
            if req.representative_segment_id in ids
            or any(m in ids for m in req.member_ids)
        ]

    @staticmethod
    def _primary(rows: list[TimeSegment]) -> UUID:
        for row in rows:
            if row.tier == Tier.REGULAR.value:
                return row.id
        return rows[0].id

    @staticmethod
    def _row_from_spec(
        person_id: UUID,
        spec: SegmentSpec,
        reviewer_id: UUID | None,
        reviewed_at: datetime | None,
        note: str | None,
    ) -> TimeSegment:
        approved = spec.overtime_status == OvertimeStatus.APPROVED
        return TimeSegment(
            person_id=person_id,
            time_in=spec.time_in,
            time_out=spec.time_out,
            tier=spec.tier.value,
            overtime_status=spec.overtime_status.value if spec.overtime_status else None,
            lifecycle_status=LifecycleStatus.CLOSED.value,
            note=note,
            approved_by=reviewer_id if approved else None,
            approved_at=reviewed_at if approved else None,
        )
