"""
OvertimeReviewService -- approve, reject or reset overtime on one segment.

Architecture position:
    Kernel > Services -- flush-only.

Invariants enforced:
    - Only closed Overtime/Extended segments can be reviewed.
    - approved/rejected stamp approved_by and approved_at; pending clears
      both.
"""

from uuid import UUID

from sqlalchemy import select

from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.tiers import LifecycleStatus, OvertimeStatus, Tier
from timelog_kernel.exceptions import (
    InvalidReviewDecisionError,
    OvertimeReviewNotAllowedError,
    SegmentNotFoundError,
)
from timelog_kernel.logging_config import get_logger
from timelog_kernel.models.segment import TimeSegment
from timelog_kernel.services.base import BaseService

logger = get_logger("services.overtime_review")


class OvertimeReviewService(BaseService[TimeSegment]):

    def review(
        self,
        segment_id: UUID,
        decision: OvertimeStatus | str,
        reviewer_id: UUID,
    ) -> SegmentRecord:
        try:
            status = OvertimeStatus(decision)
        except ValueError:
            raise InvalidReviewDecisionError(str(decision)) from None

        row = self.session.scalars(
            select(TimeSegment)
            .where(TimeSegment.id == segment_id, TimeSegment.is_placeholder.is_(False))
            .with_for_update()
        ).one_or_none()
        if row is None:
            raise SegmentNotFoundError(str(segment_id))
        if row.tier == Tier.REGULAR.value:
            raise OvertimeReviewNotAllowedError(str(segment_id), "segment is regular time")
        if row.lifecycle_status == LifecycleStatus.OPEN.value:
            raise OvertimeReviewNotAllowedError(str(segment_id), "segment is still open")

        previous = row.overtime_status
        row.overtime_status = status.value
        if status == OvertimeStatus.PENDING:
            row.approved_by = None
            row.approved_at = None
        else:
            row.approved_by = reviewer_id
            row.approved_at = self.clock.now()
        self.session.flush()

        logger.info(
            "overtime_reviewed",
            extra={
                "segment_id": str(row.id),
                "from_status": previous,
                "to_status": status.value,
            },
        )
        return row.to_dto()
