"""
Module: timelog_kernel.models.edit_request
Responsibility: ORM persistence for time segment edit requests.

Architecture position: Kernel > Models.  May import from db/ and domain/
    value types only.

Invariants enforced:
    - Status values limited by check constraint; transition rules are
      enforced by EditRequestService.
    - representative_segment_id references time_segments.id ON DELETE
      RESTRICT, which is why segment replacement parks references on a
      placeholder row before deleting.
    - segment_ids is the live member set and the only deletion scope;
      metadata.original_segments is write-once.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from timelog_kernel.db.base import TrackedBase, UTCDateTime, UUIDString
from timelog_kernel.domain.edit_request import (
    ContinuousSessionMetadata,
    EditRequestKind,
    EditRequestRecord,
    EditRequestStatus,
)


class TimeSegmentEditRequest(TrackedBase):
    """
    A request to replace one session's bounds.

    Contract:
        pending -> approved | rejected; approved | rejected -> pending.

    Guarantees:
        - segment_ids always names rows that exist (the replacer rewrites
          it whenever it replaces members).
    """

    __tablename__ = "time_segment_edit_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_edit_requests_valid_status",
        ),
        CheckConstraint(
            "kind IN ('single', 'continuous_session')",
            name="ck_edit_requests_valid_kind",
        ),
        CheckConstraint(
            "requested_time_out > requested_time_in",
            name="ck_edit_requests_requested_order",
        ),
        Index("ix_edit_requests_person_status", "person_id", "status"),
        Index("ix_edit_requests_representative", "representative_segment_id"),
    )

    person_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    representative_segment_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("time_segments.id", ondelete="RESTRICT"),
        nullable=False,
    )
    segment_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    kind: Mapped[str] = mapped_column(
        String(30), nullable=False, default=EditRequestKind.SINGLE.value,
    )
    # "metadata" is reserved on declarative classes
    session_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict,
    )
    original_time_in: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    original_time_out: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    requested_time_in: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    requested_time_out: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=EditRequestStatus.PENDING.value,
    )
    requested_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reviewed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return f"<TimeSegmentEditRequest {self.id} {self.kind} status={self.status}>"

    @property
    def member_ids(self) -> list[UUID]:
        return [UUID(s) for s in self.segment_ids]

    def set_member_ids(self, ids: list[UUID]) -> None:
        # Assign a new list so the JSON column is flagged dirty.
        self.segment_ids = [str(i) for i in ids]

    def to_dto(self) -> EditRequestRecord:
        """Convert ORM model to frozen domain DTO."""
        return EditRequestRecord(
            id=self.id,
            person_id=self.person_id,
            representative_segment_id=self.representative_segment_id,
            segment_ids=tuple(self.member_ids),
            kind=EditRequestKind(self.kind),
            metadata=ContinuousSessionMetadata.from_dict(self.session_metadata),
            original_time_in=self.original_time_in,
            original_time_out=self.original_time_out,
            requested_time_in=self.requested_time_in,
            requested_time_out=self.requested_time_out,
            status=EditRequestStatus(self.status),
            requested_by=self.requested_by,
            reviewed_by=self.reviewed_by,
            reviewed_at=self.reviewed_at,
        )
