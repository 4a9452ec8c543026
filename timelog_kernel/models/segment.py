"""
Module: timelog_kernel.models.segment
Responsibility: ORM persistence for time segments, the row-level record of
    worked time.

Architecture position: Kernel > Models.  May import from db/ and domain/
    value types only.

Invariants enforced:
    - time_out, when present, is strictly after time_in (check constraint).
    - overtime_status is set iff tier != 'regular' (check constraint).
    - At most one open segment per person (partial unique index on both
      PostgreSQL and SQLite; ClockService checks first for a clean error).

Failure modes:
    - IntegrityError on a second open segment for the same person.
    - IntegrityError on DELETE while an edit request still references the
      row (ON DELETE RESTRICT on the request side).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from timelog_kernel.db.base import TrackedBase, UTCDateTime, UUIDString
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.tiers import LifecycleStatus, OvertimeStatus, Tier


class TimeSegment(TrackedBase):
    """
    One stored stretch of time in a single tier.

    Contract:
        Created open at clock-in, closed at clock-out (possibly alongside
        overtime siblings), and otherwise only ever deleted and replaced
        wholesale by the segment replacer.

    Guarantees:
        - is_placeholder rows exist only inside a replace_segments call and
          are never returned by selectors.
    """

    __tablename__ = "time_segments"

    __table_args__ = (
        CheckConstraint(
            "time_out IS NULL OR time_out > time_in",
            name="ck_time_segments_time_order",
        ),
        CheckConstraint(
            "tier IN ('regular', 'overtime', 'extended_overtime')",
            name="ck_time_segments_valid_tier",
        ),
        CheckConstraint(
            "(tier = 'regular' AND overtime_status IS NULL) OR "
            "(tier <> 'regular' AND overtime_status IN ('pending', 'approved', 'rejected'))",
            name="ck_time_segments_overtime_status",
        ),
        CheckConstraint(
            "lifecycle_status IN ('open', 'closed')",
            name="ck_time_segments_valid_lifecycle",
        ),
        Index(
            "uq_time_segments_one_open_per_person",
            "person_id",
            unique=True,
            postgresql_where=text("lifecycle_status = 'open'"),
            sqlite_where=text("lifecycle_status = 'open'"),
        ),
        Index("ix_time_segments_person_time_in", "person_id", "time_in"),
    )

    person_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    time_in: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    time_out: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    tier: Mapped[str] = mapped_column(
        String(30), nullable=False, default=Tier.REGULAR.value,
    )
    overtime_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    lifecycle_status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=LifecycleStatus.OPEN.value,
    )
    note: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    is_placeholder: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )

    def __repr__(self) -> str:
        return (
            f"<TimeSegment {self.id} person={self.person_id} "
            f"{self.tier} {self.time_in}..{self.time_out}>"
        )

    def to_dto(self) -> SegmentRecord:
        """Convert ORM model to frozen domain DTO."""
        return SegmentRecord(
            id=self.id,
            person_id=self.person_id,
            time_in=self.time_in,
            time_out=self.time_out,
            tier=Tier(self.tier),
            overtime_status=(
                OvertimeStatus(self.overtime_status) if self.overtime_status else None
            ),
            lifecycle_status=LifecycleStatus(self.lifecycle_status),
            note=self.note,
            approved_by=self.approved_by,
            approved_at=self.approved_at,
        )
