"""
Segment value object -- the read-side shape of one ``time_segments`` row.

Selectors hand these out instead of ORM instances so the grouper and progress
code never touch a live session.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from timelog_kernel.domain.duration import ZERO, ElapsedTime, elapsed
from timelog_kernel.domain.tiers import LifecycleStatus, OvertimeStatus, Tier


@dataclass(frozen=True)
class SegmentRecord:
    id: UUID
    person_id: UUID
    time_in: datetime
    time_out: datetime | None
    tier: Tier
    overtime_status: OvertimeStatus | None
    lifecycle_status: LifecycleStatus
    note: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.lifecycle_status == LifecycleStatus.OPEN

    def end_or(self, now: datetime) -> datetime:
        """time_out, or ``now`` while the segment is still open."""
        return self.time_out if self.time_out is not None else now

    def duration(self, now: datetime | None = None) -> ElapsedTime:
        if self.time_out is None:
            return ZERO if now is None else elapsed(self.time_in, now)
        return elapsed(self.time_in, self.time_out)
