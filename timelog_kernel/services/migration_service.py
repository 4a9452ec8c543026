"""
MigrationService -- split long segments stored before tier splitting.

Responsibility:
    Find closed Regular/Overtime segments longer than the Regular tier and
    replace each with its tiered split.

Architecture position:
    Kernel > Services.  Unlike the other services this one manages
    SAVEPOINTs itself: each segment is its own unit of work.

Invariants enforced:
    - One SAVEPOINT per segment; a failing segment rolls back alone and its
      error is collected, the batch continues.
    - Segments are split on the day's scale, counting the person's earlier
      work that day.  Overtime segments keep their review status on the
      split-off overtime rows.
    - Re-running is safe: split segments are no longer long.
"""

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timelog_kernel.domain.clock import Clock
from timelog_kernel.domain.duration import local_day_bounds
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.splitter import split_session
from timelog_kernel.domain.tiers import DEFAULT_TIER_POLICY, OvertimeStatus, TierPolicy
from timelog_kernel.exceptions import TimeLogError
from timelog_kernel.logging_config import LogContext, get_logger
from timelog_kernel.models.segment import TimeSegment
from timelog_kernel.selectors.segment_selector import SegmentSelector
from timelog_kernel.services.base import BaseService
from timelog_kernel.services.segment_replacer import SegmentReplacer

logger = get_logger("services.migration")


@dataclass(frozen=True)
class MigrationError:
    segment_id: UUID
    code: str
    message: str

    def __str__(self) -> str:
        return f"Segment {self.segment_id}: {self.message}"


@dataclass(frozen=True)
class MigrationReport:
    processed: int
    errors: tuple[MigrationError, ...] = field(default_factory=tuple)

    @property
    def is_success(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class LongSegmentCheck:
    has_long_segments: bool
    count: int
    segments: tuple[SegmentRecord, ...] = ()


class MigrationService(BaseService[TimeSegment]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: TierPolicy = DEFAULT_TIER_POLICY,
        auto_commit: bool = False,
    ):
        super().__init__(session, clock)
        self.policy = policy
        self._auto_commit = auto_commit
        self._selector = SegmentSelector(session)
        self._replacer = SegmentReplacer(session, self.clock)

    def check(self, person_id: UUID | None = None) -> LongSegmentCheck:
        segments = self._selector.long_segments(self.policy.regular_hours, person_id)
        return LongSegmentCheck(
            has_long_segments=bool(segments),
            count=len(segments),
            segments=tuple(segments),
        )

    def migrate(self, person_id: UUID | None = None) -> MigrationReport:
        """
        Split every long segment (optionally for one person).

        With ``auto_commit`` each successful segment is committed as soon
        as it is done, so an interrupted run keeps its progress.
        """
        candidates = self._selector.long_segments(self.policy.regular_hours, person_id)
        logger.info(
            "migration_started",
            extra={"candidate_count": len(candidates)},
        )

        processed = 0
        errors: list[MigrationError] = []
        for seg in candidates:
            with LogContext.bind(segment_id=str(seg.id), person_id=str(seg.person_id)):
                savepoint = self.session.begin_nested()
                try:
                    self._split_one(seg)
                    savepoint.commit()
                except (TimeLogError, SQLAlchemyError) as exc:
                    savepoint.rollback()
                    errors.append(
                        MigrationError(
                            segment_id=seg.id,
                            code=exc.code if isinstance(exc, TimeLogError) else type(exc).__name__,
                            message=str(exc),
                        )
                    )
                    logger.warning("migration_segment_failed", exc_info=True)
                    continue

                processed += 1
                if self._auto_commit:
                    self.session.commit()

        logger.info(
            "migration_completed",
            extra={"processed": processed, "error_count": len(errors)},
        )
        return MigrationReport(processed=processed, errors=tuple(errors))

    def _split_one(self, seg: SegmentRecord) -> None:
        day_start, _ = local_day_bounds(seg.time_in, self.policy.day_timezone)
        accrued = self._selector.minutes_accrued(
            seg.person_id, day_start, seg.time_in, exclude=[seg.id],
        )
        result = split_session(
            seg.time_in,
            seg.time_out,
            accrued_minutes=accrued,
            policy=self.policy,
            overtime_status=seg.overtime_status or OvertimeStatus.PENDING,
        )
        self._replacer.replace_segments(
            [seg.id],
            result.segments,
            reviewer_id=seg.approved_by,
            reviewed_at=seg.approved_at,
            note=seg.note,
        )
