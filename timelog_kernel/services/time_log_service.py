"""
TimeLogService -- the public entry point of the reconciliation engine.

Responsibility:
    Run each public operation as one atomic unit and report the outcome as
    an ``OperationResult``.  Domain errors and store failures never cross
    this boundary as exceptions.

Architecture position:
    Kernel > Services -- the only service that commits or rolls back.  The
    services it wraps are flush-only.

Transaction model:
    Every mutating operation runs inside a SAVEPOINT.  On failure the
    SAVEPOINT is rolled back, so the caller's transaction is exactly as it
    was; with ``auto_commit`` (the default) success commits and failure
    also rolls back the outer transaction.  Migration is the exception: it
    keeps one SAVEPOINT per segment and commits per segment itself.

Failure reporting:
    - TimeLogError -> ``error_code`` is the exception's code, ``error`` its
      message.
    - sqlalchemy IntegrityError -> REFERENTIAL_INTEGRITY_VIOLATION.
    - any other SQLAlchemyError -> STORE_ERROR with a coarse message.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Sequence
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError as SAIntegrityError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timelog_kernel.domain.clock import Clock, SystemClock
from timelog_kernel.domain.edit_request import EditAction
from timelog_kernel.domain.tiers import (
    DEFAULT_GROUPING_POLICY,
    DEFAULT_TIER_POLICY,
    GroupingPolicy,
    OvertimeStatus,
    TierPolicy,
)
from timelog_kernel.exceptions import ReferentialIntegrityError, TimeLogError
from timelog_kernel.logging_config import LogContext, get_logger
from timelog_kernel.services.clock_service import ClockService
from timelog_kernel.services.edit_request_service import EditRequestService
from timelog_kernel.services.migration_service import MigrationService
from timelog_kernel.services.overtime_review_service import OvertimeReviewService
from timelog_kernel.services.progress_service import ProgressService

logger = get_logger("services.time_log")

STORE_ERROR = "STORE_ERROR"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one public operation."""

    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    retryable: bool = False

    @property
    def is_success(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None) -> OperationResult:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, exc: TimeLogError) -> OperationResult:
        return cls(
            success=False,
            error=str(exc),
            error_code=exc.code,
            retryable=exc.retryable,
        )


class TimeLogService:
    """
    Facade over clock, edit, review, migration and progress services.

    Contract:
        Every method returns an ``OperationResult``; none raises for domain
        or store failures.

    Args:
        session: SQLAlchemy session.  The facade commits/rolls it back when
            ``auto_commit`` is True.
        clock: Time source for defaults and review timestamps.
        tier_policy: Tier thresholds and day timezone.
        grouping_policy: Continuity tolerance for session grouping.
        auto_commit: Commit on success / roll back on failure.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        tier_policy: TierPolicy = DEFAULT_TIER_POLICY,
        grouping_policy: GroupingPolicy = DEFAULT_GROUPING_POLICY,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._tier_policy = tier_policy

        self._clock_service = ClockService(session, self._clock, tier_policy)
        self._edit_service = EditRequestService(
            session, self._clock, tier_policy, grouping_policy,
        )
        self._review_service = OvertimeReviewService(session, self._clock)
        self._progress_service = ProgressService(
            session, self._clock, tier_policy, grouping_policy,
        )

    @classmethod
    def from_config(
        cls,
        session: Session,
        config,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ) -> TimeLogService:
        """Build from a ``timelog_config.TimeLogConfig``."""
        from timelog_config.bridges import build_grouping_policy, build_tier_policy

        return cls(
            session,
            clock=clock,
            tier_policy=build_tier_policy(config),
            grouping_policy=build_grouping_policy(config),
            auto_commit=auto_commit,
        )

    # ------------------------------------------------------------------
    # Clocking
    # ------------------------------------------------------------------

    def clock_in(self, person_id: UUID, time: datetime | None = None) -> OperationResult:
        return self._run(
            "clock_in",
            lambda: self._clock_service.clock_in(person_id, time),
            person_id=person_id,
        )

    def clock_out(
        self,
        person_id: UUID,
        time: datetime | None = None,
        discard_overtime: bool = False,
        note: str | None = None,
    ) -> OperationResult:
        return self._run(
            "clock_out",
            lambda: self._clock_service.clock_out(
                person_id, time, discard_overtime=discard_overtime, note=note,
            ),
            person_id=person_id,
        )

    # ------------------------------------------------------------------
    # Edit requests
    # ------------------------------------------------------------------

    def create_edit_request(
        self,
        segment_ids: Sequence[UUID],
        requested_time_in: datetime,
        requested_time_out: datetime,
        requested_by: UUID,
    ) -> OperationResult:
        return self._run(
            "create_edit_request",
            lambda: self._edit_service.create(
                segment_ids, requested_time_in, requested_time_out, requested_by,
            ),
            actor_id=requested_by,
        )

    def process_edit_request(
        self,
        request_ids: UUID | Sequence[UUID],
        action: EditAction | str,
        reviewer_id: UUID | None = None,
    ) -> OperationResult:
        if isinstance(request_ids, UUID):
            request_ids = [request_ids]
        return self._run(
            "process_edit_request",
            lambda: self._edit_service.process(request_ids, action, reviewer_id),
            actor_id=reviewer_id,
        )

    # ------------------------------------------------------------------
    # Overtime review and migration
    # ------------------------------------------------------------------

    def review_overtime(
        self,
        segment_id: UUID,
        decision: OvertimeStatus | str,
        reviewer_id: UUID,
    ) -> OperationResult:
        return self._run(
            "review_overtime",
            lambda: self._review_service.review(segment_id, decision, reviewer_id),
            actor_id=reviewer_id,
            segment_id=segment_id,
        )

    def check_long_segments(self, person_id: UUID | None = None) -> OperationResult:
        service = MigrationService(self._session, self._clock, self._tier_policy)
        return self._run(
            "check_long_segments",
            lambda: service.check(person_id),
            mutating=False,
            person_id=person_id,
        )

    def migrate_long_segments(self, person_id: UUID | None = None) -> OperationResult:
        service = MigrationService(
            self._session, self._clock, self._tier_policy, auto_commit=self._auto_commit,
        )
        return self._run(
            "migrate_long_segments",
            lambda: service.migrate(person_id),
            mutating=False,
            person_id=person_id,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_sessions_for_person(
        self,
        person_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> OperationResult:
        return self._run(
            "get_sessions_for_person",
            lambda: self._progress_service.sessions_for_person(person_id, start, end),
            mutating=False,
            person_id=person_id,
        )

    def get_day_summaries(
        self,
        person_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> OperationResult:
        return self._run(
            "get_day_summaries",
            lambda: self._progress_service.day_summaries(person_id, start, end),
            mutating=False,
            person_id=person_id,
        )

    def compute_progress(
        self,
        person_id: UUID,
        required_hours: Decimal | int | str,
        include_edit_requests: bool = False,
    ) -> OperationResult:
        return self._run(
            "compute_progress",
            lambda: self._progress_service.progress(
                person_id, required_hours, include_edit_requests,
            ),
            mutating=False,
            person_id=person_id,
        )

    # ------------------------------------------------------------------
    # Transaction handling
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        fn: Callable[[], Any],
        mutating: bool = True,
        **context: UUID | None,
    ) -> OperationResult:
        log_fields = {k: str(v) for k, v in context.items() if v is not None}
        with LogContext.bind(correlation_id=str(uuid4()), **log_fields):
            logger.info(f"{operation}_started")
            t0 = time.monotonic()
            savepoint = self._session.begin_nested() if mutating else None

            try:
                data = fn()
                if savepoint is not None:
                    savepoint.commit()
                if self._auto_commit and mutating:
                    self._session.commit()
            except TimeLogError as exc:
                self._rollback(savepoint)
                logger.warning(
                    f"{operation}_failed",
                    extra={"error_code": exc.code, "retryable": exc.retryable},
                )
                return OperationResult.failure(exc)
            except SAIntegrityError as exc:
                self._rollback(savepoint)
                err = ReferentialIntegrityError(operation, str(exc.orig))
                logger.error(f"{operation}_failed", exc_info=True)
                return OperationResult.failure(err)
            except SQLAlchemyError:
                self._rollback(savepoint)
                logger.error(f"{operation}_failed", exc_info=True)
                return OperationResult(
                    success=False,
                    error="Database operation failed; no changes were saved",
                    error_code=STORE_ERROR,
                )

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(f"{operation}_completed", extra={"duration_ms": duration_ms})
            return OperationResult.ok(data)

    def _rollback(self, savepoint) -> None:
        if savepoint is not None and savepoint.is_active:
            savepoint.rollback()
        if self._auto_commit:
            self._session.rollback()
