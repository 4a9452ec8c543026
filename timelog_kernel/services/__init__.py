"""Kernel services.  Only TimeLogService commits; the rest flush."""

from timelog_kernel.services.base import BaseService
from timelog_kernel.services.clock_service import ClockOutResult, ClockService
from timelog_kernel.services.edit_request_service import EditRequestService, ProcessOutcome
from timelog_kernel.services.migration_service import (
    LongSegmentCheck,
    MigrationError,
    MigrationReport,
    MigrationService,
)
from timelog_kernel.services.overtime_review_service import OvertimeReviewService
from timelog_kernel.services.progress_service import ProgressService
from timelog_kernel.services.segment_replacer import Replacement, SegmentReplacer
from timelog_kernel.services.time_log_service import OperationResult, TimeLogService

__all__ = [
    "BaseService",
    "ClockService",
    "ClockOutResult",
    "EditRequestService",
    "ProcessOutcome",
    "MigrationService",
    "MigrationReport",
    "MigrationError",
    "LongSegmentCheck",
    "OvertimeReviewService",
    "ProgressService",
    "SegmentReplacer",
    "Replacement",
    "TimeLogService",
    "OperationResult",
]
