"""
Pure domain layer.

Value objects and functions with NO dependencies on the ORM, the database
or I/O.  Everything here is immutable and deterministic; the current time
enters only through a ``Clock`` passed in by the caller.
"""

from timelog_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from timelog_kernel.domain.duration import (
    ElapsedTime,
    elapsed,
    format_duration,
    hours_to_minutes,
    minutes_to_hours,
    sum_elapsed,
    truncate2,
    truncate_to_minute,
)
from timelog_kernel.domain.edit_request import (
    ContinuousSessionMetadata,
    EditAction,
    EditRequestKind,
    EditRequestRecord,
    EditRequestStatus,
)
from timelog_kernel.domain.grouper import (
    DaySummary,
    Session,
    SessionClassification,
    group_sessions,
    summarize_sessions,
)
from timelog_kernel.domain.progress import (
    EditOverlay,
    OvertimeBreakdown,
    ProgressSummary,
    compute_progress,
)
from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.domain.splitter import (
    SegmentSpec,
    SplitResult,
    classify_open_tier,
    split_session,
)
from timelog_kernel.domain.tiers import (
    GroupingPolicy,
    LifecycleStatus,
    OvertimeStatus,
    Tier,
    TierPolicy,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ElapsedTime",
    "elapsed",
    "format_duration",
    "hours_to_minutes",
    "minutes_to_hours",
    "sum_elapsed",
    "truncate2",
    "truncate_to_minute",
    "ContinuousSessionMetadata",
    "EditAction",
    "EditRequestKind",
    "EditRequestRecord",
    "EditRequestStatus",
    "DaySummary",
    "Session",
    "SessionClassification",
    "group_sessions",
    "summarize_sessions",
    "EditOverlay",
    "OvertimeBreakdown",
    "ProgressSummary",
    "compute_progress",
    "SegmentRecord",
    "SegmentSpec",
    "SplitResult",
    "classify_open_tier",
    "split_session",
    "GroupingPolicy",
    "LifecycleStatus",
    "OvertimeStatus",
    "Tier",
    "TierPolicy",
]
