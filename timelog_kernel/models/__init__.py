"""ORM models for the time log kernel."""

from timelog_kernel.models.edit_request import TimeSegmentEditRequest
from timelog_kernel.models.segment import TimeSegment

__all__ = ["TimeSegment", "TimeSegmentEditRequest"]
