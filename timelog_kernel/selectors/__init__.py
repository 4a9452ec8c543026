"""Read-only selectors."""

from timelog_kernel.selectors.base import BaseSelector
from timelog_kernel.selectors.segment_selector import EditRequestSelector, SegmentSelector

__all__ = ["BaseSelector", "SegmentSelector", "EditRequestSelector"]
