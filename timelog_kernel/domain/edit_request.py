"""
Edit request domain types (``timelog_kernel.domain.edit_request``).

Responsibility
--------------
Pure value objects for the edit reconciliation workflow: the request
lifecycle state machine, the action vocabulary, the tagged request kind and
the creation-time snapshot of a continuous session.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``EDIT_TRANSITIONS`` defines the only valid status changes:
  pending -> approved | rejected, and approved | rejected -> pending (revert).
* ``ContinuousSessionMetadata`` is written once at creation and never
  rewritten; it is what a revert falls back to.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable
from uuid import UUID

from timelog_kernel.domain.segment import SegmentRecord
from timelog_kernel.exceptions import InvalidEditActionError


class EditRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


EDIT_TRANSITIONS: dict[EditRequestStatus, frozenset[EditRequestStatus]] = {
    EditRequestStatus.PENDING: frozenset({
        EditRequestStatus.APPROVED,
        EditRequestStatus.REJECTED,
    }),
    EditRequestStatus.APPROVED: frozenset({EditRequestStatus.PENDING}),
    EditRequestStatus.REJECTED: frozenset({EditRequestStatus.PENDING}),
}


def can_transition(current: EditRequestStatus, target: EditRequestStatus) -> bool:
    return target in EDIT_TRANSITIONS.get(current, frozenset())


class EditAction(str, Enum):
    """What a reviewer asks the workflow to do."""

    APPROVE = "approve"
    REJECT = "reject"
    REVERT = "revert"

    @property
    def target_status(self) -> EditRequestStatus:
        return _ACTION_TARGETS[self]

    @classmethod
    def parse(cls, value: "EditAction | str") -> "EditAction":
        try:
            return cls(value)
        except ValueError:
            raise InvalidEditActionError(str(value)) from None


_ACTION_TARGETS = {
    EditAction.APPROVE: EditRequestStatus.APPROVED,
    EditAction.REJECT: EditRequestStatus.REJECTED,
    EditAction.REVERT: EditRequestStatus.PENDING,
}


class EditRequestKind(str, Enum):
    SINGLE = "single"
    CONTINUOUS_SESSION = "continuous_session"


@dataclass(frozen=True)
class OriginalSegment:
    """Snapshot of one member segment at request creation."""

    id: UUID
    time_in: datetime
    time_out: datetime
    tier: str
    overtime_status: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "time_in": self.time_in.isoformat(),
            "time_out": self.time_out.isoformat(),
            "tier": self.tier,
            "overtime_status": self.overtime_status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OriginalSegment:
        return cls(
            id=UUID(data["id"]),
            time_in=datetime.fromisoformat(data["time_in"]),
            time_out=datetime.fromisoformat(data["time_out"]),
            tier=data["tier"],
            overtime_status=data.get("overtime_status"),
        )


@dataclass(frozen=True)
class ContinuousSessionMetadata:
    """
    Creation-time record of the session a request edits.

    Stored as JSON in ``time_segment_edit_requests.metadata``.
    """

    is_continuous_session: bool
    original_segments: tuple[OriginalSegment, ...]

    @classmethod
    def capture(cls, members: Iterable[SegmentRecord]) -> ContinuousSessionMetadata:
        snapshot = tuple(
            OriginalSegment(
                id=m.id,
                time_in=m.time_in,
                time_out=m.time_out,
                tier=m.tier.value,
                overtime_status=m.overtime_status.value if m.overtime_status else None,
            )
            for m in sorted(members, key=lambda m: m.time_in)
        )
        return cls(
            is_continuous_session=len(snapshot) > 1,
            original_segments=snapshot,
        )

    @property
    def kind(self) -> EditRequestKind:
        if self.is_continuous_session:
            return EditRequestKind.CONTINUOUS_SESSION
        return EditRequestKind.SINGLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_continuous_session": self.is_continuous_session,
            "original_segments": [s.to_dict() for s in self.original_segments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ContinuousSessionMetadata:
        data = data or {}
        return cls(
            is_continuous_session=bool(data.get("is_continuous_session", False)),
            original_segments=tuple(
                OriginalSegment.from_dict(s) for s in data.get("original_segments", [])
            ),
        )


@dataclass(frozen=True)
class EditRequestRecord:
    """Read-side DTO for one edit request."""

    id: UUID
    person_id: UUID
    representative_segment_id: UUID
    segment_ids: tuple[UUID, ...]
    kind: EditRequestKind
    metadata: ContinuousSessionMetadata
    original_time_in: datetime
    original_time_out: datetime
    requested_time_in: datetime
    requested_time_out: datetime
    status: EditRequestStatus
    requested_by: UUID
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None


def envelope(
    ranges: Iterable[tuple[datetime, datetime]],
) -> tuple[datetime, datetime]:
    """Earliest start and latest end over ``ranges``."""
    ranges = list(ranges)
    if not ranges:
        raise ValueError("envelope() of an empty range list")
    return min(r[0] for r in ranges), max(r[1] for r in ranges)
