"""
EditRequestService tests.

Covers:
- Creating requests against exactly one continuous session
- Approve: re-split at the requested range with overtime approved
- Reject: status only
- Revert: back to the original range with overtime pending, from
  approved or rejected
- Legacy multi-request processing
- Transition and validation failures
"""

from uuid import uuid4

import pytest

from tests.conftest import at
from timelog_kernel.domain.edit_request import (
    EditAction,
    EditRequestKind,
    EditRequestStatus,
)
from timelog_kernel.domain.tiers import OvertimeStatus, Tier
from timelog_kernel.exceptions import (
    EditRequestNotFoundError,
    InvalidEditActionError,
    InvalidEditTransitionError,
    InvalidSessionSelectionError,
    InvalidTimeRangeError,
    SegmentNotFoundError,
)
from timelog_kernel.selectors.segment_selector import EditRequestSelector, SegmentSelector
from timelog_kernel.services.edit_request_service import EditRequestService


@pytest.fixture
def edit_service(session, deterministic_clock):
    deterministic_clock.set_time(at(22))
    return EditRequestService(session, deterministic_clock)


@pytest.fixture
def day_session(person_id, make_segment):
    """Regular 08-17 + Overtime 17-20 pending."""
    regular = make_segment(person_id, at(8), at(17))
    overtime = make_segment(person_id, at(17), at(20), tier=Tier.OVERTIME)
    return regular, overtime


def _stored(session, person_id):
    return [
        (s.tier, s.time_in, s.time_out, s.overtime_status)
        for s in SegmentSelector(session).for_person(person_id)
    ]


class TestCreate:

    def test_continuous_session_request(self, edit_service, day_session, person_id):
        regular, overtime = day_session
        request = edit_service.create(
            [overtime.id, regular.id], at(7), at(20), requested_by=person_id,
        )

        assert request.status == EditRequestStatus.PENDING
        assert request.kind == EditRequestKind.CONTINUOUS_SESSION
        assert request.representative_segment_id == regular.id
        assert set(request.segment_ids) == {regular.id, overtime.id}
        assert (request.original_time_in, request.original_time_out) == (at(8), at(20))
        assert (request.requested_time_in, request.requested_time_out) == (at(7), at(20))
        assert [s.id for s in request.metadata.original_segments] == [regular.id, overtime.id]

    def test_single_segment_request(self, edit_service, person_id, make_segment):
        seg = make_segment(person_id, at(8), at(17))
        request = edit_service.create([seg.id], at(8), at(18, 0, 30), requested_by=person_id)

        assert request.kind == EditRequestKind.SINGLE
        assert request.requested_time_out == at(18)

    def test_rejects_two_sessions(self, edit_service, person_id, make_segment):
        morning = make_segment(person_id, at(8), at(12))
        afternoon = make_segment(person_id, at(13), at(17))
        with pytest.raises(InvalidSessionSelectionError):
            edit_service.create([morning.id, afternoon.id], at(8), at(17), person_id)

    def test_rejects_mixed_people(self, edit_service, person_id, make_segment):
        mine = make_segment(person_id, at(8), at(12))
        theirs = make_segment(uuid4(), at(12), at(17))
        with pytest.raises(InvalidSessionSelectionError):
            edit_service.create([mine.id, theirs.id], at(8), at(17), person_id)

    def test_rejects_open_segment(self, edit_service, person_id, make_segment):
        seg = make_segment(person_id, at(8), None)
        with pytest.raises(InvalidSessionSelectionError):
            edit_service.create([seg.id], at(8), at(17), person_id)

    def test_rejects_empty_selection(self, edit_service, person_id):
        with pytest.raises(InvalidSessionSelectionError):
            edit_service.create([], at(8), at(17), person_id)

    def test_unknown_segment(self, edit_service, person_id):
        with pytest.raises(SegmentNotFoundError):
            edit_service.create([uuid4()], at(8), at(17), person_id)

    def test_inverted_range(self, edit_service, day_session, person_id):
        regular, _ = day_session
        with pytest.raises(InvalidTimeRangeError):
            edit_service.create([regular.id], at(17), at(8), person_id)


class TestApprove:

    def test_approve_resplits_with_approved_overtime(
        self, edit_service, session, person_id, reviewer_id, make_segment,
    ):
        seg = make_segment(person_id, at(8), at(17))
        request = edit_service.create([seg.id], at(8), at(18), person_id)

        outcome = edit_service.process([request.id], EditAction.APPROVE, reviewer_id)

        assert _stored(session, person_id) == [
            (Tier.REGULAR, at(8), at(17), None),
            (Tier.OVERTIME, at(17), at(18), OvertimeStatus.APPROVED),
        ]
        assert outcome.removed_segment_ids == (seg.id,)
        approved = outcome.requests[0]
        assert approved.status == EditRequestStatus.APPROVED
        assert approved.reviewed_by == reviewer_id
        assert approved.reviewed_at == at(22)
        assert set(approved.segment_ids) == set(outcome.new_segment_ids)

    def test_representative_is_new_regular(
        self, edit_service, session, day_session, person_id, reviewer_id,
    ):
        regular, overtime = day_session
        request = edit_service.create([regular.id, overtime.id], at(7), at(21), person_id)
        edit_service.process([request.id], "approve", reviewer_id)

        stored = EditRequestSelector(session).get(request.id)
        representative = SegmentSelector(session).get(stored.representative_segment_id)
        assert representative.tier == Tier.REGULAR
        assert representative.time_in == at(7)

    def test_metadata_untouched(self, edit_service, session, day_session, person_id, reviewer_id):
        regular, overtime = day_session
        request = edit_service.create([regular.id, overtime.id], at(8), at(18), person_id)
        edit_service.process([request.id], EditAction.APPROVE, reviewer_id)

        stored = EditRequestSelector(session).get(request.id)
        assert stored.metadata == request.metadata

    def test_shrinking_drops_overtime(
        self, edit_service, session, day_session, person_id, reviewer_id,
    ):
        regular, overtime = day_session
        request = edit_service.create([regular.id, overtime.id], at(8), at(16), person_id)
        edit_service.process([request.id], EditAction.APPROVE, reviewer_id)

        assert _stored(session, person_id) == [(Tier.REGULAR, at(8), at(16), None)]

    def test_double_approve_rejected(self, edit_service, person_id, reviewer_id, make_segment):
        seg = make_segment(person_id, at(8), at(17))
        request = edit_service.create([seg.id], at(8), at(18), person_id)
        edit_service.process([request.id], EditAction.APPROVE, reviewer_id)

        with pytest.raises(InvalidEditTransitionError):
            edit_service.process([request.id], EditAction.APPROVE, reviewer_id)


class TestReject:

    def test_reject_leaves_segments(
        self, edit_service, session, day_session, person_id, reviewer_id,
    ):
        regular, overtime = day_session
        before = _stored(session, person_id)
        request = edit_service.create([regular.id, overtime.id], at(8), at(21), person_id)

        outcome = edit_service.process([request.id], EditAction.REJECT, reviewer_id)

        assert outcome.requests[0].status == EditRequestStatus.REJECTED
        assert outcome.requests[0].reviewed_by == reviewer_id
        assert outcome.new_segment_ids == ()
        assert _stored(session, person_id) == before

    def test_rejected_cannot_be_approved(
        self, edit_service, person_id, reviewer_id, make_segment,
    ):
        seg = make_segment(person_id, at(8), at(17))
        request = edit_service.create([seg.id], at(8), at(18), person_id)
        edit_service.process([request.id], EditAction.REJECT, reviewer_id)

        with pytest.raises(InvalidEditTransitionError) as exc_info:
            edit_service.process([request.id], EditAction.APPROVE, reviewer_id)
        assert exc_info.value.from_status == "rejected"


class TestRevert:

    def test_approve_then_revert_round_trip(
        self, edit_service, session, day_session, person_id, reviewer_id,
    ):
        regular, overtime = day_session
        original = _stored(session, person_id)
        request = edit_service.create([regular.id, overtime.id], at(7), at(21), person_id)

        edit_service.process([request.id], EditAction.APPROVE, reviewer_id)
        outcome = edit_service.process([request.id], EditAction.REVERT, reviewer_id)

        assert _stored(session, person_id) == original
        reverted = outcome.requests[0]
        assert reverted.status == EditRequestStatus.PENDING
        assert reverted.reviewed_by is None
        assert reverted.reviewed_at is None
        assert set(reverted.segment_ids) == set(outcome.new_segment_ids)

    def test_revert_then_approve_again(
        self, edit_service, session, person_id, reviewer_id, make_segment,
    ):
        seg = make_segment(person_id, at(8), at(17))
        request = edit_service.create([seg.id], at(8), at(18), person_id)
        edit_service.process([request.id], EditAction.APPROVE, reviewer_id)
        edit_service.process([request.id], EditAction.REVERT, reviewer_id)
        edit_service.process([request.id], EditAction.APPROVE, reviewer_id)

        assert _stored(session, person_id)[-1] == (
            Tier.OVERTIME, at(17), at(18), OvertimeStatus.APPROVED,
        )

    def test_round_trip_after_earlier_session_same_day(
        self, edit_service, session, person_id, reviewer_id, make_segment,
    ):
        """Overtime placed by the day's accrual stays overtime through approve and revert."""
        make_segment(person_id, at(6), at(15))
        evening = make_segment(person_id, at(16), at(18), tier=Tier.OVERTIME)
        original = _stored(session, person_id)
        request = edit_service.create([evening.id], at(16), at(17), person_id)

        edit_service.process([request.id], EditAction.APPROVE, reviewer_id)
        assert _stored(session, person_id) == [
            (Tier.REGULAR, at(6), at(15), None),
            (Tier.OVERTIME, at(16), at(17), OvertimeStatus.APPROVED),
        ]

        edit_service.process([request.id], EditAction.REVERT, reviewer_id)
        assert _stored(session, person_id) == original

    def test_rejected_back_to_pending(
        self, edit_service, session, day_session, person_id, reviewer_id,
    ):
        regular, overtime = day_session
        before = _stored(session, person_id)
        request = edit_service.create([regular.id, overtime.id], at(8), at(21), person_id)
        edit_service.process([request.id], EditAction.REJECT, reviewer_id)

        outcome = edit_service.process([request.id], EditAction.REVERT, reviewer_id)

        reopened = outcome.requests[0]
        assert reopened.status == EditRequestStatus.PENDING
        assert reopened.reviewed_by is None
        assert reopened.reviewed_at is None
        assert _stored(session, person_id) == before
        assert set(reopened.segment_ids) == set(outcome.new_segment_ids)

        approved = edit_service.process([request.id], EditAction.APPROVE, reviewer_id)
        assert approved.requests[0].status == EditRequestStatus.APPROVED

    def test_pending_cannot_revert(self, edit_service, person_id, reviewer_id, make_segment):
        seg = make_segment(person_id, at(8), at(17))
        request = edit_service.create([seg.id], at(8), at(18), person_id)
        with pytest.raises(InvalidEditTransitionError):
            edit_service.process([request.id], EditAction.REVERT, reviewer_id)


class TestLegacyMultiRequest:

    def test_requests_over_one_session_processed_together(
        self, edit_service, session, day_session, person_id, reviewer_id,
    ):
        regular, overtime = day_session
        first = edit_service.create([regular.id], at(7), at(17), person_id)
        second = edit_service.create([overtime.id], at(17), at(21), person_id)

        outcome = edit_service.process([first.id, second.id], EditAction.APPROVE, reviewer_id)

        assert _stored(session, person_id) == [
            (Tier.REGULAR, at(7), at(16), None),
            (Tier.OVERTIME, at(16), at(19), OvertimeStatus.APPROVED),
            (Tier.EXTENDED_OVERTIME, at(19), at(21), OvertimeStatus.APPROVED),
        ]
        for request in outcome.requests:
            assert request.status == EditRequestStatus.APPROVED
            assert set(request.segment_ids) == set(outcome.new_segment_ids)


class TestProcessValidation:

    def test_unknown_action(self, edit_service, person_id, reviewer_id, make_segment):
        seg = make_segment(person_id, at(8), at(17))
        request = edit_service.create([seg.id], at(8), at(18), person_id)
        with pytest.raises(InvalidEditActionError):
            edit_service.process([request.id], "escalate", reviewer_id)

    def test_unknown_request(self, edit_service, reviewer_id):
        with pytest.raises(EditRequestNotFoundError):
            edit_service.process([uuid4()], EditAction.APPROVE, reviewer_id)

    def test_requests_of_different_people(
        self, edit_service, person_id, reviewer_id, make_segment,
    ):
        other = uuid4()
        mine = edit_service.create(
            [make_segment(person_id, at(8), at(17)).id], at(8), at(18), person_id,
        )
        theirs = edit_service.create(
            [make_segment(other, at(8), at(17)).id], at(8), at(18), other,
        )
        with pytest.raises(InvalidSessionSelectionError):
            edit_service.process([mine.id, theirs.id], EditAction.APPROVE, reviewer_id)
