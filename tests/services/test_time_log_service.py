"""
TimeLogService facade tests.

End-to-end scenarios through the public entry point, plus the failure
contract: domain errors come back as OperationResult failures and leave
the store untouched.
"""

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from tests.conftest import at
from timelog_kernel.domain.edit_request import EditRequestStatus
from timelog_kernel.domain.grouper import SessionClassification
from timelog_kernel.domain.tiers import OvertimeStatus, Tier
from timelog_kernel.models.segment import TimeSegment
from timelog_kernel.selectors.segment_selector import SegmentSelector
from timelog_kernel.services.time_log_service import STORE_ERROR, TimeLogService


@pytest.fixture
def service(session, deterministic_clock):
    return TimeLogService(session, deterministic_clock)


def _worked(service, person_id, start, end):
    assert service.clock_in(person_id, start).success
    result = service.clock_out(person_id, end)
    assert result.success
    return result.data


class TestClockingThroughFacade:

    def test_twelve_hour_day(self, service, person_id):
        """08:00-20:00 -> Regular 08-17 + Overtime 17-20 pending."""
        result = _worked(service, person_id, at(8), at(20))
        assert [(s.tier, s.time_in, s.time_out) for s in result.segments] == [
            (Tier.REGULAR, at(8), at(17)),
            (Tier.OVERTIME, at(17), at(20)),
        ]
        assert result.segments[1].overtime_status == OvertimeStatus.PENDING

    def test_double_clock_in_is_failure(self, service, person_id):
        service.clock_in(person_id, at(8))
        result = service.clock_in(person_id, at(9))

        assert not result.success
        assert result.error_code == "ALREADY_CLOCKED_IN"
        assert not result.retryable

    def test_clock_out_without_clock_in(self, service, person_id):
        result = service.clock_out(person_id, at(17))
        assert result.error_code == "NO_ACTIVE_SEGMENT"

    def test_discard_mode(self, service, session, person_id):
        service.clock_in(person_id, at(8))
        result = service.clock_out(person_id, at(20), discard_overtime=True)

        assert result.success
        stored = SegmentSelector(session).for_person(person_id)
        assert [(s.tier, s.time_in, s.time_out) for s in stored] == [
            (Tier.REGULAR, at(8), at(17)),
        ]

    def test_logs_operation_lifecycle(self, service, person_id, captured_logs):
        service.clock_in(person_id, at(8))

        records = captured_logs()
        messages = [r["message"] for r in records]
        assert "clock_in_started" in messages
        assert "clock_in_completed" in messages
        completed = [r for r in records if r["message"] == "clock_in_completed"][-1]
        assert completed["person_id"] == str(person_id)
        assert "correlation_id" in completed


class TestEditWorkflowThroughFacade:

    def test_approved_edit_counts_toward_progress(self, service, person_id, reviewer_id):
        """A 9h day edited to 08-18 and approved -> 10.00 completed hours."""
        day = _worked(service, person_id, at(8), at(17))
        created = service.create_edit_request(
            [s.id for s in day.segments], at(8), at(18), requested_by=person_id,
        )
        assert created.success

        approved = service.process_edit_request(created.data.id, "approve", reviewer_id)
        assert approved.success

        progress = service.compute_progress(person_id, 486)
        assert progress.data.completed_hours == Decimal("10.00")

    def test_revert_restores_original(self, service, session, person_id, reviewer_id):
        day = _worked(service, person_id, at(8), at(17))
        request = service.create_edit_request(
            [s.id for s in day.segments], at(8), at(18), requested_by=person_id,
        ).data

        service.process_edit_request(request.id, "approve", reviewer_id)
        reverted = service.process_edit_request([request.id], "revert", reviewer_id)

        assert reverted.success
        assert reverted.data.requests[0].status == EditRequestStatus.PENDING
        stored = SegmentSelector(session).for_person(person_id)
        assert [(s.tier, s.time_in, s.time_out) for s in stored] == [
            (Tier.REGULAR, at(8), at(17)),
        ]
        assert service.compute_progress(person_id, 486).data.completed_hours == Decimal("9.00")

    def test_invalid_transition_reported(self, service, person_id, reviewer_id):
        day = _worked(service, person_id, at(8), at(17))
        request = service.create_edit_request(
            [s.id for s in day.segments], at(8), at(18), requested_by=person_id,
        ).data

        result = service.process_edit_request(request.id, "revert", reviewer_id)
        assert result.error_code == "INVALID_EDIT_TRANSITION"

    def test_unknown_segment_reported(self, service, person_id):
        result = service.create_edit_request([uuid4()], at(8), at(17), person_id)
        assert result.error_code == "SEGMENT_NOT_FOUND"


class TestProgressThroughFacade:

    def test_pending_overtime_excluded(self, service, person_id):
        """9.00 Regular + 2.00 pending Overtime -> 9.00 completed."""
        _worked(service, person_id, at(8), at(19))
        progress = service.compute_progress(person_id, 486).data

        assert progress.completed_hours == Decimal("9.00")
        assert progress.overtime.pending_hours == Decimal("2.00")

    def test_reviewed_overtime_included(self, service, person_id, reviewer_id):
        day = _worked(service, person_id, at(8), at(19))
        overtime = day.segments[1]

        assert service.review_overtime(overtime.id, "approved", reviewer_id).success
        assert service.compute_progress(person_id, 486).data.completed_hours == Decimal("11.00")

    def test_sessions_and_day_summaries(self, service, person_id):
        _worked(service, person_id, at(8), at(20))

        sessions = service.get_sessions_for_person(person_id).data
        assert len(sessions) == 1
        assert sessions[0].classification == SessionClassification.MIXED
        assert sessions[0].total_hours == Decimal("12.00")

        summaries = service.get_day_summaries(person_id).data
        assert summaries[0].regular_hours == Decimal("9.00")
        assert summaries[0].overtime_hours == Decimal("3.00")

    def test_include_edit_requests_overlay(self, service, session, person_id, reviewer_id):
        day = _worked(service, person_id, at(8), at(17))
        request = service.create_edit_request(
            [s.id for s in day.segments], at(8), at(18), requested_by=person_id,
        ).data
        service.process_edit_request(request.id, "approve", reviewer_id)

        # stored rows drift from the approved range after approval
        last = SegmentSelector(session).for_person(person_id)[-1]
        session.get(TimeSegment, last.id).time_out = at(17, 30)
        session.commit()

        plain = service.compute_progress(person_id, 486).data
        overlaid = service.compute_progress(person_id, 486, include_edit_requests=True).data
        assert plain.completed_hours == Decimal("9.50")
        assert overlaid.completed_hours == Decimal("10.00")

    def test_later_approval_supersedes_earlier(
        self, service, session, deterministic_clock, person_id, reviewer_id,
    ):
        """08-16 edited to 08-14, then 08-10: only the latest edit counts."""
        deterministic_clock.set_time(at(17))
        day = _worked(service, person_id, at(8), at(16))
        first = service.create_edit_request(
            [s.id for s in day.segments], at(8), at(14), requested_by=person_id,
        ).data
        assert service.process_edit_request(first.id, "approve", reviewer_id).success
        deterministic_clock.advance(hours=1)

        rows = SegmentSelector(session).for_person(person_id)
        second = service.create_edit_request(
            [s.id for s in rows], at(8), at(10), requested_by=person_id,
        ).data
        assert service.process_edit_request(second.id, "approve", reviewer_id).success

        plain = service.compute_progress(person_id, 486).data
        overlaid = service.compute_progress(person_id, 486, include_edit_requests=True).data
        assert plain.completed_hours == Decimal("2.00")
        assert overlaid.completed_hours == Decimal("2.00")

        # rows drift after both approvals: only the latest range is overlaid
        live = SegmentSelector(session).for_person(person_id)[-1]
        session.get(TimeSegment, live.id).time_out = at(9, 30)
        session.commit()

        plain = service.compute_progress(person_id, 486).data
        overlaid = service.compute_progress(person_id, 486, include_edit_requests=True).data
        assert plain.completed_hours == Decimal("1.50")
        assert overlaid.completed_hours == Decimal("2.00")


class TestMigrationThroughFacade:

    def test_check_and_migrate(self, service, person_id, make_segment, session):
        make_segment(person_id, at(6), at(21))
        session.commit()

        assert service.check_long_segments(person_id).data.count == 1
        report = service.migrate_long_segments(person_id).data
        assert report.processed == 1
        assert service.check_long_segments(person_id).data.count == 0


class TestFailureContract:

    def test_failed_operation_leaves_store_untouched(
        self, session, deterministic_clock, person_id,
    ):
        service = TimeLogService(session, deterministic_clock, auto_commit=False)
        service.clock_in(person_id, at(8))
        result = service.clock_in(person_id, at(9))

        assert not result.success
        stored = SegmentSelector(session).for_person(person_id)
        assert len(stored) == 1

    def test_store_error_is_reported(self, service, person_id):
        with patch(
            "timelog_kernel.services.clock_service.ClockService.clock_in",
            side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
        ):
            result = service.clock_in(person_id, at(8))

        assert not result.success
        assert result.error_code == STORE_ERROR
        assert result.data is None
