"""
Typed Exception Hierarchy for the Time Log Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Recorded hours end up on completion certificates.  Callers need to tell a
bad request apart from a lost race apart from a corrupted reference without
parsing message strings, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        edit_service.approve([request_id], reviewer_id)
    except SegmentConflictError as e:      # retryable
        schedule_retry(e.missing_ids)
    except TimeLogError as e:
        return {"error": e.code}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TimeLogError (base)
    |
    +-- ValidationError
    |   +-- InvalidTimeRangeError
    |   +-- ZeroLengthDurationError
    |   +-- InvalidSessionSelectionError
    |   +-- InvalidEditActionError
    |   +-- InvalidReviewDecisionError
    |
    +-- ConflictError
    |   +-- AlreadyClockedInError
    |   +-- NoActiveSegmentError
    |   +-- SegmentConflictError
    |   +-- InvalidEditTransitionError
    |   +-- OvertimeReviewNotAllowedError
    |
    +-- NotFoundError
    |   +-- SegmentNotFoundError
    |   +-- EditRequestNotFoundError
    |
    +-- IntegrityError
        +-- ReferentialIntegrityError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                             | When Raised
------------|----------------------------------|-------------------------------------
Validation  | INVALID_TIME_RANGE               | time_out not after time_in
            | ZERO_LENGTH_DURATION             | range shorter than one whole minute
            | INVALID_SESSION_SELECTION        | ids do not form one closed session
            | INVALID_EDIT_ACTION              | action not approve/reject/revert
            | INVALID_REVIEW_DECISION          | overtime decision not a known status
------------|----------------------------------|-------------------------------------
Conflict    | ALREADY_CLOCKED_IN               | person already has an open segment
            | NO_ACTIVE_SEGMENT                | clock-out without an open segment
            | SEGMENT_CONFLICT                 | expected rows vanished (retryable)
            | INVALID_EDIT_TRANSITION          | illegal edit-request status change
            | OVERTIME_REVIEW_NOT_ALLOWED      | reviewing a regular/open segment
------------|----------------------------------|-------------------------------------
Not found   | SEGMENT_NOT_FOUND                | unknown segment id
            | EDIT_REQUEST_NOT_FOUND           | unknown edit request id
------------|----------------------------------|-------------------------------------
Integrity   | REFERENTIAL_INTEGRITY_VIOLATION  | FK violation the placeholder swap
            |                                  | did not prevent (fatal)

===============================================================================
"""


class TimeLogError(Exception):
    """
    Base exception for all time log kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TIME_LOG_ERROR"
    retryable: bool = False


# Validation errors


class ValidationError(TimeLogError):
    """Base exception for malformed input caught before any write."""

    code: str = "VALIDATION_ERROR"


class InvalidTimeRangeError(ValidationError):
    """time_out is not strictly after time_in."""

    code: str = "INVALID_TIME_RANGE"

    def __init__(self, time_in, time_out):
        self.time_in = time_in
        self.time_out = time_out
        super().__init__(
            f"Invalid time range: time_out {time_out} is not after time_in {time_in}"
        )


class ZeroLengthDurationError(ValidationError):
    """Range is shorter than one completed minute."""

    code: str = "ZERO_LENGTH_DURATION"

    def __init__(self, time_in, time_out):
        self.time_in = time_in
        self.time_out = time_out
        super().__init__(
            f"Duration between {time_in} and {time_out} is shorter than one minute"
        )


class InvalidSessionSelectionError(ValidationError):
    """Selected segment ids do not form exactly one closed, continuous session."""

    code: str = "INVALID_SESSION_SELECTION"

    def __init__(self, segment_ids: list[str], reason: str):
        self.segment_ids = segment_ids
        self.reason = reason
        super().__init__(f"Invalid session selection {segment_ids}: {reason}")


class InvalidEditActionError(ValidationError):
    """Edit action is not one of approve, reject, revert."""

    code: str = "INVALID_EDIT_ACTION"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Invalid edit request action: {action!r}")


class InvalidReviewDecisionError(ValidationError):
    """Overtime review decision is not pending, approved or rejected."""

    code: str = "INVALID_REVIEW_DECISION"

    def __init__(self, decision: str):
        self.decision = decision
        super().__init__(f"Invalid overtime review decision: {decision!r}")


# Conflict errors


class ConflictError(TimeLogError):
    """Base exception for state conflicts with what is stored."""

    code: str = "CONFLICT"


class AlreadyClockedInError(ConflictError):
    """Person already has an open segment."""

    code: str = "ALREADY_CLOCKED_IN"

    def __init__(self, person_id: str, open_segment_id: str):
        self.person_id = person_id
        self.open_segment_id = open_segment_id
        super().__init__(
            f"Person {person_id} is already clocked in (segment {open_segment_id})"
        )


class NoActiveSegmentError(ConflictError):
    """Clock-out requested but no open segment exists."""

    code: str = "NO_ACTIVE_SEGMENT"

    def __init__(self, person_id: str):
        self.person_id = person_id
        super().__init__(f"No active clock-in found for person {person_id}")


class SegmentConflictError(ConflictError):
    """
    Segments an operation expected to replace are gone.

    Usually a concurrent approval replaced them first.  The transaction is
    rolled back and the caller may retry.
    """

    code: str = "SEGMENT_CONFLICT"
    retryable: bool = True

    def __init__(self, expected_ids: list[str], missing_ids: list[str]):
        self.expected_ids = expected_ids
        self.missing_ids = missing_ids
        super().__init__(
            f"Expected {len(expected_ids)} segment(s), "
            f"{len(missing_ids)} no longer exist: {missing_ids}"
        )


class InvalidEditTransitionError(ConflictError):
    """Edit request status change is not allowed from the current status."""

    code: str = "INVALID_EDIT_TRANSITION"

    def __init__(self, request_id: str, from_status: str, to_status: str):
        self.request_id = request_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Edit request {request_id} cannot move from {from_status} to {to_status}"
        )


class OvertimeReviewNotAllowedError(ConflictError):
    """Overtime review targeted a regular or still-open segment."""

    code: str = "OVERTIME_REVIEW_NOT_ALLOWED"

    def __init__(self, segment_id: str, reason: str):
        self.segment_id = segment_id
        self.reason = reason
        super().__init__(f"Cannot review overtime on segment {segment_id}: {reason}")


# Not-found errors


class NotFoundError(TimeLogError):
    """Base exception for unknown ids."""

    code: str = "NOT_FOUND"


class SegmentNotFoundError(NotFoundError):
    """Segment with given ID was not found."""

    code: str = "SEGMENT_NOT_FOUND"

    def __init__(self, segment_id: str):
        self.segment_id = segment_id
        super().__init__(f"Time segment not found: {segment_id}")


class EditRequestNotFoundError(NotFoundError):
    """Edit request with given ID was not found."""

    code: str = "EDIT_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Edit request not found: {request_id}")


# Integrity errors


class IntegrityError(TimeLogError):
    """Base exception for store integrity failures. Never retried."""

    code: str = "INTEGRITY_ERROR"


class ReferentialIntegrityError(IntegrityError):
    """A foreign-key violation escaped the placeholder swap."""

    code: str = "REFERENTIAL_INTEGRITY_VIOLATION"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"Referential integrity violated during {operation}: {detail}"
        )
