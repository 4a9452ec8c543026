"""
Tiered session splitter tests.

Covers:
- Tier membership by total length (<=9h, (9,12], >12h)
- Boundary placement and minute alignment
- Daily accrual moving cut points earlier
- Discard mode
- Forced overtime status for approvals
- Validation errors
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from timelog_kernel.domain.splitter import classify_open_tier, split_session
from timelog_kernel.domain.tiers import OvertimeStatus, Tier, TierPolicy
from timelog_kernel.exceptions import InvalidTimeRangeError, ZeroLengthDurationError


def _t(hour, minute=0, second=0):
    return datetime(2024, 3, 4, tzinfo=timezone.utc) + timedelta(
        hours=hour, minutes=minute, seconds=second
    )


def _shape(result):
    return [(s.tier, s.time_in, s.time_out, s.overtime_status) for s in result.segments]


class TestTierMembership:

    def test_up_to_nine_hours_is_one_regular(self):
        result = split_session(_t(8), _t(17))
        assert _shape(result) == [(Tier.REGULAR, _t(8), _t(17), None)]
        assert not result.has_overtime

    def test_twelve_hour_session_is_regular_plus_overtime(self):
        """08:00-20:00 -> Regular 08-17 + Overtime 17-20 pending."""
        result = split_session(_t(8), _t(20))
        assert _shape(result) == [
            (Tier.REGULAR, _t(8), _t(17), None),
            (Tier.OVERTIME, _t(17), _t(20), OvertimeStatus.PENDING),
        ]

    def test_over_twelve_hours_has_three_tiers(self):
        result = split_session(_t(6), _t(21, 30))
        assert _shape(result) == [
            (Tier.REGULAR, _t(6), _t(15), None),
            (Tier.OVERTIME, _t(15), _t(18), OvertimeStatus.PENDING),
            (Tier.EXTENDED_OVERTIME, _t(18), _t(21, 30), OvertimeStatus.PENDING),
        ]

    def test_one_minute_past_regular(self):
        result = split_session(_t(8), _t(17, 1))
        assert [s.duration.minutes for s in result.segments] == [540, 1]

    def test_total_is_reported(self):
        result = split_session(_t(8), _t(20))
        assert result.total.hours == Decimal("12.00")

    def test_primary_is_regular(self):
        assert split_session(_t(8), _t(22)).primary.tier == Tier.REGULAR


class TestBoundaries:

    def test_seconds_are_truncated(self):
        result = split_session(_t(8, 0, 45), _t(19, 30, 59))
        assert result.segments[0].time_in == _t(8)
        assert result.segments[0].time_out == _t(17)
        assert result.segments[-1].time_out == _t(19, 30)

    def test_segments_are_contiguous(self):
        result = split_session(_t(0, 7), _t(23, 53))
        for left, right in zip(result.segments, result.segments[1:]):
            assert left.time_out == right.time_in

    def test_custom_policy(self):
        policy = TierPolicy(regular_hours=Decimal("8"), overtime_hours=Decimal("2"))
        result = split_session(_t(8), _t(19), policy=policy)
        assert [(s.tier, s.time_out) for s in result.segments] == [
            (Tier.REGULAR, _t(16)),
            (Tier.OVERTIME, _t(18)),
            (Tier.EXTENDED_OVERTIME, _t(19)),
        ]


class TestAccrual:

    def test_accrual_moves_cut_points_earlier(self):
        # 6h already worked; a 5h afternoon session crosses into overtime after 3h
        result = split_session(_t(14), _t(19), accrued_minutes=360)
        assert _shape(result) == [
            (Tier.REGULAR, _t(14), _t(17), None),
            (Tier.OVERTIME, _t(17), _t(19), OvertimeStatus.PENDING),
        ]

    def test_regular_exhausted_starts_in_overtime(self):
        result = split_session(_t(18), _t(20), accrued_minutes=600)
        assert _shape(result) == [
            (Tier.OVERTIME, _t(18), _t(20), OvertimeStatus.PENDING),
        ]

    def test_overtime_exhausted_starts_in_extended(self):
        result = split_session(_t(22), _t(23), accrued_minutes=720)
        assert [s.tier for s in result.segments] == [Tier.EXTENDED_OVERTIME]


class TestDiscardMode:

    def test_twelve_hours_keeps_only_regular(self):
        result = split_session(_t(8), _t(20), discard_excess=True)
        assert _shape(result) == [(Tier.REGULAR, _t(8), _t(17), None)]
        assert result.discarded_minutes == 180

    def test_short_session_unchanged(self):
        result = split_session(_t(8), _t(12), discard_excess=True)
        assert _shape(result) == [(Tier.REGULAR, _t(8), _t(12), None)]
        assert result.discarded_minutes == 0

    def test_cut_moves_with_accrual(self):
        result = split_session(_t(13), _t(20), accrued_minutes=6 * 60, discard_excess=True)
        assert _shape(result) == [(Tier.REGULAR, _t(13), _t(16), None)]
        assert result.discarded_minutes == 240

    def test_no_allowance_left_keeps_tiers(self):
        result = split_session(_t(18), _t(20), accrued_minutes=600, discard_excess=True)
        assert _shape(result) == [
            (Tier.OVERTIME, _t(18), _t(20), OvertimeStatus.PENDING),
        ]
        assert result.discarded_minutes == 0


class TestForcedStatus:

    def test_approved_overtime(self):
        result = split_session(_t(8), _t(22), overtime_status=OvertimeStatus.APPROVED)
        assert [s.overtime_status for s in result.segments] == [
            None,
            OvertimeStatus.APPROVED,
            OvertimeStatus.APPROVED,
        ]


class TestValidation:

    def test_inverted_range(self):
        with pytest.raises(InvalidTimeRangeError) as exc_info:
            split_session(_t(17), _t(8))
        assert exc_info.value.code == "INVALID_TIME_RANGE"

    def test_equal_instants(self):
        with pytest.raises(InvalidTimeRangeError):
            split_session(_t(8), _t(8))

    def test_sub_minute_range(self):
        with pytest.raises(ZeroLengthDurationError):
            split_session(_t(8, 0, 10), _t(8, 0, 50))


class TestClassifyOpenTier:

    @pytest.mark.parametrize(
        "accrued,expected",
        [
            (0, (Tier.REGULAR, None)),
            (539, (Tier.REGULAR, None)),
            (540, (Tier.OVERTIME, OvertimeStatus.PENDING)),
            (719, (Tier.OVERTIME, OvertimeStatus.PENDING)),
            (720, (Tier.EXTENDED_OVERTIME, OvertimeStatus.PENDING)),
        ],
    )
    def test_classification(self, accrued, expected):
        assert classify_open_tier(accrued) == expected
