"""Tests for clock-time windows and instant projection."""

from datetime import date, datetime, timezone

import pytest

from clinic_scheduler.errors import InvalidInput
from clinic_scheduler.scheduling.time_window import (
    CrossDateRange,
    TimeWindow,
    contains,
    find_overlapping_pair,
    format_clock,
    overlaps,
    parse_clock,
    project_instants,
)


class TestParseClock:
    def test_parses_hours_and_minutes(self):
        assert parse_clock("09:30") == 570

    def test_single_digit_hour(self):
        assert parse_clock("9:05") == 545

    def test_end_of_day(self):
        assert parse_clock("24:00") == 1440

    @pytest.mark.parametrize("value", ["24:30", "12:60", "noon", "", "9"])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidInput, match="Invalid clock time"):
            parse_clock(value)

    def test_format_round_trip(self):
        assert format_clock(parse_clock("13:45")) == "13:45"


class TestTimeWindow:
    def test_valid_window(self):
        window = TimeWindow.parse("09:00", "12:00")
        assert window.duration_minutes == 180
        assert str(window) == "09:00-12:00"

    def test_start_equal_end_rejected(self):
        with pytest.raises(InvalidInput):
            TimeWindow.parse("09:00", "09:00")

    def test_reversed_rejected(self):
        with pytest.raises(InvalidInput):
            TimeWindow.parse("12:00", "09:00")

    def test_from_mapping(self):
        window = TimeWindow.from_mapping({"start_time": "13:00", "end_time": "17:00"})
        assert window == TimeWindow(780, 1020)
        assert window.to_dict() == {"start_time": "13:00", "end_time": "17:00"}

    def test_from_mapping_missing_key(self):
        with pytest.raises(InvalidInput, match="end_time"):
            TimeWindow.from_mapping({"start_time": "13:00"})

    def test_coerce_rejects_other_types(self):
        with pytest.raises(InvalidInput):
            TimeWindow.coerce(("09:00", "10:00"))


class TestOverlapAndContainment:
    def test_touching_windows_do_not_overlap(self):
        assert not overlaps(TimeWindow.parse("09:00", "10:00"), TimeWindow.parse("10:00", "11:00"))

    def test_partial_overlap(self):
        assert overlaps(TimeWindow.parse("09:00", "10:00"), TimeWindow.parse("09:59", "11:00"))

    def test_containment_is_closed(self):
        period = TimeWindow.parse("09:00", "12:00")
        assert contains(period, TimeWindow.parse("09:00", "12:00"))
        assert contains(period, TimeWindow.parse("11:30", "12:00"))
        assert not contains(period, TimeWindow.parse("11:30", "12:01"))

    def test_find_overlapping_pair_unordered_input(self):
        windows = [
            TimeWindow.parse("13:00", "15:00"),
            TimeWindow.parse("09:00", "12:00"),
            TimeWindow.parse("14:00", "16:00"),
        ]
        assert find_overlapping_pair(windows) == (
            TimeWindow.parse("13:00", "15:00"),
            TimeWindow.parse("14:00", "16:00"),
        )

    def test_find_overlapping_pair_none(self):
        windows = [TimeWindow.parse("09:00", "12:00"), TimeWindow.parse("12:00", "13:00")]
        assert find_overlapping_pair(windows) is None


class TestProjectInstants:
    def test_utc_projection(self):
        day, window = project_instants(
            datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
            datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc),
            "UTC",
        )
        assert day == date(2026, 3, 2)
        assert window == TimeWindow.parse("09:00", "09:30")

    def test_projection_into_display_timezone(self):
        # 00:30 UTC is 09:30 in Tokyo
        day, window = project_instants(
            datetime(2026, 3, 2, 0, 30, tzinfo=timezone.utc),
            datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc),
            "Asia/Tokyo",
        )
        assert day == date(2026, 3, 2)
        assert window == TimeWindow.parse("09:30", "10:00")

    def test_end_at_midnight_maps_to_end_of_day(self):
        day, window = project_instants(
            datetime(2026, 3, 2, 23, 30, tzinfo=timezone.utc),
            datetime(2026, 3, 3, 0, 0, tzinfo=timezone.utc),
            "UTC",
        )
        assert day == date(2026, 3, 2)
        assert window.end == 1440

    def test_spanning_two_dates_rejected(self):
        with pytest.raises(CrossDateRange, match="same calendar date"):
            project_instants(
                datetime(2026, 3, 2, 23, 30, tzinfo=timezone.utc),
                datetime(2026, 3, 3, 0, 30, tzinfo=timezone.utc),
                "UTC",
            )

    def test_end_seconds_round_up(self):
        day, window = project_instants(
            datetime(2026, 3, 2, 16, 45, tzinfo=timezone.utc),
            datetime(2026, 3, 2, 17, 0, 45, tzinfo=timezone.utc),
            "UTC",
        )
        assert window == TimeWindow.parse("16:45", "17:01")

    def test_start_seconds_round_down(self):
        day, window = project_instants(
            datetime(2026, 3, 2, 8, 59, 30, tzinfo=timezone.utc),
            datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc),
            "UTC",
        )
        assert window == TimeWindow.parse("08:59", "09:30")

    def test_sub_minute_range_keeps_a_minute(self):
        day, window = project_instants(
            datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc),
            datetime(2026, 3, 2, 10, 0, 30, tzinfo=timezone.utc),
            "UTC",
        )
        assert window == TimeWindow.parse("10:00", "10:01")

    def test_seconds_past_next_midnight_span_two_dates(self):
        with pytest.raises(CrossDateRange):
            project_instants(
                datetime(2026, 3, 2, 23, 30, tzinfo=timezone.utc),
                datetime(2026, 3, 3, 0, 0, 1, tzinfo=timezone.utc),
                "UTC",
            )
