"""Tests for room occupancy counting."""

from datetime import date, datetime, timezone

from clinic_scheduler.scheduling.calendar import ScheduleEntry
from clinic_scheduler.scheduling.capacity import (
    CapacitySource,
    concurrent_doctor_count,
    room_usage,
)
from clinic_scheduler.scheduling.time_window import TimeWindow
from clinic_scheduler.schemas.booking_schema import Reservation

DAY = date(2026, 3, 2)


def _reservation(rid: str, doctor_id: str, start_hour: int, end_hour: int) -> Reservation:
    return Reservation(
        id=rid,
        doctor_id=doctor_id,
        employee_id="emp-0001",
        start=datetime(2026, 3, 2, start_hour, tzinfo=timezone.utc),
        end=datetime(2026, 3, 2, end_hour, tzinfo=timezone.utc),
    )


class TestReservationSource:
    def test_counts_distinct_doctors(self):
        reservations = [
            _reservation("R1", "DOC-A", 9, 10),
            _reservation("R2", "DOC-A", 10, 11),
            _reservation("R3", "DOC-B", 9, 11),
        ]
        count = concurrent_doctor_count(
            DAY, TimeWindow.parse("09:00", "11:00"), CapacitySource.RESERVATIONS,
            reservations=reservations,
        )
        assert count == 2

    def test_touching_reservation_not_counted(self):
        count = concurrent_doctor_count(
            DAY, TimeWindow.parse("10:00", "11:00"), CapacitySource.RESERVATIONS,
            reservations=[_reservation("R1", "DOC-A", 9, 10)],
        )
        assert count == 0

    def test_excluded_doctor_not_counted(self):
        count = concurrent_doctor_count(
            DAY, TimeWindow.parse("09:00", "10:00"), CapacitySource.RESERVATIONS,
            reservations=[_reservation("R1", "DOC-A", 9, 10), _reservation("R2", "DOC-B", 9, 10)],
            exclude_doctor_id="DOC-A",
        )
        assert count == 1

    def test_window_read_in_timezone(self):
        # 09:00-10:00 in Tokyo is 00:00-01:00 UTC
        count = concurrent_doctor_count(
            DAY, TimeWindow.parse("09:00", "10:00"), CapacitySource.RESERVATIONS,
            reservations=[_reservation("R1", "DOC-A", 0, 1)],
            tz_name="Asia/Tokyo",
        )
        assert count == 1


class TestDeclaredPeriodSource:
    def test_counts_doctors_with_overlapping_periods(self):
        entries = [
            ScheduleEntry("DOC-A", DAY, (TimeWindow.parse("09:00", "12:00"),)),
            ScheduleEntry("DOC-B", DAY, (TimeWindow.parse("12:00", "17:00"),)),
            ScheduleEntry("DOC-C", date(2026, 3, 3), (TimeWindow.parse("09:00", "17:00"),)),
        ]
        count = concurrent_doctor_count(
            DAY, TimeWindow.parse("11:00", "13:00"), CapacitySource.DECLARED_PERIODS,
            entries=entries,
        )
        assert count == 2


class TestRoomUsage:
    def test_rooms_available(self):
        assert room_usage(1, 3) == {
            "capacity_used": 1,
            "capacity_available": 2,
            "capacity_exceeded": False,
        }

    def test_rooms_full(self):
        usage = room_usage(2, 2)
        assert usage["capacity_available"] == 0
        assert usage["capacity_exceeded"] is True

    def test_no_room_limit(self):
        usage = room_usage(5, None)
        assert usage["capacity_available"] is None
        assert usage["capacity_exceeded"] is False
