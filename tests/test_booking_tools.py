"""Tests for the presentation-layer booking and availability tools."""

from datetime import timedelta

import requests

from clinic_scheduler.tools.availability import check_availability, resolve_duration, weekly_schedule
from clinic_scheduler.tools.booking import (
    cancel_booking,
    create_booking,
    get_booking,
    list_bookings,
    reschedule_booking,
)
from tests.conftest import CLINIC_DAY, at


class TestCreateBooking:
    def test_success(self, checker, working_day):
        result = create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        assert result["success"] is True
        assert result["reservation_id"].startswith("RSV-")
        assert result["details"]["time"] == "09:00"
        assert result["reservation_id"] in result["message"]

    def test_error_kind_verbatim(self, checker, working_day):
        create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        result = create_booking(checker, "DOC-A", "E0002", at(9, 0), at(9, 30))
        assert result == {
            "success": False,
            "error": "DoubleBooked",
            "message": result["message"],
        }

    def test_each_error_kind(self, checker, working_day):
        create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        cases = [
            (("DOC-A", "E9999", at(10, 0), at(10, 30)), "EmployeeNotFound"),
            (("DOC-A", "E0002", at(18, 0), at(18, 30)), "OutsideSchedule"),
            (("DOC-B", "E0002", at(9, 0), at(9, 30)), "RoomCapacityExceeded"),
            (("DOC-A", "E0002", at(10, 30), at(10, 0)), "InvalidInput"),
        ]
        for args, kind in cases:
            assert create_booking(checker, *args)["error"] == kind

    def test_malformed_request(self, checker, working_day):
        result = create_booking(checker, "DOC-A", "E0001", "not a date", at(9, 30))
        assert result["error"] == "InvalidInput"

    def test_directory_unavailable(self, checker, directory, working_day, monkeypatch):
        def unavailable(number):
            raise requests.ConnectionError("down")

        monkeypatch.setattr(directory, "resolve_employee", unavailable)
        result = create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        assert result["success"] is False
        assert result["error"] == "DirectoryUnavailable"


class TestUpdateBooking:
    def test_validated_reschedule(self, checker, working_day):
        booked = create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        result = reschedule_booking(checker, booked["reservation_id"], at(11, 0), at(11, 30))
        assert result["success"] is True
        assert result["details"]["time"] == "11:00"

    def test_validated_reschedule_rejected(self, checker, working_day):
        booked = create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        result = reschedule_booking(checker, booked["reservation_id"], at(20, 0), at(20, 30))
        assert result["error"] == "OutsideSchedule"

    def test_trusted_reschedule(self, checker, working_day):
        booked = create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        result = reschedule_booking(
            checker, booked["reservation_id"], at(20, 0), at(20, 30), validate=False
        )
        assert result["success"] is True

    def test_cancel(self, checker, store, working_day):
        booked = create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        assert cancel_booking(checker, booked["reservation_id"])["success"] is True
        assert get_booking(store, booked["reservation_id"]) is None
        assert cancel_booking(checker, booked["reservation_id"])["error"] == "ReservationNotFound"


class TestListings:
    def test_list_by_date_and_doctor(self, checker, store, working_day):
        create_booking(checker, "DOC-A", "E0001", at(10, 0), at(10, 30))
        create_booking(checker, "DOC-B", "E0002", at(9, 0), at(9, 30))
        records = list_bookings(store, CLINIC_DAY)
        assert [r["doctor_id"] for r in records] == ["DOC-B", "DOC-A"]
        assert [r["doctor_id"] for r in list_bookings(store, CLINIC_DAY, doctor_id="DOC-A")] == ["DOC-A"]

    def test_listing_in_display_timezone(self, checker, store, working_day):
        create_booking(checker, "DOC-A", "E0001", at(9, 0), at(9, 30))
        record = list_bookings(store, CLINIC_DAY, tz_name="Asia/Tokyo")[0]
        assert record["time"] == "18:00"


class TestCheckAvailability:
    def test_available_slots(self, generator, store, config_store, checker):
        checker.replace_schedule("DOC-A", CLINIC_DAY, [{"start_time": "09:00", "end_time": "10:00"}])
        result = check_availability(generator, store, config_store, "DOC-A", CLINIC_DAY, 30, 15)
        assert result["available"] is True
        assert [s["local_time"] for s in result["slots"]] == ["09:00", "09:15", "09:30"]
        assert "09:00, 09:15, 09:30" in result["message"]

    def test_next_available_date(self, generator, store, config_store, checker):
        checker.replace_schedule("DOC-A", CLINIC_DAY.replace(day=4), [{"start_time": "09:00", "end_time": "10:00"}])
        result = check_availability(generator, store, config_store, "DOC-A", CLINIC_DAY, 30, 15)
        assert result["available"] is False
        assert result["next_available"] == "2026-03-04"

    def test_invalid_duration(self, generator, store, config_store):
        result = check_availability(generator, store, config_store, "DOC-A", CLINIC_DAY, 0)
        assert result["error"] == "InvalidInput"

    def test_duration_defaults(self, store, config_store):
        store.add_doctor("Delta", doctor_id="DOC-D", default_duration_minutes=20)
        assert resolve_duration(store, config_store, "DOC-D") == 20
        assert resolve_duration(store, config_store, "DOC-X") == 30
        assert resolve_duration(store, config_store, "DOC-D", 45) == 45


class TestWeeklySchedule:
    def test_all_days_by_default(self, store, config_store, working_day):
        days = weekly_schedule(store, config_store, CLINIC_DAY)
        assert len(days) == 7
        assert days[0]["weekday"] == "Monday"
        assert days[0]["doctors"]["DOC-A"] == [{"start_time": "09:00", "end_time": "17:00"}]
        assert days[1]["doctors"] == {}

    def test_only_displayed_weekdays(self, store, config_store, working_day):
        config_store.update(display_days_of_week=(1, 2, 3, 4, 5))
        days = weekly_schedule(store, config_store, CLINIC_DAY - timedelta(days=1))
        assert [d["weekday"] for d in days] == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
        assert sorted(days[0]["doctors"]) == ["DOC-A", "DOC-B", "DOC-C"]
