"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from clinic_scheduler.config import ConfigStore, SchedulingConfig
from clinic_scheduler.reminders.scheduler import ReminderScheduler
from clinic_scheduler.scheduling.conflicts import ConflictChecker
from clinic_scheduler.scheduling.slots import SlotGenerator
from clinic_scheduler.schemas.booking_schema import BookingRequest
from clinic_scheduler.storage import ClinicStore
from clinic_scheduler.tools.directory import MockEmployeeDirectory
from clinic_scheduler.tools.mail import MockMailTransport
from clinic_scheduler.tools.templates import DEFAULT_REMINDER_BODY, DEFAULT_REMINDER_SUBJECT

CLINIC_DAY = date(2026, 3, 2)


def at(hour: int, minute: int = 0, day: date = CLINIC_DAY) -> datetime:
    """UTC instant on ``day``."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def make_request(
    doctor_id: str = "DOC-A",
    start: Optional[datetime] = None,
    minutes: int = 30,
    employee_number: str = "E0001",
    nurse_id: Optional[str] = None,
) -> BookingRequest:
    """Helper to create a BookingRequest, 09:00-09:30 on CLINIC_DAY by default."""
    start = start or at(9)
    return BookingRequest(
        doctor_id=doctor_id,
        employee_number=employee_number,
        start=start,
        end=start + timedelta(minutes=minutes),
        nurse_id=nurse_id,
    )


@pytest.fixture
def config_store():
    return ConfigStore(SchedulingConfig(number_of_rooms=1, display_timezone="UTC"))


@pytest.fixture
def store():
    store = ClinicStore()
    store.add_doctor("Alpha", doctor_id="DOC-A", honorific="Dr.")
    store.add_doctor("Bravo", doctor_id="DOC-B", honorific="Dr.")
    store.add_doctor("Charlie", doctor_id="DOC-C")
    store.add_nurse("Kobayashi", nurse_id="NRS-1")
    return store


@pytest.fixture
def directory():
    return MockEmployeeDirectory()


@pytest.fixture
def checker(store, directory, config_store):
    return ConflictChecker(store, directory, config_store)


@pytest.fixture
def generator(store, config_store):
    return SlotGenerator(store, config_store)


@pytest.fixture
def transport():
    return MockMailTransport()


@pytest.fixture
def reminders(store, transport, config_store):
    return ReminderScheduler(store, transport, config_store)


@pytest.fixture
def working_day(checker):
    """DOC-A, DOC-B and DOC-C all available 09:00-17:00 on CLINIC_DAY."""
    for doctor_id in ("DOC-A", "DOC-B", "DOC-C"):
        checker.replace_schedule(doctor_id, CLINIC_DAY, [{"start_time": "09:00", "end_time": "17:00"}])
    return CLINIC_DAY


@pytest.fixture
def reminder_setup(store):
    """Default Reminder template plus a day-before policy due from 08:00."""
    store.add_template("Reminder", DEFAULT_REMINDER_SUBJECT, DEFAULT_REMINDER_BODY)
    return store.add_policy(days_before=1, send_hour=8)
