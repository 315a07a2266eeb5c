"""
Booking operations for the presentation layer.

Wraps the conflict checker so callers (the CLI, a web handler) get a plain
result dict instead of exceptions. Failed results carry the error kind
verbatim in ``error`` so the caller can pick a specific message.
"""

import logging
from datetime import date, datetime
from typing import Optional, TypedDict

import requests
from pydantic import ValidationError

from clinic_scheduler.errors import ErrorKind, SchedulingError
from clinic_scheduler.scheduling.conflicts import ConflictChecker
from clinic_scheduler.schemas.booking_schema import BookingRequest, Reservation
from clinic_scheduler.storage import ClinicStore
from clinic_scheduler.utils import format_local, local_day_bounds

logger = logging.getLogger(__name__)

DIRECTORY_UNAVAILABLE = "DirectoryUnavailable"


class ReservationRecord(TypedDict):
    """A reservation as shown to a caller, times in the display timezone."""

    reservation_id: str
    doctor_id: str
    employee_id: str
    nurse_id: Optional[str]
    start: str
    end: str
    date: str
    time: str


class BookingResult(TypedDict, total=False):
    """Result from create_booking, cancel_booking, or reschedule_booking."""

    success: bool
    message: str
    error: str
    reservation_id: str
    details: ReservationRecord


def _to_record(reservation: Reservation, tz_name: str) -> ReservationRecord:
    return {
        "reservation_id": reservation.id,
        "doctor_id": reservation.doctor_id,
        "employee_id": reservation.employee_id,
        "nurse_id": reservation.nurse_id,
        "start": reservation.start.isoformat(),
        "end": reservation.end.isoformat(),
        "date": format_local(reservation.start, tz_name, "%Y-%m-%d"),
        "time": format_local(reservation.start, tz_name, "%H:%M"),
    }


def _failure(error: str, message: str) -> BookingResult:
    return {"success": False, "error": error, "message": message}


def create_booking(
    checker: ConflictChecker,
    doctor_id: str,
    employee_number: str,
    start: datetime,
    end: datetime,
    nurse_id: Optional[str] = None,
    tz_name: str = "UTC",
) -> BookingResult:
    """Book a reservation and return the confirmation details."""
    try:
        request = BookingRequest(
            doctor_id=doctor_id,
            employee_number=employee_number,
            start=start,
            end=end,
            nurse_id=nurse_id,
        )
        reservation = checker.try_book(request)
    except ValidationError as e:
        return _failure(ErrorKind.INVALID_INPUT.value, str(e))
    except SchedulingError as e:
        return _failure(e.kind.value, e.message)
    except requests.RequestException as e:
        logger.error("Booking for %s aborted: directory unavailable", employee_number)
        return _failure(DIRECTORY_UNAVAILABLE, f"Employee directory is unavailable: {e}")

    record = _to_record(reservation, tz_name)
    return {
        "success": True,
        "reservation_id": reservation.id,
        "message": (
            f"Reservation confirmed. Reference number: {reservation.id}. "
            f"{record['date']} at {record['time']}."
        ),
        "details": record,
    }


def reschedule_booking(
    checker: ConflictChecker,
    reservation_id: str,
    new_start: datetime,
    new_end: datetime,
    validate: bool = True,
    tz_name: str = "UTC",
) -> BookingResult:
    """Move a reservation. ``validate=False`` uses the trusted update path."""
    update = checker.validated_reschedule if validate else checker.reschedule
    try:
        reservation = update(reservation_id, new_start, new_end)
    except SchedulingError as e:
        return _failure(e.kind.value, e.message)

    record = _to_record(reservation, tz_name)
    return {
        "success": True,
        "reservation_id": reservation.id,
        "message": f"Reservation {reservation.id} rescheduled to {record['date']} at {record['time']}.",
        "details": record,
    }


def cancel_booking(checker: ConflictChecker, reservation_id: str) -> BookingResult:
    """Cancel an existing reservation by reference number."""
    try:
        checker.cancel(reservation_id)
    except SchedulingError as e:
        return _failure(e.kind.value, e.message)
    return {
        "success": True,
        "reservation_id": reservation_id,
        "message": f"Reservation {reservation_id} has been cancelled.",
    }


def get_booking(
    store: ClinicStore, reservation_id: str, tz_name: str = "UTC"
) -> Optional[ReservationRecord]:
    """Retrieve a reservation by reference number."""
    reservation = store.get_reservation(reservation_id)
    return _to_record(reservation, tz_name) if reservation else None


def list_bookings(
    store: ClinicStore,
    day: date,
    tz_name: str = "UTC",
    doctor_id: Optional[str] = None,
) -> list[ReservationRecord]:
    """Reservations starting on ``day`` in ``tz_name``, optionally for one doctor."""
    day_start, day_end = local_day_bounds(day, tz_name)
    return [
        _to_record(r, tz_name)
        for r in store.reservations_between(day_start, day_end)
        if doctor_id is None or r.doctor_id == doctor_id
    ]
