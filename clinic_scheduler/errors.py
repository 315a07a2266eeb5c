"""
Error kinds raised by the scheduling core.

Booking-path errors propagate to the caller unchanged so the presentation
layer can render a specific message from ``error.kind``. Reminder-path
errors (``TemplateMissing``, ``SendFailed``) are caught and logged by the
reminder scheduler and never reach a caller.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Machine-readable identifier carried by every scheduling error."""

    EMPLOYEE_NOT_FOUND = "EmployeeNotFound"
    DOUBLE_BOOKED = "DoubleBooked"
    OUTSIDE_SCHEDULE = "OutsideSchedule"
    ROOM_CAPACITY_EXCEEDED = "RoomCapacityExceeded"
    INVALID_INPUT = "InvalidInput"
    TEMPLATE_MISSING = "TemplateMissing"
    SEND_FAILED = "SendFailed"
    RESERVATION_NOT_FOUND = "ReservationNotFound"


class SchedulingError(Exception):
    """Base class for all scheduling errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EmployeeNotFound(SchedulingError):
    """The directory could not resolve the employee number."""

    kind = ErrorKind.EMPLOYEE_NOT_FOUND

    def __init__(self, employee_number: str) -> None:
        self.employee_number = employee_number
        super().__init__(f"Employee {employee_number} not found")


class DoubleBooked(SchedulingError):
    """The doctor already has a reservation overlapping the candidate."""

    kind = ErrorKind.DOUBLE_BOOKED

    def __init__(self, doctor_id: str, conflicting_ids: list[str]) -> None:
        self.doctor_id = doctor_id
        self.conflicting_ids = conflicting_ids
        super().__init__(
            f"Doctor {doctor_id} already has a reservation in this time range "
            f"({', '.join(conflicting_ids)})"
        )


class OutsideSchedule(SchedulingError):
    """No declared availability period contains the candidate."""

    kind = ErrorKind.OUTSIDE_SCHEDULE

    def __init__(self, doctor_id: str, detail: Optional[str] = None) -> None:
        self.doctor_id = doctor_id
        message = f"Requested time is outside doctor {doctor_id}'s schedule"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class RoomCapacityExceeded(SchedulingError):
    """All examination rooms are taken for the candidate's window."""

    kind = ErrorKind.ROOM_CAPACITY_EXCEEDED

    def __init__(self, doctors_in_window: int, number_of_rooms: int) -> None:
        self.doctors_in_window = doctors_in_window
        self.number_of_rooms = number_of_rooms
        super().__init__(
            f"All examination rooms are occupied in this time range "
            f"({doctors_in_window} doctor(s) scheduled, {number_of_rooms} room(s))"
        )


class InvalidInput(SchedulingError):
    """Malformed window, non-disjoint periods, or non-positive duration."""

    kind = ErrorKind.INVALID_INPUT


class TemplateMissing(SchedulingError):
    """No email template is registered under the policy's template name."""

    kind = ErrorKind.TEMPLATE_MISSING

    def __init__(self, template_name: str) -> None:
        self.template_name = template_name
        super().__init__(f"Email template '{template_name}' is not registered")


class SendFailed(SchedulingError):
    """The mail transport rejected or failed to deliver a message. Retriable."""

    kind = ErrorKind.SEND_FAILED


class ReservationNotFound(SchedulingError):
    """No reservation exists with the given id."""

    kind = ErrorKind.RESERVATION_NOT_FOUND

    def __init__(self, reservation_id: str) -> None:
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")
