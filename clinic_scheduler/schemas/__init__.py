from clinic_scheduler.schemas.booking_schema import BookingRequest, Reservation
from clinic_scheduler.schemas.clinic_schema import Doctor, EmailTemplate, Employee, Nurse
from clinic_scheduler.schemas.reminder_schema import ReminderPolicy, ReminderSendRecord

__all__ = [
    "BookingRequest", "Reservation",
    "Doctor", "Nurse", "Employee", "EmailTemplate",
    "ReminderPolicy", "ReminderSendRecord",
]
