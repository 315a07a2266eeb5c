from clinic_scheduler.scheduling.calendar import AvailabilityCalendar, ScheduleEntry
from clinic_scheduler.scheduling.capacity import (
    CapacitySource,
    concurrent_doctor_count,
    room_usage,
)
from clinic_scheduler.scheduling.conflicts import CapacityWarning, ConflictChecker
from clinic_scheduler.scheduling.slots import SlotGenerator
from clinic_scheduler.scheduling.time_window import TimeWindow, contains, overlaps

__all__ = [
    "AvailabilityCalendar", "ScheduleEntry",
    "CapacitySource", "concurrent_doctor_count", "room_usage",
    "ConflictChecker", "CapacityWarning",
    "SlotGenerator",
    "TimeWindow", "overlaps", "contains",
]
