"""
Availability lookup for the presentation layer.

Answers "when can I see this doctor on this date?" with the bookable slots
from the slot generator, plus the next date in the coming week that has
any slot when the requested date has none.
"""

import logging
from datetime import date, timedelta
from typing import Optional, TypedDict

from clinic_scheduler.config import ConfigStore
from clinic_scheduler.errors import SchedulingError
from clinic_scheduler.scheduling.slots import CandidateSlot, SlotGenerator
from clinic_scheduler.storage import ClinicStore

logger = logging.getLogger(__name__)

LOOKAHEAD_DAYS = 7
MAX_SLOTS_RETURNED = 10


class AvailabilityResult(TypedDict, total=False):
    """Result from check_availability."""

    available: bool
    doctor_id: str
    date: str
    duration_minutes: int
    slots: list[CandidateSlot]
    next_available: Optional[str]
    message: str
    error: str


def resolve_duration(
    store: ClinicStore, config_store: ConfigStore, doctor_id: str,
    duration_minutes: Optional[int] = None,
) -> int:
    """Caller's duration, else the doctor's default, else the clinic default."""
    if duration_minutes is not None:
        return duration_minutes
    doctor = store.get_doctor(doctor_id)
    if doctor is not None:
        return doctor.default_duration_minutes
    return config_store.snapshot().default_duration_minutes


def check_availability(
    generator: SlotGenerator,
    store: ClinicStore,
    config_store: ConfigStore,
    doctor_id: str,
    day: date,
    duration_minutes: Optional[int] = None,
    step_minutes: Optional[int] = None,
) -> AvailabilityResult:
    """List bookable slots for ``doctor_id`` on ``day``."""
    duration = resolve_duration(store, config_store, doctor_id, duration_minutes)
    try:
        slots = generator.describe_candidates(doctor_id, day, duration, step_minutes)
    except SchedulingError as e:
        return {"available": False, "error": e.kind.value, "message": e.message, "slots": []}

    if slots:
        shown = slots[:MAX_SLOTS_RETURNED]
        times = ", ".join(s["local_time"] for s in shown)
        return {
            "available": True,
            "doctor_id": doctor_id,
            "date": day.isoformat(),
            "duration_minutes": duration,
            "slots": shown,
            "next_available": None,
            "message": f"{len(slots)} slot(s) available on {day.isoformat()}: {times}.",
        }

    next_day = _next_available_date(generator, doctor_id, day, duration, step_minutes)
    message = f"No availability on {day.isoformat()}."
    if next_day:
        message += f" The next available date is {next_day.isoformat()}."
    logger.info("No slots for doctor %s on %s", doctor_id, day.isoformat())
    return {
        "available": False,
        "doctor_id": doctor_id,
        "date": day.isoformat(),
        "duration_minutes": duration,
        "slots": [],
        "next_available": next_day.isoformat() if next_day else None,
        "message": message,
    }


def _next_available_date(
    generator: SlotGenerator,
    doctor_id: str,
    day: date,
    duration: int,
    step_minutes: Optional[int],
) -> Optional[date]:
    for offset in range(1, LOOKAHEAD_DAYS + 1):
        candidate = day + timedelta(days=offset)
        if next(generator.iter_candidates(doctor_id, candidate, duration, step_minutes), None) is not None:
            return candidate
    return None



class ScheduleDay(TypedDict):
    """One displayed day of the weekly schedule."""

    date: str
    weekday: str
    doctors: dict[str, list[dict[str, str]]]


def weekly_schedule(
    store: ClinicStore, config_store: ConfigStore, week_start: date
) -> list[ScheduleDay]:
    """Declared periods for the seven days from ``week_start``.

    Only weekdays listed in ``display_days_of_week`` (0=Sunday) are returned.
    """
    shown = set(config_store.snapshot().display_days_of_week)
    days: list[ScheduleDay] = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        if (day.weekday() + 1) % 7 not in shown:
            continue
        days.append({
            "date": day.isoformat(),
            "weekday": day.strftime("%A"),
            "doctors": {
                entry.doctor_id: [p.to_dict() for p in entry.periods]
                for entry in store.calendar.entries_on(day)
            },
        })
    return days
