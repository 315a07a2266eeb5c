"""
Room occupancy derived on demand.

Counts how many distinct doctors are busy in a time window on a date. There
is no stored state: every call recomputes from the records passed in.

Two sources exist and they answer different questions:

* ``RESERVATIONS``: committed bookings. Authoritative; the conflict checker
  rejects a booking from this count.
* ``DECLARED_PERIODS``: published availability. Advisory only; used when a
  schedule is being authored to warn that more doctors plan to be present
  than there are rooms.
"""

from datetime import date
from enum import Enum
from typing import Iterable, Optional, TypedDict

from clinic_scheduler.scheduling.calendar import ScheduleEntry
from clinic_scheduler.scheduling.time_window import TimeWindow, overlaps
from clinic_scheduler.schemas.booking_schema import Reservation
from clinic_scheduler.utils import local_instant


class CapacitySource(str, Enum):
    """Where occupancy is counted from."""

    RESERVATIONS = "reservations"
    DECLARED_PERIODS = "declared_periods"


class RoomUsage(TypedDict):
    """Occupancy summary for one window."""

    capacity_used: int
    capacity_available: Optional[int]
    capacity_exceeded: bool


def _busy_doctors_from_reservations(
    day: date, window: TimeWindow, reservations: Iterable[Reservation], tz_name: str
) -> set[str]:
    start = local_instant(day, window.start, tz_name)
    end = local_instant(day, window.end, tz_name)
    return {r.doctor_id for r in reservations if r.overlaps(start, end)}


def _busy_doctors_from_entries(
    day: date, window: TimeWindow, entries: Iterable[ScheduleEntry]
) -> set[str]:
    return {
        entry.doctor_id
        for entry in entries
        if entry.date == day and any(overlaps(p, window) for p in entry.periods)
    }


def concurrent_doctor_count(
    day: date,
    window: TimeWindow,
    source: CapacitySource,
    *,
    reservations: Iterable[Reservation] = (),
    entries: Iterable[ScheduleEntry] = (),
    tz_name: str = "UTC",
    exclude_doctor_id: Optional[str] = None,
) -> int:
    """Number of distinct doctors busy during ``window`` on ``day``.

    Args:
        day: Local calendar date in ``tz_name``.
        window: Clock window on that date.
        source: Count committed reservations or declared periods.
        reservations: Candidate reservations (used for ``RESERVATIONS``).
        entries: Schedule entries (used for ``DECLARED_PERIODS``).
        tz_name: Timezone reservations are projected into.
        exclude_doctor_id: Doctor left out of the count, typically the one
            asking for a room.
    """
    if source == CapacitySource.RESERVATIONS:
        busy = _busy_doctors_from_reservations(day, window, reservations, tz_name)
    else:
        busy = _busy_doctors_from_entries(day, window, entries)
    busy.discard(exclude_doctor_id)
    return len(busy)


def room_usage(doctors_in_window: int, number_of_rooms: Optional[int]) -> RoomUsage:
    """Summarize occupancy against the configured room count.

    With no room count configured capacity is unlimited and never exceeded.
    """
    if number_of_rooms is None:
        return {
            "capacity_used": doctors_in_window,
            "capacity_available": None,
            "capacity_exceeded": False,
        }
    return {
        "capacity_used": doctors_in_window,
        "capacity_available": max(0, number_of_rooms - doctors_in_window),
        "capacity_exceeded": doctors_in_window >= number_of_rooms,
    }
