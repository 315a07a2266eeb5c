"""
Slot generation for callers choosing a time.

Walks each declared period of a doctor on a date in fixed steps from the
period start and keeps the start times where a booking of the requested
duration would fit and would pass the overlap and room-capacity checks.
Containment in the schedule holds by construction.

The result is finite (bounded by period length / step) and ordered
chronologically across periods, because the calendar stores periods in
order. Reads take no lock; the commit-time check in ``try_book`` stays
authoritative if availability changes in between.

Usage:
    generator = SlotGenerator(store, config_store)
    starts = generator.generate_candidates("DOC-1", date(2026, 3, 2), 30, step_minutes=15)
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Iterator, Optional, TypedDict

from clinic_scheduler.config import ConfigStore
from clinic_scheduler.errors import DoubleBooked, InvalidInput, RoomCapacityExceeded
from clinic_scheduler.scheduling.capacity import (
    CapacitySource,
    concurrent_doctor_count,
    room_usage,
)
from clinic_scheduler.scheduling.conflicts import check_double_booking, check_room_capacity
from clinic_scheduler.scheduling.time_window import TimeWindow
from clinic_scheduler.utils import format_local, local_day_bounds, local_instant

if TYPE_CHECKING:
    from clinic_scheduler.storage import ClinicStore

logger = logging.getLogger(__name__)


class CandidateSlot(TypedDict):
    """A bookable slot as shown to a caller."""

    start: str
    end: str
    local_time: str
    capacity_remaining: Optional[int]


class SlotGenerator:
    """Enumerates bookable start times for one doctor on one date."""

    def __init__(self, store: ClinicStore, config_store: ConfigStore) -> None:
        self._store = store
        self._config_store = config_store

    def iter_candidates(
        self,
        doctor_id: str,
        day: date,
        duration_minutes: int,
        step_minutes: Optional[int] = None,
    ) -> Iterator[datetime]:
        """Lazily yield bookable start instants (UTC) in chronological order.

        Raises:
            InvalidInput: If the duration or step is not positive.
        """
        for _, start, _ in self._iter_slots(doctor_id, day, duration_minutes, step_minutes):
            yield start

    def generate_candidates(
        self,
        doctor_id: str,
        day: date,
        duration_minutes: int,
        step_minutes: Optional[int] = None,
    ) -> list[datetime]:
        """All bookable start instants as an ordered list."""
        return list(self.iter_candidates(doctor_id, day, duration_minutes, step_minutes))

    def describe_candidates(
        self,
        doctor_id: str,
        day: date,
        duration_minutes: int,
        step_minutes: Optional[int] = None,
    ) -> list[CandidateSlot]:
        """Candidate slots with end time and remaining room count, for display."""
        config = self._config_store.snapshot()
        tz_name = config.display_timezone
        day_start, day_end = local_day_bounds(day, tz_name)
        reservations = self._store.reservations_overlapping(day_start, day_end)

        slots: list[CandidateSlot] = []
        for window, start, end in self._iter_slots(doctor_id, day, duration_minutes, step_minutes):
            busy = concurrent_doctor_count(
                day, window, CapacitySource.RESERVATIONS,
                reservations=reservations, tz_name=tz_name, exclude_doctor_id=doctor_id,
            )
            slots.append({
                "start": start.isoformat(),
                "end": end.isoformat(),
                "local_time": format_local(start, tz_name, "%H:%M"),
                "capacity_remaining": room_usage(busy, config.number_of_rooms)["capacity_available"],
            })
        logger.debug("%d slot(s) for doctor %s on %s", len(slots), doctor_id, day.isoformat())
        return slots

    def _iter_slots(
        self,
        doctor_id: str,
        day: date,
        duration_minutes: int,
        step_minutes: Optional[int],
    ) -> Iterator[tuple[TimeWindow, datetime, datetime]]:
        config = self._config_store.snapshot()
        step = config.slot_step_minutes if step_minutes is None else step_minutes
        _check_positive(duration_minutes, "duration_minutes")
        _check_positive(step, "step_minutes")

        tz_name = config.display_timezone
        day_start, day_end = local_day_bounds(day, tz_name)
        reservations = self._store.reservations_overlapping(day_start, day_end)

        for period in self._store.calendar.periods_for(doctor_id, day):
            minute = period.start
            while minute + duration_minutes <= period.end:
                window = TimeWindow(minute, minute + duration_minutes)
                start = local_instant(day, window.start, tz_name)
                end = local_instant(day, window.end, tz_name)
                try:
                    check_double_booking(doctor_id, start, end, reservations)
                    check_room_capacity(doctor_id, day, window, config, reservations)
                except (DoubleBooked, RoomCapacityExceeded):
                    pass
                else:
                    yield window, start, end
                minute += step


def _check_positive(value: int, name: str) -> None:
    if value <= 0:
        raise InvalidInput(f"{name} must be positive, got {value}")

