"""
Per-doctor, per-date availability periods.

A schedule entry is replaced wholesale: ``replace_periods`` swaps the whole
set of periods for one doctor on one date, never merges. Periods within one
entry must be mutually disjoint and are stored in chronological order, which
the slot generator relies on.

Deleting an entry does not touch reservations made against it.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Union

from clinic_scheduler.errors import InvalidInput
from clinic_scheduler.scheduling.time_window import TimeWindow, find_overlapping_pair

logger = logging.getLogger(__name__)

PeriodLike = Union[TimeWindow, Mapping[str, Any]]


@dataclass(frozen=True)
class ScheduleEntry:
    """The declared availability of one doctor on one date."""

    doctor_id: str
    date: date
    periods: tuple[TimeWindow, ...]
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "doctor_id": self.doctor_id,
            "date": self.date.isoformat(),
            "time_periods": [p.to_dict() for p in self.periods],
        }


class AvailabilityCalendar:
    """In-memory store of schedule entries keyed by ``(doctor_id, date)``."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, date], ScheduleEntry] = {}
        self._lock = threading.Lock()

    def replace_periods(
        self, doctor_id: str, day: date, periods: Iterable[PeriodLike]
    ) -> ScheduleEntry:
        """Replace every declared period of ``doctor_id`` on ``day``.

        An empty ``periods`` removes the entry.

        Raises:
            InvalidInput: If a period is malformed or two periods overlap.
                Prior periods are left unchanged.
        """
        windows = [TimeWindow.coerce(p) for p in periods]
        clash = find_overlapping_pair(windows)
        if clash:
            raise InvalidInput(
                f"Time periods {clash[0]} and {clash[1]} overlap; "
                "periods for one doctor on one date must be disjoint"
            )

        entry = ScheduleEntry(doctor_id=doctor_id, date=day, periods=tuple(sorted(windows)))
        with self._lock:
            if entry.periods:
                self._entries[(doctor_id, day)] = entry
            else:
                self._entries.pop((doctor_id, day), None)

        logger.info(
            "Schedule for doctor %s on %s set to [%s]",
            doctor_id, day.isoformat(), ", ".join(str(p) for p in entry.periods),
        )
        return entry

    def periods_for(self, doctor_id: str, day: date) -> tuple[TimeWindow, ...]:
        """Chronologically ordered periods, empty if none are declared."""
        entry = self._entries.get((doctor_id, day))
        return entry.periods if entry else ()

    def get_entry(self, doctor_id: str, day: date) -> Optional[ScheduleEntry]:
        return self._entries.get((doctor_id, day))

    def delete_entry(self, doctor_id: str, day: date) -> bool:
        """Remove an entry. Returns False if none existed."""
        with self._lock:
            removed = self._entries.pop((doctor_id, day), None)
        if removed:
            logger.info("Schedule for doctor %s on %s deleted", doctor_id, day.isoformat())
        return removed is not None

    def entries_on(self, day: date) -> list[ScheduleEntry]:
        """All entries for ``day`` across doctors."""
        return [e for (_, d), e in sorted(self._entries.items()) if d == day]

    def entries_for(self, doctor_id: str) -> list[ScheduleEntry]:
        """All entries of one doctor, ordered by date."""
        return [e for (doc, _), e in sorted(self._entries.items()) if doc == doctor_id]
