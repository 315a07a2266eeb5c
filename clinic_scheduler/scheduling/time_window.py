"""
Clock-time windows with half-open overlap semantics.

Times are kept as minutes since local midnight (``0`` to ``1440``) so that
``24:00`` can close a window at the end of the day. Two windows overlap
iff ``a.start < b.end and b.start < a.end``; touching endpoints do not.

Usage:
    morning = TimeWindow.parse("09:00", "12:00")
    overlaps(morning, TimeWindow.parse("12:00", "13:00"))  # False
    contains(morning, TimeWindow.parse("09:00", "09:30"))   # True
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Union

from clinic_scheduler.errors import InvalidInput
from clinic_scheduler.utils import to_local

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight.

    Raises:
        InvalidInput: If the value is not a valid clock time.
    """
    match = _CLOCK_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidInput(f"Invalid clock time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise InvalidInput(f"Invalid clock time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def format_clock(minute_of_day: int) -> str:
    """Format minutes since midnight as ``HH:MM``."""
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


@dataclass(frozen=True, order=True)
class TimeWindow:
    """Half-open ``[start, end)`` interval of clock time on one day."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if not 0 <= self.start < self.end <= MINUTES_PER_DAY:
            raise InvalidInput(
                f"Invalid time window {format_clock(self.start)}-{format_clock(self.end)}: "
                "start must be before end within one day"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeWindow":
        return cls(parse_clock(start), parse_clock(end))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TimeWindow":
        """Build from ``{"start_time": "09:00", "end_time": "17:00"}``."""
        try:
            return cls.parse(data["start_time"], data["end_time"])
        except KeyError as exc:
            raise InvalidInput(f"Time period is missing {exc.args[0]!r}") from None

    @classmethod
    def coerce(cls, value: Union["TimeWindow", Mapping[str, Any]]) -> "TimeWindow":
        if isinstance(value, TimeWindow):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        raise InvalidInput(f"Cannot interpret {value!r} as a time period")

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    def to_dict(self) -> dict[str, str]:
        return {"start_time": format_clock(self.start), "end_time": format_clock(self.end)}

    def __str__(self) -> str:
        return f"{format_clock(self.start)}-{format_clock(self.end)}"


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    """True iff the half-open windows share at least one minute."""
    return a.start < b.end and b.start < a.end


def contains(outer: TimeWindow, inner: TimeWindow) -> bool:
    """True iff ``inner`` lies fully inside ``outer`` (closed containment)."""
    return outer.start <= inner.start and inner.end <= outer.end


def find_overlapping_pair(windows: list[TimeWindow]) -> Optional[tuple[TimeWindow, TimeWindow]]:
    """Return the first pair of mutually overlapping windows, if any."""
    ordered = sorted(windows)
    for previous, current in zip(ordered, ordered[1:]):
        if overlaps(previous, current):
            return previous, current
    return None


class CrossDateRange(InvalidInput):
    """An absolute range that does not fit on one local calendar date."""


def project_instants(start: datetime, end: datetime, tz_name: str) -> tuple[date, TimeWindow]:
    """Project an absolute ``[start, end)`` onto its local calendar date and clock window.

    Seconds are never dropped in the caller's favour: the start is floored
    and the end is rounded up to the enclosing whole minute. An end at exactly
    local midnight of the following day maps to ``24:00``.

    Raises:
        CrossDateRange: If the range spans more than one local calendar date.
    """
    local_start = to_local(start, tz_name)
    local_end = to_local(end, tz_name)
    day = local_start.date()

    start_minute = local_start.hour * 60 + local_start.minute
    if local_end.date() == day:
        end_minute = _minute_rounded_up(local_end)
    elif (local_end.date() - day).days == 1 and local_end.time() == datetime.min.time():
        end_minute = MINUTES_PER_DAY
    else:
        raise CrossDateRange("A reservation must start and end on the same calendar date")

    return day, TimeWindow(start_minute, end_minute)


def _minute_rounded_up(local: datetime) -> int:
    minute = local.hour * 60 + local.minute
    if local.second or local.microsecond:
        minute += 1
    return minute
