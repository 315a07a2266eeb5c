"""Shared utilities used across the clinic scheduler."""

import re
from datetime import date, datetime, time, timedelta, timezone

import pytz


def normalize_employee_number(value: str) -> str:
    """Normalize an employee number by stripping whitespace and separators.

    Examples:
        >>> normalize_employee_number(" E-0001 ")
        'E0001'
        >>> normalize_employee_number("e 0001")
        'E0001'
    """
    return re.sub(r"[\s\-_]", "", value).upper()


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """Return the UTC instants bounding ``day`` in ``tz_name`` as ``[start, end)``."""
    tz = pytz.timezone(tz_name)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def to_local(value: datetime, tz_name: str) -> datetime:
    """Convert an instant into wall-clock time of ``tz_name``."""
    return ensure_utc(value).astimezone(pytz.timezone(tz_name))


def local_instant(day: date, minute_of_day: int, tz_name: str) -> datetime:
    """Build the UTC instant for ``minute_of_day`` on ``day`` in ``tz_name``."""
    wall_clock = datetime.combine(day, time.min) + timedelta(minutes=minute_of_day)
    return pytz.timezone(tz_name).localize(wall_clock).astimezone(timezone.utc)


def format_local(value: datetime, tz_name: str, fmt: str = "%Y-%m-%d %H:%M") -> str:
    """Format an instant in the display timezone."""
    return to_local(value, tz_name).strftime(fmt)
