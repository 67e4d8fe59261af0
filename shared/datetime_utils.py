"""
Date/time parsing and calendar helpers — framework-agnostic.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC; MongoDB hands them back naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_calendar_date(value: Any) -> Any:
    """Coerce a due-date value to a ``date``.

    ``"2025-01-10"``, ``"2025-01-10T00:00:00Z"``, ``date`` and ``datetime``
    are accepted. The calendar day is taken as written, without shifting
    timezones. Anything else is returned untouched for the caller's
    validator to reject.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if len(raw) >= 10:
            try:
                return date.fromisoformat(raw[:10])
            except ValueError:
                return value
    return value


def at_hour(day: date, hour: int, tz: tzinfo) -> datetime:
    """Return *day* at ``hour:00`` in *tz*."""
    return datetime.combine(day, time(hour=hour), tzinfo=tz)
