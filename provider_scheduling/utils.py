"""Shared UTC date/time helpers used across the scheduling engine.

Every day boundary in this package is a UTC day. Naive datetimes are
treated as UTC.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Union


def utc_now() -> datetime:
    """Current instant, timezone-aware in UTC. The default service clock."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Examples:
        >>> ensure_utc(datetime(2026, 1, 5, 9, 0)).isoformat()
        '2026-01-05T09:00:00+00:00'
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_date(value: Union[date, datetime]) -> date:
    """UTC calendar date of an instant (dates pass through unchanged)."""
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    return value


def at_utc(day: date, wall_clock: time) -> datetime:
    """Anchor a wall-clock time on a UTC calendar day."""
    return datetime.combine(day, wall_clock, tzinfo=timezone.utc)


def utc_day_bounds(value: Union[date, datetime]) -> tuple[datetime, datetime]:
    """Half-open ``[00:00Z, next 00:00Z)`` bounds of the UTC day."""
    start = at_utc(utc_date(value), time(0, 0))
    return start, start + timedelta(days=1)


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse a ``YYYY-MM-DD`` date (or full ISO-8601 instant) into a UTC date.

    Raises:
        ValueError: If the value is not a recognizable date.
    """
    if isinstance(value, (date, datetime)):
        return utc_date(value)
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    return utc_date(parse_datetime(text))


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 instant (a trailing ``Z`` is accepted) into UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def to_iso(value: datetime) -> str:
    """Serialize an instant as ISO-8601 UTC with a ``Z`` suffix."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")
