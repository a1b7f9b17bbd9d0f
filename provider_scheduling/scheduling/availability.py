"""
Availability Resolver

Turns a provider's weekly template into the working windows of one date.
Stored schedules come in several historical shapes (numeric or symbolic
days, ``slots``/``windows``, ``from``/``to`` or ``startTime``/``endTime``);
``WeeklyAvailability.from_document`` collapses all of them into one
internal form at the ingestion edge, so nothing past this module ever sees
the difference.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Union

from provider_scheduling.scheduling.time_window import DayOfWeek, Interval, TimeRange
from provider_scheduling.utils import utc_date

logger = logging.getLogger(__name__)

_START_KEYS = ("start", "startTime", "from")
_END_KEYS = ("end", "endTime", "to")


@dataclass(frozen=True)
class DaySchedule:
    """One day of a weekly template."""

    day: DayOfWeek
    is_available: bool
    windows: tuple[TimeRange, ...] = ()

    @property
    def working_windows(self) -> tuple[TimeRange, ...]:
        """Windows that actually accept bookings (none when the day is off)."""
        return self.windows if self.is_available else ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "dayOfWeek": self.day.label,
            "isAvailable": self.is_available,
            "windows": [window.to_dict() for window in self.windows],
        }


@dataclass(frozen=True)
class WeeklyAvailability:
    """A provider's weekly template plus the buffer required between bookings."""

    buffer_time_minutes: int = 0
    days: Mapping[DayOfWeek, DaySchedule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.buffer_time_minutes < 0:
            raise ValueError("bufferTimeMinutes must be a non-negative number (minutes).")
        for key, schedule in self.days.items():
            if schedule.day != key:
                raise ValueError(f"Day key {key.label} does not match schedule {schedule.day.label}")

    @classmethod
    def from_days(cls, days: Iterable[DaySchedule], buffer_time_minutes: int = 0) -> "WeeklyAvailability":
        """Build from a sequence of day schedules, rejecting duplicate days."""
        by_day: dict[DayOfWeek, DaySchedule] = {}
        for schedule in days:
            if schedule.day in by_day:
                raise ValueError(f'Duplicate dayOfWeek "{schedule.day.label}" in availability.days.')
            by_day[schedule.day] = schedule
        return cls(buffer_time_minutes=buffer_time_minutes, days=by_day)

    @classmethod
    def from_document(cls, document: Any) -> "WeeklyAvailability":
        """Normalize any stored schedule shape into a WeeklyAvailability.

        Accepts the canonical ``{bufferTimeMinutes, days}`` object, the older
        ``{bufferTime, days}`` object, and the legacy bare list of days with
        numeric ``dayOfWeek`` and ``from``/``to`` slots.

        Raises:
            ValueError: If a day, time, or buffer value is malformed.
        """
        if document is None:
            return cls()
        if isinstance(document, cls):
            return document
        if isinstance(document, list):
            raw_days, buffer = document, 0
        elif isinstance(document, Mapping):
            raw_days = document.get("days") or []
            buffer = document.get("bufferTimeMinutes", document.get("bufferTime"))
            buffer = buffer if buffer is not None else 0
        else:
            raise ValueError(f"Unsupported availability document: {type(document).__name__}")

        if isinstance(buffer, bool) or not isinstance(buffer, int):
            raise ValueError("bufferTimeMinutes must be a non-negative number (minutes).")
        return cls.from_days((_day_from_document(raw) for raw in raw_days), buffer)

    def for_day(self, day: DayOfWeek) -> Optional[DaySchedule]:
        return self.days.get(day)

    def to_document(self) -> dict[str, Any]:
        """Canonical persisted representation, days in Sunday..Saturday order."""
        return {
            "bufferTimeMinutes": self.buffer_time_minutes,
            "days": [self.days[day].to_dict() for day in sorted(self.days)],
        }


def _day_from_document(raw: Mapping[str, Any]) -> DaySchedule:
    if not isinstance(raw, Mapping):
        raise ValueError(f"Invalid day entry: {raw!r}")
    day = DayOfWeek.parse(raw.get("dayOfWeek"))
    raw_windows = raw.get("windows")
    if raw_windows is None:
        raw_windows = raw.get("slots") or []
    windows = tuple(_window_from_document(day, window) for window in raw_windows)
    # Legacy numeric-day documents carry no flag; a day with windows is a working day.
    is_available = raw.get("isAvailable")
    if is_available is None:
        is_available = bool(windows)
    return DaySchedule(day=day, is_available=bool(is_available), windows=windows)


def _window_from_document(day: DayOfWeek, raw: Mapping[str, Any]) -> TimeRange:
    if not isinstance(raw, Mapping):
        raise ValueError(f'Invalid window for day "{day.label}": {raw!r}')
    start = next((raw[key] for key in _START_KEYS if raw.get(key)), None)
    end = next((raw[key] for key in _END_KEYS if raw.get(key)), None)
    try:
        return TimeRange.from_strings(start, end)
    except ValueError as exc:
        raise ValueError(f'Invalid window for day "{day.label}": {exc}') from None


AvailabilitySource = Union[WeeklyAvailability, Mapping[str, Any], list, None]


def _as_weekly(weekly: AvailabilitySource) -> WeeklyAvailability:
    if isinstance(weekly, WeeklyAvailability):
        return weekly
    return WeeklyAvailability.from_document(weekly)


def resolve_day(weekly: AvailabilitySource, on: Union[date, datetime]) -> list[TimeRange]:
    """Working windows of ``on``'s UTC day-of-week, in listed order.

    No entry for the day, ``isAvailable = false``, or no windows all mean
    "no availability" and return an empty list.
    """
    schedule = _as_weekly(weekly).for_day(DayOfWeek.from_date(on))
    if schedule is None:
        return []
    return list(schedule.working_windows)


def working_intervals(weekly: AvailabilitySource, on: Union[date, datetime]) -> list[Interval]:
    """The day's windows anchored on its UTC date."""
    day = utc_date(on)
    return [window.anchored_on(day) for window in resolve_day(weekly, day)]


def closing_time(weekly: AvailabilitySource, on: Union[date, datetime]) -> Optional[datetime]:
    """Latest window end of the day, or None when the provider is off."""
    intervals = working_intervals(weekly, on)
    if not intervals:
        return None
    return max(interval.end for interval in intervals)
