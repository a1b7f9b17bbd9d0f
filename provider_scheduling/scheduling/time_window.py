"""
Time-window primitives: day-of-week, wall-clock ranges, and interval overlap.

The occupied-interval builder and ``intervals_overlap`` defined here are the
only overlap test in the package. Conflict detection and slot generation
both go through them, so the two can never disagree about what "overlap"
means.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import IntEnum
from typing import Union

from provider_scheduling.utils import at_utc, ensure_utc, utc_date

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class DayOfWeek(IntEnum):
    """Day of week, numbered the way legacy stored schedules number it (0 = Sunday)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @property
    def label(self) -> str:
        """Symbolic name as stored, e.g. ``"Monday"``."""
        return self.name.title()

    @classmethod
    def parse(cls, value: Union["DayOfWeek", int, str]) -> "DayOfWeek":
        """Normalize a numeric (0-6) or symbolic (``"Monday"``) day to the enum.

        Raises:
            ValueError: If the value is neither form.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid dayOfWeek {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Invalid dayOfWeek {value!r}. Must be 0-6.") from None
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                valid = ", ".join(day.label for day in cls)
                raise ValueError(
                    f'Invalid dayOfWeek "{value}". Must be one of: {valid}'
                ) from None
        raise ValueError(f"Invalid dayOfWeek {value!r}")

    @classmethod
    def from_date(cls, value: Union[date, datetime]) -> "DayOfWeek":
        """UTC day-of-week of a date or instant."""
        # date.weekday() is Monday=0; shift to Sunday=0.
        return cls((utc_date(value).weekday() + 1) % 7)


def parse_hhmm(value: str) -> time:
    """Parse a 24h ``HH:mm`` string.

    Raises:
        ValueError: If the string is not strict ``HH:mm``.
    """
    if not isinstance(value, str) or not HHMM_PATTERN.match(value):
        raise ValueError(f'Invalid time {value!r}. Expected "HH:mm" (24h).')
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def format_hhmm(value: Union[time, datetime]) -> str:
    """Format a wall-clock time (or a UTC instant) as ``HH:mm``."""
    if isinstance(value, datetime):
        value = ensure_utc(value).time()
    return f"{value.hour:02d}:{value.minute:02d}"


@dataclass(frozen=True, order=True)
class Interval:
    """Half-open instant interval ``[start, end)``."""

    start: datetime
    end: datetime

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class TimeRange:
    """A working window in wall-clock time, ``start < end``."""

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(
                f"start must be before end (got {format_hhmm(self.start)} - "
                f"{format_hhmm(self.end)})"
            )

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeRange":
        return cls(parse_hhmm(start), parse_hhmm(end))

    def anchored_on(self, day: date) -> Interval:
        """Concrete UTC interval of this window on ``day``."""
        return Interval(at_utc(day, self.start), at_utc(day, self.end))

    def to_dict(self) -> dict[str, str]:
        return {"start": format_hhmm(self.start), "end": format_hhmm(self.end)}

    def __str__(self) -> str:
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)}"


def occupied_interval(start: datetime, duration_minutes: int, buffer_minutes: int = 0) -> Interval:
    """Span a booking blocks: ``[start, start + duration + buffer)``.

    The buffer only extends the end. Inflating both sides of every
    comparison by the same buffer yields "gap between bookings >= buffer".
    """
    start = ensure_utc(start)
    return Interval(start, start + timedelta(minutes=duration_minutes + buffer_minutes))


def intervals_overlap(a: Interval, b: Interval) -> bool:
    """Standard half-open overlap: ``a.start < b.end and b.start < a.end``."""
    return a.overlaps(b)
