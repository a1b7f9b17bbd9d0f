"""
Slot Generator

Enumerates bookable start times for one provider-day. Results are computed
fresh on every call; nothing is cached.

Per working window, in listed order:
    - cursor starts at the window start and steps SLOT_STEP_MINUTES while
      cursor < window end
    - cursor <= now                          -> skip (past or starting now)
    - cursor + duration > window end         -> stop this window; later
      starts only overflow further
    - buffer-inflated candidate overlaps an active booking -> skip
    - otherwise emit {time: "HH:mm", scheduledAt: cursor}
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Union

from provider_scheduling.scheduling.availability import AvailabilitySource, WeeklyAvailability, working_intervals
from provider_scheduling.scheduling.conflicts import find_conflict
from provider_scheduling.scheduling.time_window import format_hhmm
from provider_scheduling.schemas.booking_schema import Booking
from provider_scheduling.utils import ensure_utc, to_iso

# Protocol constant shared with clients rendering the slot grid.
SLOT_STEP_MINUTES = 30


@dataclass(frozen=True)
class Slot:
    """A bookable start time."""

    start_time: str
    instant: datetime

    def to_dict(self) -> dict[str, str]:
        return {"time": self.start_time, "scheduledAt": to_iso(self.instant)}


def effective_duration(service_duration_minutes: int, requested_duration_minutes: Any = None) -> int:
    """Requested duration when it is a valid int at least the service's, else the service's.

    Unparseable or non-positive overrides are ignored rather than rejected.
    """
    if requested_duration_minutes is None or isinstance(requested_duration_minutes, bool):
        return service_duration_minutes
    try:
        requested = int(requested_duration_minutes)
    except (TypeError, ValueError):
        return service_duration_minutes
    if requested <= 0:
        return service_duration_minutes
    return max(service_duration_minutes, requested)


def generate_slots(
    weekly: AvailabilitySource,
    on: Union[date, datetime],
    service_duration_minutes: int,
    bookings: Iterable[Booking],
    now: datetime,
    requested_duration_minutes: Any = None,
) -> list[Slot]:
    """Bookable starts for ``on``, ordered by instant.

    Args:
        weekly: provider's weekly template (any stored form); its buffer applies.
        on: target day (UTC).
        service_duration_minutes: the service's own duration.
        bookings: provider's bookings around the day; inactive ones are ignored.
        now: current instant, injected so results are reproducible.
        requested_duration_minutes: optional longer duration chosen by the customer.
    """
    if not isinstance(weekly, WeeklyAvailability):
        weekly = WeeklyAvailability.from_document(weekly)
    duration = effective_duration(service_duration_minutes, requested_duration_minutes)
    buffer = weekly.buffer_time_minutes
    now = ensure_utc(now)
    existing = [b for b in bookings if b.is_active]
    step = timedelta(minutes=SLOT_STEP_MINUTES)
    length = timedelta(minutes=duration)

    slots: list[Slot] = []
    for window in working_intervals(weekly, on):
        cursor = window.start
        while cursor < window.end:
            if cursor <= now:
                cursor += step
                continue
            if cursor + length > window.end:
                break
            if find_conflict(existing, cursor, duration, buffer) is None:
                slots.append(Slot(start_time=format_hhmm(cursor), instant=cursor))
            cursor += step

    # Windows are expected in chronological order but nothing enforces it.
    slots.sort(key=lambda slot: slot.instant)
    return slots
