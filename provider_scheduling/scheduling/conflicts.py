"""
Conflict Detector

Finds an active booking whose occupied interval collides with a candidate's.
Every interval, candidate and existing alike, is inflated at the end by the
same buffer before the overlap test, which enforces "gap between bookings
>= buffer" in both directions without special-casing before/after.

Algorithm:
    1. candidate = occupied_interval(start, duration, buffer)
    2. for each pending/confirmed booking (minus ``exclude_booking_id``):
         existing = occupied_interval(b.start, b.duration, buffer)
         overlap -> conflict
    3. first colliding booking (in start order) or None
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from provider_scheduling.scheduling.time_window import intervals_overlap, occupied_interval
from provider_scheduling.schemas.booking_schema import Booking
from provider_scheduling.stores.bookings import BookingStore

logger = logging.getLogger(__name__)


def find_conflict(
    bookings: Iterable[Booking],
    start: datetime,
    duration_minutes: int,
    buffer_minutes: int = 0,
    exclude_booking_id: Optional[str] = None,
) -> Optional[Booking]:
    """Return the first active booking colliding with the candidate, else None."""
    candidate = occupied_interval(start, duration_minutes, buffer_minutes)
    for booking in sorted(bookings, key=lambda b: b.scheduled_at):
        if not booking.is_active or booking.id == exclude_booking_id:
            continue
        existing = occupied_interval(booking.scheduled_at, booking.duration_minutes, buffer_minutes)
        if intervals_overlap(candidate, existing):
            return booking
    return None


class ConflictDetector:
    """Conflict detection against a provider's stored active bookings."""

    def __init__(self, bookings: BookingStore) -> None:
        self._bookings = bookings

    def find_conflict(
        self,
        provider_id: str,
        start: datetime,
        duration_minutes: int,
        buffer_minutes: int = 0,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Booking]:
        conflict = find_conflict(
            self._bookings.list_active(provider_id),
            start,
            duration_minutes,
            buffer_minutes,
            exclude_booking_id,
        )
        if conflict is not None:
            logger.debug(
                "Conflict for provider %s at %s: booking %s",
                provider_id, start.isoformat(), conflict.id,
            )
        return conflict

    def has_conflict(
        self,
        provider_id: str,
        start: datetime,
        duration_minutes: int,
        buffer_minutes: int = 0,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        return (
            self.find_conflict(provider_id, start, duration_minutes, buffer_minutes, exclude_booking_id)
            is not None
        )
