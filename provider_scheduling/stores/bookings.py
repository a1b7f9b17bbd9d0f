"""
In-memory booking store.

Stands in for the document database's bookings collection. Every read
hands out a copy, so callers only ever observe committed writes.

``provider_lock`` is the per-provider mutex that serializes
detect-then-insert: without it two concurrent requests can both pass
conflict detection and both commit.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional

from provider_scheduling.schemas.booking_schema import ACTIVE_STATUSES, Booking, BookingStatus
from provider_scheduling.utils import utc_now

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {"status", "payment_status", "scheduled_at", "duration_minutes", "notes", "total_price"}
)


class BookingStore:
    """Bookings keyed by id, with per-provider write locks."""

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    @staticmethod
    def new_id() -> str:
        return f"BK-{uuid.uuid4().hex[:10].upper()}"

    @contextmanager
    def provider_lock(self, provider_id: str) -> Iterator[None]:
        """Hold the provider's write lock for a read-validate-write sequence."""
        with self._guard:
            lock = self._locks.setdefault(provider_id, threading.RLock())
        with lock:
            yield

    def get(self, booking_id: str) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    def create(self, booking: Booking) -> Booking:
        if booking.id in self._bookings:
            raise ValueError(f"Booking {booking.id} already exists")
        self._bookings[booking.id] = booking.model_copy(deep=True)
        logger.debug("Booking stored: %s", booking.id)
        return booking.model_copy(deep=True)

    def update(self, booking_id: str, **fields: Any) -> Booking:
        """Apply a partial update and return the stored result.

        Raises:
            KeyError: If the booking does not exist.
            ValueError: If a field is not updatable.
        """
        if booking_id not in self._bookings:
            raise KeyError(booking_id)
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        current = self._bookings[booking_id]
        updated = Booking.model_validate(
            {**current.model_dump(), **fields, "updated_at": utc_now()}
        )
        self._bookings[booking_id] = updated
        return updated.model_copy(deep=True)

    def list_for_provider(
        self,
        provider_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[Booking]:
        """Provider's bookings starting in ``[start, end)``, ordered by start."""
        wanted = set(statuses) if statuses is not None else None
        matches = [
            b.model_copy(deep=True)
            for b in self._bookings.values()
            if b.provider_id == provider_id
            and (wanted is None or b.status in wanted)
            and (start is None or b.scheduled_at >= start)
            and (end is None or b.scheduled_at < end)
        ]
        return sorted(matches, key=lambda b: b.scheduled_at)

    def list_active(
        self,
        provider_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Booking]:
        """Pending and confirmed bookings only."""
        return self.list_for_provider(provider_id, start, end, statuses=ACTIVE_STATUSES)

    def list_all(self) -> list[Booking]:
        return sorted((b.model_copy(deep=True) for b in self._bookings.values()), key=lambda b: b.scheduled_at)

    def list_for_user(self, user_id: str) -> list[Booking]:
        matches = [b.model_copy(deep=True) for b in self._bookings.values() if b.user_id == user_id]
        return sorted(matches, key=lambda b: b.scheduled_at)

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        self._bookings.clear()
