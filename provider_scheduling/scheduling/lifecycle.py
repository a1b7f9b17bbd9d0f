"""
Finite state machine for booking status changes.

Every status change a booking can undergo is listed in ``TRANSITIONS``.
Anything else is rejected with the triggers that would have been valid.

Usage:
    lifecycle = BookingLifecycle(BookingStatus.PENDING)
    lifecycle.transition(StatusTrigger.CONFIRM)
    assert lifecycle.current_status == BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from provider_scheduling.errors import ValidationError
from provider_scheduling.schemas.booking_schema import BookingStatus

logger = logging.getLogger(__name__)


class StatusTrigger(str, Enum):
    """Events that move a booking between statuses."""
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    RESCHEDULE = "reschedule"


@dataclass
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus
    trigger: StatusTrigger


@dataclass
class StatusEntry:
    """Recorded history entry for a status visit."""
    status: BookingStatus
    entered_at: datetime
    trigger: Optional[StatusTrigger] = None


class InvalidTransitionError(ValidationError):
    """Raised when a trigger is not valid from the current status."""


TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
)

# Requested target status -> trigger, for routes that take a status value.
TRIGGER_FOR_STATUS: dict[BookingStatus, StatusTrigger] = {
    BookingStatus.CONFIRMED: StatusTrigger.CONFIRM,
    BookingStatus.CANCELLED: StatusTrigger.CANCEL,
    BookingStatus.COMPLETED: StatusTrigger.COMPLETE,
    BookingStatus.RESCHEDULED: StatusTrigger.RESCHEDULE,
}


class BookingLifecycle:
    """
    Status machine for one booking.

    ``completed`` and ``cancelled`` are terminal; a cancelled booking frees
    its slot and a completed one becomes eligible for review.
    """

    TRANSITIONS: list[Transition] = [
        # --- Pending (created by a request that passed conflict detection) ---
        Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED, StatusTrigger.CONFIRM),
        Transition(BookingStatus.PENDING, BookingStatus.CANCELLED, StatusTrigger.CANCEL),
        Transition(BookingStatus.PENDING, BookingStatus.RESCHEDULED, StatusTrigger.RESCHEDULE),

        # --- Confirmed ---
        Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, StatusTrigger.COMPLETE),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, StatusTrigger.CANCEL),
        Transition(BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED, StatusTrigger.RESCHEDULE),

        # --- Rescheduled, awaiting the customer's new confirmation ---
        Transition(BookingStatus.RESCHEDULED, BookingStatus.CONFIRMED, StatusTrigger.CONFIRM),
        Transition(BookingStatus.RESCHEDULED, BookingStatus.CANCELLED, StatusTrigger.CANCEL),
    ]

    def __init__(self, status: BookingStatus = BookingStatus.PENDING) -> None:
        self._current_status = BookingStatus(status)
        self._history: list[StatusEntry] = [
            StatusEntry(status=self._current_status, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_status(self) -> BookingStatus:
        return self._current_status

    def transition(self, trigger: StatusTrigger) -> BookingStatus:
        """
        Execute a status transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new booking status.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_status == self._current_status and t.trigger == trigger:
                old_status = self._current_status
                self._current_status = t.to_status
                self._history.append(StatusEntry(
                    status=self._current_status,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Status transition: %s -> %s (trigger: %s)",
                    old_status.value, self._current_status.value, trigger.value,
                )
                return self._current_status

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"Cannot {trigger.value} a booking that is {self._current_status.value}. "
            f"Valid actions: {valid}",
            field="status",
        )

    def get_valid_triggers(self) -> list[StatusTrigger]:
        """Return all triggers valid from the current status."""
        return [t.trigger for t in self.TRANSITIONS if t.from_status == self._current_status]

    def get_history(self) -> list[StatusEntry]:
        return list(self._history)

    def is_terminal(self) -> bool:
        return self._current_status in TERMINAL_STATUSES
