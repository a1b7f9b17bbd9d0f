"""
Reschedule notifications.

The cascade rescheduler never sends anything. After a successful commit it
emits one ``RescheduleNotice`` per shifted booking; the dispatcher consumes
them outside the request (a FastAPI background task) and delivers them
through a ``Notifier``. Delivery failures are logged and swallowed: a late
email must never undo or fail a committed reschedule.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from provider_scheduling.config import settings
from provider_scheduling.logging_context import get_request_logger
from provider_scheduling.notifications.events import RescheduleNotice
from provider_scheduling.scheduling.time_window import format_hhmm
from provider_scheduling.schemas.booking_schema import Booking
from provider_scheduling.schemas.customer_schema import CustomerRecord
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.stores.customers import CustomerStore

logger = get_request_logger(__name__)


@dataclass(frozen=True)
class RenderedMessage:
    sender: str
    recipient: str
    subject: str
    body: str


class Notifier(Protocol):
    async def send_reschedule(
        self, customer: CustomerRecord, booking: Booking, delay_minutes: int
    ) -> None: ...


def render_reschedule_message(
    customer: CustomerRecord, booking: Booking, delay_minutes: int, sender: Optional[str] = None
) -> RenderedMessage:
    """Build the "Appointment Delayed" email for a shifted booking."""
    body = "\n".join([
        "Appointment Delayed",
        f"Dear {customer.name},",
        "We apologize for the inconvenience, but your appointment for today has been "
        "slightly delayed due to an unexpected overrun in a previous service.",
        f"  New Start Time: {format_hhmm(booking.scheduled_at)} UTC",
        f"  Delay: Approx. {delay_minutes} minutes",
        "The provider is doing their best to reach you as soon as possible. "
        "Thank you for your patience.",
    ])
    return RenderedMessage(
        sender=sender or settings.notifications.sender,
        recipient=customer.email,
        subject="Important Update Regarding Your Appointment",
        body=body,
    )


@dataclass
class LoggingNotifier:
    """Notifier that renders messages and logs them instead of emailing.

    Email delivery is an external collaborator; this keeps a record of what
    would have been sent.
    """

    sender: str = field(default_factory=lambda: settings.notifications.sender)
    sent: list[RenderedMessage] = field(default_factory=list)

    async def send_reschedule(
        self, customer: CustomerRecord, booking: Booking, delay_minutes: int
    ) -> None:
        message = render_reschedule_message(customer, booking, delay_minutes, self.sender)
        self.sent.append(message)
        logger.info(
            "Reschedule notice to %s for booking %s (+%d min)",
            message.recipient, booking.id, delay_minutes,
        )


class NotificationDispatcher:
    """Delivers reschedule notices; never raises."""

    def __init__(
        self,
        customers: CustomerStore,
        bookings: BookingStore,
        notifier: Notifier,
        enabled: Optional[bool] = None,
    ) -> None:
        self._customers = customers
        self._bookings = bookings
        self._notifier = notifier
        self._enabled = settings.notifications.enabled if enabled is None else enabled

    async def dispatch(self, notices: Iterable[RescheduleNotice]) -> int:
        """Send each notice; return how many were delivered."""
        notices = list(notices)
        if not self._enabled:
            logger.info("Notifications disabled, dropping %d reschedule notice(s)", len(notices))
            return 0

        delivered = 0
        for notice in notices:
            customer = self._customers.get(notice.user_id)
            booking = self._bookings.get(notice.booking_id)
            if customer is None or booking is None:
                logger.warning(
                    "Cannot notify reschedule of %s: customer=%s booking found=%s",
                    notice.booking_id, notice.user_id, booking is not None,
                )
                continue
            try:
                await self._notifier.send_reschedule(customer, booking, notice.delay_minutes)
            except Exception:
                logger.exception("Reschedule notification failed for booking %s", notice.booking_id)
                continue
            delivered += 1
        return delivered
