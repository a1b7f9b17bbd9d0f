"""
Booking service: the orchestration layer between the HTTP routes and the
scheduling core.

Each public method is one use case. Input is validated before any storage
access; ownership is checked against the caller forwarded by the API;
every read-validate-write sequence that can race (booking creation, the
extension cascade) runs under the provider's write lock.

All failures are raised as ``SchedulingError`` subclasses and mapped to
HTTP responses by the API layer.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from provider_scheduling.config import AppConfig, settings
from provider_scheduling.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from provider_scheduling.logging_context import get_request_logger
from provider_scheduling.scheduling.availability import WeeklyAvailability, working_intervals
from provider_scheduling.scheduling.cascade import CascadeRescheduler, ExtensionResult
from provider_scheduling.scheduling.conflicts import ConflictDetector
from provider_scheduling.scheduling.lifecycle import TRIGGER_FOR_STATUS, BookingLifecycle, StatusTrigger
from provider_scheduling.scheduling.slots import Slot, generate_slots
from provider_scheduling.scheduling.time_window import DayOfWeek, occupied_interval
from provider_scheduling.schemas.availability_schema import WeeklyAvailabilityPayload
from provider_scheduling.schemas.booking_schema import (
    ACTIVE_STATUSES,
    Booking,
    BookingCreateRequest,
    BookingStatus,
    PaymentStatus,
)
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.stores.catalog import ServiceCatalog
from provider_scheduling.stores.customers import CustomerStore
from provider_scheduling.stores.providers import ProviderStore
from provider_scheduling.utils import parse_date, utc_day_bounds, utc_now

logger = get_request_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

EMPTY_AVAILABILITY: dict[str, Any] = {"bufferTimeMinutes": 0, "days": []}


class CallerRole(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    """Authenticated identity forwarded by the auth gateway."""

    user_id: str
    role: CallerRole = CallerRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == CallerRole.ADMIN


def parse_payload(model: type[ModelT], payload: Any) -> ModelT:
    """Validate ``payload`` into ``model``, raising our ValidationError on failure.

    The first failing field path is reported, e.g. ``days.0.windows.0.start``.
    """
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        path = ".".join(str(part) for part in first["loc"])
        message = first["msg"].removeprefix("Value error, ")
        raise ValidationError(
            f"{path}: {message}" if path else message,
            field=path or None,
        ) from None


class BookingService:
    """Booking and availability use cases."""

    def __init__(
        self,
        providers: ProviderStore,
        catalog: ServiceCatalog,
        bookings: BookingStore,
        customers: CustomerStore,
        config: AppConfig = settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.providers = providers
        self.catalog = catalog
        self.bookings = bookings
        self.customers = customers
        self.config = config
        self._clock = clock
        self._conflicts = ConflictDetector(bookings)
        self._cascade = CascadeRescheduler(bookings)

    # --- Availability ---

    def get_available_slots(
        self,
        provider_id: str,
        on: Union[str, date, datetime, None],
        service_id: Optional[str],
        duration_override: Any = None,
    ) -> list[Slot]:
        """Bookable start times for a provider-day.

        Raises:
            ValidationError: Missing or unparseable date, missing service id.
            NotFoundError: Unknown service or provider.
        """
        if not on or not service_id:
            raise ValidationError("Date and Service ID query parameters are required.")
        try:
            day = parse_date(on)
        except ValueError:
            raise ValidationError(f"Invalid date: {on!r}", field="date") from None

        service = self.catalog.get(service_id)
        if service is None:
            raise NotFoundError("Service not found.", field="serviceId")
        if self.providers.get(provider_id) is None:
            raise NotFoundError("Provider not found.")

        weekly = self.providers.get_availability(provider_id)
        if weekly is None:
            return []

        # Padded by a day each side: a buffer can reach across midnight.
        day_start, day_end = utc_day_bounds(day)
        nearby = self.bookings.list_active(
            provider_id, day_start - timedelta(days=1), day_end + timedelta(days=1)
        )
        return generate_slots(
            weekly, day, service.duration_minutes, nearby, self._clock(), duration_override
        )

    def get_provider_availability(self, provider_id: str) -> dict[str, Any]:
        if self.providers.get(provider_id) is None:
            raise NotFoundError("Provider not found.")
        weekly = self.providers.get_availability(provider_id)
        return weekly.to_document() if weekly else dict(EMPTY_AVAILABILITY)

    def get_my_availability(self, user_id: str) -> dict[str, Any]:
        """The calling provider's schedule; empty structure when no profile exists."""
        provider = self.providers.get_by_user(user_id)
        if provider is None:
            return dict(EMPTY_AVAILABILITY)
        weekly = self.providers.get_availability(provider.id)
        return weekly.to_document() if weekly else dict(EMPTY_AVAILABILITY)

    def upsert_availability(self, user_id: str, payload: Any) -> dict[str, Any]:
        """Replace the calling provider's weekly schedule.

        An omitted buffer keeps the previously stored one.

        Raises:
            ValidationError: Malformed schedule (checked before any lookup).
            NotFoundError: The caller has no provider profile.
        """
        request = parse_payload(WeeklyAvailabilityPayload, payload)
        provider = self.providers.get_by_user(user_id)
        if provider is None:
            raise NotFoundError("Provider profile not found.")

        previous = self.providers.get_availability(provider.id)
        weekly = request.to_domain(fallback_buffer=previous.buffer_time_minutes if previous else 0)
        self.providers.save_availability(provider.id, weekly)
        logger.info(
            "Availability updated for provider %s: %d day(s), buffer %d min",
            provider.id, len(weekly.days), weekly.buffer_time_minutes,
        )
        return weekly.to_document()

    # --- Bookings ---

    def create_booking(self, user_id: str, payload: Any) -> Booking:
        """Create a pending booking for ``user_id``.

        Raises:
            ValidationError: Bad payload, past start, day without availability,
                or a booking that does not fit one working window.
            NotFoundError: Service missing or inactive, provider missing.
            ConflictError: The time collides with an active booking.
        """
        request = parse_payload(BookingCreateRequest, payload)
        if request.notes and len(request.notes) > self.config.scheduling.max_notes_length:
            raise ValidationError(
                f"Notes must be at most {self.config.scheduling.max_notes_length} characters.",
                field="notes",
            )

        service = self.catalog.get(request.service_id)
        if service is None or not service.is_active:
            raise NotFoundError("Service not found or inactive.", field="serviceId")
        provider = self.providers.get(service.provider_id)
        if provider is None:
            raise NotFoundError("Provider not found.")

        duration = request.duration_minutes or service.duration_minutes
        if duration < self.config.scheduling.min_booking_duration_minutes:
            raise ValidationError(
                f"Duration must be at least {self.config.scheduling.min_booking_duration_minutes} minutes.",
                field="durationMinutes",
            )
        start = request.scheduled_at
        if start <= self._clock():
            raise ValidationError("Bookings must be scheduled in the future.", field="scheduledAt")

        weekly = self.providers.get_availability(provider.id) or WeeklyAvailability()
        windows = working_intervals(weekly, start)
        if not windows:
            raise ValidationError(
                "Provider does not have general availability set for "
                f"{DayOfWeek.from_date(start).label}.",
                field="scheduledAt",
            )
        requested = occupied_interval(start, duration)
        if not any(window.contains(requested) for window in windows):
            raise ValidationError(
                "The requested time is outside the provider's working hours.",
                field="scheduledAt",
            )

        with self.bookings.provider_lock(provider.id):
            conflict = self._conflicts.find_conflict(
                provider.id, start, duration, weekly.buffer_time_minutes
            )
            if conflict is not None:
                logger.info(
                    "Booking request by %s for provider %s at %s conflicts with %s",
                    user_id, provider.id, start.isoformat(), conflict.id,
                )
                raise ConflictError(
                    "The selected time slot conflicts with an existing booking.",
                    details={"conflictingBookingId": conflict.id},
                )
            booking = self.bookings.create(Booking(
                id=self.bookings.new_id(),
                provider_id=provider.id,
                service_id=service.id,
                user_id=user_id,
                scheduled_at=start,
                duration_minutes=duration,
                status=BookingStatus.PENDING,
                payment_status=PaymentStatus.UNPAID,
                total_price=service.price_for(duration),
                notes=request.notes,
            ))

        logger.info(
            "Booking %s created: provider=%s start=%s duration=%d",
            booking.id, provider.id, start.isoformat(), duration,
        )
        return booking

    def list_bookings(self, caller: Caller) -> list[Booking]:
        """Role-scoped listing: customers see theirs, providers their own calendar."""
        if caller.is_admin:
            return self.bookings.list_all()
        if caller.role == CallerRole.PROVIDER:
            provider = self.providers.get_by_user(caller.user_id)
            if provider is None:
                raise NotFoundError("Provider profile not found.")
            return self.bookings.list_for_provider(provider.id)
        return self.bookings.list_for_user(caller.user_id)

    def get_booking(self, booking_id: str, caller: Caller) -> Booking:
        booking = self._require_booking(booking_id)
        if not (
            caller.is_admin
            or caller.user_id == booking.user_id
            or self._is_owning_provider(booking, caller)
        ):
            raise PermissionDeniedError("Not authorized to view this booking.")
        return booking

    def extend_booking(
        self, booking_id: str, caller: Caller, minutes: Optional[int] = None
    ) -> ExtensionResult:
        """Extend an overrunning booking and push the rest of the day back.

        Raises:
            NotFoundError: Unknown booking.
            PermissionDeniedError: Caller is not the booking's provider.
            PreconditionError: Booking is not active, or its day has no schedule.
            ValidationError: Non-positive ``minutes``.
            ConflictError: The shifted day would run past closing time.
            CollaboratorFailure: A write failed mid-commit.
        """
        delta = self.config.scheduling.extension_increment_minutes if minutes is None else minutes
        if isinstance(delta, bool) or not isinstance(delta, int) or delta <= 0:
            raise ValidationError("Extension must be a positive number of minutes.", field="minutes")

        booking = self._require_booking(booking_id)
        if not self._is_owning_provider(booking, caller):
            raise PermissionDeniedError("Only the booking's provider can extend it.")

        with self.bookings.provider_lock(booking.provider_id):
            # Re-read under the lock; the status may have changed meanwhile.
            booking = self._require_booking(booking_id)
            if not booking.is_active:
                raise PreconditionError(
                    f"Booking {booking.id} is {booking.status.value}; only active bookings can be extended."
                )
            weekly = self.providers.get_availability(booking.provider_id)
            try:
                return self._cascade.extend(booking, weekly, delta)
            except ConflictError:
                logger.warning(
                    "Extension of booking %s by %d min rejected: day would overrun closing time",
                    booking.id, delta,
                )
                raise

    def update_status(
        self,
        booking_id: str,
        caller: Caller,
        status: Optional[Union[BookingStatus, str]] = None,
        payment_status: Optional[Union[PaymentStatus, str]] = None,
    ) -> Booking:
        """Provider/admin status change. ``completed`` is admin-only here.

        Re-activating a booking (e.g. ``rescheduled`` -> ``confirmed``)
        reclaims its slot, so it goes through conflict detection again.
        """
        try:
            status = BookingStatus(status) if status is not None else None
            payment_status = PaymentStatus(payment_status) if payment_status is not None else None
        except ValueError as exc:
            raise ValidationError(str(exc), field="status") from None
        if status is None and payment_status is None:
            raise ValidationError("Nothing to update: provide status or paymentStatus.")

        booking = self._require_booking(booking_id)
        if not (caller.is_admin or self._is_owning_provider(booking, caller)):
            raise PermissionDeniedError("Not authorized to update this booking status.")
        if status == BookingStatus.COMPLETED and not caller.is_admin:
            raise PermissionDeniedError("Use the dedicated complete endpoint to finalize the booking.")

        with self.bookings.provider_lock(booking.provider_id):
            booking = self._require_booking(booking_id)
            changes: dict[str, Any] = {}
            if status is not None:
                new_status = self._apply_transition(booking, TRIGGER_FOR_STATUS[status])
                if new_status in ACTIVE_STATUSES and not booking.is_active:
                    self._ensure_slot_free(booking)
                changes["status"] = new_status
            if payment_status is not None:
                changes["payment_status"] = payment_status
            updated = self.bookings.update(booking.id, **changes)
        logger.info(
            "Booking %s updated by %s: status=%s payment=%s",
            booking.id, caller.user_id, updated.status.value, updated.payment_status.value,
        )
        return updated

    def cancel_booking(self, booking_id: str, caller: Caller) -> Booking:
        booking = self._require_booking(booking_id)
        if not (caller.is_admin or caller.user_id == booking.user_id):
            raise PermissionDeniedError("Not authorized to cancel this booking.")

        with self.bookings.provider_lock(booking.provider_id):
            booking = self._require_booking(booking_id)
            if booking.status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
                raise ValidationError(
                    f"Cannot cancel a booking that is already {booking.status.value}.", field="status"
                )
            new_status = self._apply_transition(booking, StatusTrigger.CANCEL)
            cancelled = self.bookings.update(booking.id, status=new_status)
        logger.info("Booking %s cancelled by %s", booking.id, caller.user_id)
        return cancelled

    def complete_booking(self, booking_id: str, caller: Caller) -> Booking:
        """Customer (or admin) marks a paid booking as completed."""
        booking = self._require_booking(booking_id)
        if not (caller.is_admin or caller.user_id == booking.user_id):
            raise PermissionDeniedError("Not authorized to complete this booking.")

        with self.bookings.provider_lock(booking.provider_id):
            booking = self._require_booking(booking_id)
            if booking.status == BookingStatus.COMPLETED:
                raise ValidationError("Booking is already marked complete.", field="status")
            if booking.payment_status != PaymentStatus.PAID:
                raise ValidationError(
                    "Cannot complete booking: payment was not verified or paid.", field="paymentStatus"
                )
            new_status = self._apply_transition(booking, StatusTrigger.COMPLETE)
            completed = self.bookings.update(booking.id, status=new_status)
        logger.info("Booking %s completed; %.2f released to provider", booking.id, booking.total_price)
        return completed

    # --- Helpers ---

    def _ensure_slot_free(self, booking: Booking) -> None:
        """Raise ConflictError if another active booking now holds this booking's time.

        Caller must hold the provider lock.
        """
        weekly = self.providers.get_availability(booking.provider_id)
        buffer = weekly.buffer_time_minutes if weekly else 0
        conflict = self._conflicts.find_conflict(
            booking.provider_id,
            booking.scheduled_at,
            booking.duration_minutes,
            buffer,
            exclude_booking_id=booking.id,
        )
        if conflict is not None:
            logger.info(
                "Re-activating booking %s blocked: slot now held by %s", booking.id, conflict.id
            )
            raise ConflictError(
                "The booking's time slot has since been taken by another booking.",
                details={"conflictingBookingId": conflict.id},
            )

    def _require_booking(self, booking_id: str) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found.")
        return booking

    def _is_owning_provider(self, booking: Booking, caller: Caller) -> bool:
        provider = self.providers.get(booking.provider_id)
        return provider is not None and provider.user_id == caller.user_id

    @staticmethod
    def _apply_transition(booking: Booking, trigger: StatusTrigger) -> BookingStatus:
        return BookingLifecycle(booking.status).transition(trigger)
