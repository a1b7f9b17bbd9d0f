"""Tests for the booking service use cases."""

from contextlib import contextmanager
from typing import Callable, Optional

import pytest

from provider_scheduling.booking_service import BookingService, Caller, CallerRole
from provider_scheduling.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    PreconditionError,
    ValidationError,
)
from provider_scheduling.scheduling.availability import WeeklyAvailability
from provider_scheduling.schemas.booking_schema import BookingStatus, PaymentStatus
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.stores.providers import ProviderRecord
from tests.conftest import (
    CUSTOMER_ID,
    FIXED_NOW,
    MONDAY,
    OTHER_CUSTOMER_ID,
    PROVIDER_ID,
    PROVIDER_USER,
    SERVICE_ID,
    at,
    make_booking,
)


def booking_request(start, duration=None, service_id=SERVICE_ID, **extra):
    payload = {"serviceId": service_id, "scheduledAt": start.isoformat(), **extra}
    if duration is not None:
        payload["durationMinutes"] = duration
    return payload


class TestAvailableSlots:
    def test_scenario_via_service(self, service, bookings):
        bookings.create(make_booking(at(10), 60))
        slots = service.get_available_slots(PROVIDER_ID, "2026-01-05", SERVICE_ID)
        assert [s.start_time for s in slots] == ["09:00", "11:30"]

    def test_requires_date_and_service(self, service):
        with pytest.raises(ValidationError):
            service.get_available_slots(PROVIDER_ID, None, SERVICE_ID)
        with pytest.raises(ValidationError):
            service.get_available_slots(PROVIDER_ID, "2026-01-05", "")

    def test_bad_date(self, service):
        with pytest.raises(ValidationError, match="Invalid date"):
            service.get_available_slots(PROVIDER_ID, "next monday", SERVICE_ID)

    def test_unknown_service(self, service):
        with pytest.raises(NotFoundError):
            service.get_available_slots(PROVIDER_ID, MONDAY, "SRV-NOPE")

    def test_unknown_provider(self, service):
        with pytest.raises(NotFoundError):
            service.get_available_slots("PRV-NOPE", MONDAY, SERVICE_ID)

    def test_provider_without_schedule(self, service, providers):
        providers.add(ProviderRecord(id="PRV-NEW", user_id="USR-NEW", business_name="New"))
        assert service.get_available_slots("PRV-NEW", MONDAY, SERVICE_ID) == []

    def test_buffer_across_midnight_is_seen(self, service, providers, bookings):
        providers.save_availability(PROVIDER_ID, WeeklyAvailability.from_document({
            "bufferTimeMinutes": 15,
            "days": [{"dayOfWeek": "Monday", "isAvailable": True, "windows": [{"start": "00:00", "end": "02:00"}]}],
        }))
        bookings.create(make_booking(at(23, 30, day=MONDAY.replace(day=4)), 60))
        slots = service.get_available_slots(PROVIDER_ID, MONDAY, SERVICE_ID)
        assert [s.start_time for s in slots] == ["01:00", "01:30"]


class TestAvailabilityDocuments:
    def test_provider_availability_canonical(self, service):
        document = service.get_provider_availability(PROVIDER_ID)
        assert document["bufferTimeMinutes"] == 15
        assert document["days"][0]["dayOfWeek"] == "Monday"

    def test_provider_availability_unknown_provider(self, service):
        with pytest.raises(NotFoundError):
            service.get_provider_availability("PRV-NOPE")

    def test_my_availability_without_profile_is_empty(self, service):
        assert service.get_my_availability("USR-NOBODY") == {"bufferTimeMinutes": 0, "days": []}

    def test_upsert_replaces_schedule(self, service):
        result = service.upsert_availability(PROVIDER_USER, {
            "bufferTimeMinutes": 5,
            "days": [{"dayOfWeek": 2, "isAvailable": True, "windows": [{"start": "10:00", "end": "14:00"}]}],
        })
        assert result["bufferTimeMinutes"] == 5
        assert result["days"] == [
            {"dayOfWeek": "Tuesday", "isAvailable": True, "windows": [{"start": "10:00", "end": "14:00"}]},
        ]
        assert service.get_my_availability(PROVIDER_USER) == result

    def test_upsert_keeps_buffer_when_omitted(self, service):
        result = service.upsert_availability(PROVIDER_USER, {"days": []})
        assert result["bufferTimeMinutes"] == 15

    def test_upsert_validates_before_lookup(self, service):
        # No profile for this user, but the malformed payload is reported first.
        with pytest.raises(ValidationError) as exc_info:
            service.upsert_availability("USR-NOBODY", {"days": [{"dayOfWeek": "Funday", "isAvailable": True}]})
        assert exc_info.value.field.startswith("days.0")

    def test_upsert_without_profile(self, service):
        with pytest.raises(NotFoundError):
            service.upsert_availability("USR-NOBODY", {"days": []})

    def test_upsert_rejects_window_order(self, service):
        payload = {"days": [{"dayOfWeek": "Monday", "isAvailable": True,
                             "windows": [{"start": "12:00", "end": "09:00"}]}]}
        with pytest.raises(ValidationError, match="start must be before end"):
            service.upsert_availability(PROVIDER_USER, payload)


class TestCreateBooking:
    def test_creates_pending_unpaid_booking(self, service):
        booking = service.create_booking(CUSTOMER_ID, booking_request(at(9), notes="  side gate  "))
        assert booking.status == BookingStatus.PENDING
        assert booking.payment_status == PaymentStatus.UNPAID
        assert booking.duration_minutes == 30
        assert booking.total_price == 30.0
        assert booking.notes == "side gate"
        assert service.bookings.get(booking.id) == booking

    def test_requested_duration_priced_hourly(self, service):
        booking = service.create_booking(CUSTOMER_ID, booking_request(at(9), duration=90))
        assert booking.total_price == 90.0

    def test_conflict(self, service, bookings):
        existing = bookings.create(make_booking(at(10), 60))
        with pytest.raises(ConflictError) as exc_info:
            service.create_booking(CUSTOMER_ID, booking_request(at(11)))
        assert exc_info.value.details["conflictingBookingId"] == existing.id

    def test_exactly_buffer_after_is_accepted(self, service, bookings):
        bookings.create(make_booking(at(10), 60))
        booking = service.create_booking(CUSTOMER_ID, booking_request(at(11, 15)))
        assert booking.scheduled_at == at(11, 15)

    def test_cancelled_booking_does_not_block(self, service, bookings):
        bookings.create(make_booking(at(10), 60, status=BookingStatus.CANCELLED))
        assert service.create_booking(CUSTOMER_ID, booking_request(at(10)))

    def test_day_without_availability(self, service):
        tuesday_nine = at(9, day=MONDAY.replace(day=6))
        with pytest.raises(ValidationError, match="Tuesday"):
            service.create_booking(CUSTOMER_ID, booking_request(tuesday_nine))

    def test_outside_working_window(self, service):
        with pytest.raises(ValidationError, match="working hours"):
            service.create_booking(CUSTOMER_ID, booking_request(at(11, 45)))

    def test_past_start_rejected(self, service):
        with pytest.raises(ValidationError, match="future"):
            service.create_booking(CUSTOMER_ID, booking_request(at(9, day=MONDAY.replace(day=4))))

    def test_inactive_service(self, service):
        with pytest.raises(NotFoundError):
            service.create_booking(CUSTOMER_ID, booking_request(at(9), service_id="SRV-OFF"))

    def test_duration_below_minimum(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_booking(CUSTOMER_ID, booking_request(at(9), duration=5))
        assert exc_info.value.field == "durationMinutes"

    def test_missing_scheduled_at(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_booking(CUSTOMER_ID, {"serviceId": SERVICE_ID})
        assert exc_info.value.field == "scheduledAt"

    def test_notes_too_long(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_booking(CUSTOMER_ID, booking_request(at(9), notes="x" * 501))
        assert exc_info.value.field == "notes"


class TestGetBooking:
    def test_visible_to_owner_provider_and_admin(self, service, bookings, customer, provider_caller, admin):
        booking = bookings.create(make_booking(at(10), 60))
        for caller in (customer, provider_caller, admin):
            assert service.get_booking(booking.id, caller).id == booking.id

    def test_hidden_from_other_customers(self, service, bookings):
        booking = bookings.create(make_booking(at(10), 60))
        with pytest.raises(PermissionDeniedError):
            service.get_booking(booking.id, Caller(OTHER_CUSTOMER_ID))

    def test_missing(self, service, customer):
        with pytest.raises(NotFoundError):
            service.get_booking("BK-NOPE", customer)


class TestListBookings:
    def test_role_scoped(self, service, bookings, customer, provider_caller, admin):
        bookings.create(make_booking(at(9), 30, booking_id="BK-1"))
        bookings.create(make_booking(at(10), 30, booking_id="BK-2", user_id=OTHER_CUSTOMER_ID))
        bookings.create(make_booking(at(11), 30, booking_id="BK-3", provider_id="PRV-OTHER"))
        assert [b.id for b in service.list_bookings(customer)] == ["BK-1"]
        assert [b.id for b in service.list_bookings(provider_caller)] == ["BK-1", "BK-2"]
        assert [b.id for b in service.list_bookings(admin)] == ["BK-1", "BK-2", "BK-3"]


class TestExtendBooking:
    def test_extends_and_cascades(self, service, bookings, provider_caller):
        target = bookings.create(make_booking(at(9), 30, booking_id="BK-T"))
        bookings.create(make_booking(at(10), 30, booking_id="BK-N", user_id=OTHER_CUSTOMER_ID))
        result = service.extend_booking(target.id, provider_caller)
        assert result.booking.duration_minutes == 60
        assert result.rescheduled_count == 1
        assert bookings.get("BK-N").scheduled_at == at(10, 30)
        assert result.notices[0].user_id == OTHER_CUSTOMER_ID

    def test_explicit_minutes(self, service, bookings, provider_caller):
        target = bookings.create(make_booking(at(9), 30))
        assert service.extend_booking(target.id, provider_caller, 15).booking.duration_minutes == 45

    def test_only_owning_provider(self, service, bookings, customer, admin):
        target = bookings.create(make_booking(at(9), 30))
        for caller in (customer, admin, Caller("USR-PROV-2", CallerRole.PROVIDER)):
            with pytest.raises(PermissionDeniedError):
                service.extend_booking(target.id, caller)

    def test_inactive_booking(self, service, bookings, provider_caller):
        target = bookings.create(make_booking(at(9), 30, status=BookingStatus.CANCELLED))
        with pytest.raises(PreconditionError):
            service.extend_booking(target.id, provider_caller)

    @pytest.mark.parametrize("minutes", [0, -30])
    def test_non_positive_minutes(self, service, bookings, provider_caller, minutes):
        target = bookings.create(make_booking(at(9), 30))
        with pytest.raises(ValidationError):
            service.extend_booking(target.id, provider_caller, minutes)

    def test_overflow_rejected_without_writes(self, service, bookings, provider_caller):
        target = bookings.create(make_booking(at(9), 30, booking_id="BK-T"))
        bookings.create(make_booking(at(11, 15), 30, booking_id="BK-LAST"))
        with pytest.raises(ConflictError) as exc_info:
            service.extend_booking(target.id, provider_caller)
        assert exc_info.value.details["closingTime"] == "12:00"
        assert bookings.get("BK-T").duration_minutes == 30
        assert bookings.get("BK-LAST").scheduled_at == at(11, 15)

    def test_missing_booking(self, service, provider_caller):
        with pytest.raises(NotFoundError):
            service.extend_booking("BK-NOPE", provider_caller)


class TestStatusChanges:
    def test_provider_confirms(self, service, bookings, provider_caller):
        booking = bookings.create(make_booking(at(9), 30, status=BookingStatus.PENDING))
        updated = service.update_status(booking.id, provider_caller, "confirmed", "paid")
        assert updated.status == BookingStatus.CONFIRMED
        assert updated.payment_status == PaymentStatus.PAID

    def test_provider_cannot_complete_here(self, service, bookings, provider_caller):
        booking = bookings.create(make_booking(at(9), 30))
        with pytest.raises(PermissionDeniedError):
            service.update_status(booking.id, provider_caller, BookingStatus.COMPLETED)

    def test_admin_can_complete(self, service, bookings, admin):
        booking = bookings.create(make_booking(at(9), 30))
        assert service.update_status(booking.id, admin, BookingStatus.COMPLETED).status == BookingStatus.COMPLETED

    def test_customer_cannot_update_status(self, service, bookings, customer):
        booking = bookings.create(make_booking(at(9), 30))
        with pytest.raises(PermissionDeniedError):
            service.update_status(booking.id, customer, BookingStatus.CANCELLED)

    def test_invalid_transition(self, service, bookings, provider_caller):
        booking = bookings.create(make_booking(at(9), 30, status=BookingStatus.CANCELLED))
        with pytest.raises(ValidationError):
            service.update_status(booking.id, provider_caller, BookingStatus.CONFIRMED)

    def test_unknown_status_value(self, service, bookings, provider_caller):
        booking = bookings.create(make_booking(at(9), 30))
        with pytest.raises(ValidationError):
            service.update_status(booking.id, provider_caller, "archived")

    def test_nothing_to_update(self, service, bookings, provider_caller):
        booking = bookings.create(make_booking(at(9), 30))
        with pytest.raises(ValidationError):
            service.update_status(booking.id, provider_caller)

    def test_reconfirm_blocked_when_slot_was_taken(self, service, bookings, provider_caller):
        bookings.create(make_booking(at(10), 30, booking_id="BK-A"))
        service.update_status("BK-A", provider_caller, BookingStatus.RESCHEDULED)
        taken = service.create_booking(OTHER_CUSTOMER_ID, booking_request(at(10)))
        with pytest.raises(ConflictError) as exc_info:
            service.update_status("BK-A", provider_caller, BookingStatus.CONFIRMED)
        assert exc_info.value.details["conflictingBookingId"] == taken.id
        assert bookings.get("BK-A").status == BookingStatus.RESCHEDULED
        assert [b.id for b in bookings.list_active(PROVIDER_ID)] == [taken.id]

    def test_reconfirm_blocked_by_buffer(self, service, bookings, provider_caller):
        bookings.create(make_booking(at(10), 30, booking_id="BK-A", status=BookingStatus.RESCHEDULED))
        bookings.create(make_booking(at(10, 40), 30, booking_id="BK-B"))
        with pytest.raises(ConflictError):
            service.update_status("BK-A", provider_caller, BookingStatus.CONFIRMED)

    def test_reconfirm_when_slot_still_free(self, service, bookings, provider_caller):
        bookings.create(make_booking(at(10), 30, booking_id="BK-A", status=BookingStatus.RESCHEDULED))
        bookings.create(make_booking(at(10, 45), 30, booking_id="BK-B"))
        assert service.update_status("BK-A", provider_caller, "confirmed").status == BookingStatus.CONFIRMED

    def test_active_to_active_skips_conflict_check(self, service, bookings, provider_caller):
        # pending -> confirmed keeps the slot it already holds.
        bookings.create(make_booking(at(10), 30, booking_id="BK-A", status=BookingStatus.PENDING))
        bookings.create(make_booking(at(10), 30, booking_id="BK-B"))
        assert service.update_status("BK-A", provider_caller, "confirmed").status == BookingStatus.CONFIRMED


class TestCancelBooking:
    def test_owner_cancels_and_frees_slot(self, service, bookings, customer):
        booking = bookings.create(make_booking(at(10), 60))
        assert service.cancel_booking(booking.id, customer).status == BookingStatus.CANCELLED
        slots = service.get_available_slots(PROVIDER_ID, MONDAY, SERVICE_ID)
        assert "10:00" in [s.start_time for s in slots]

    def test_provider_cannot_cancel(self, service, bookings, provider_caller):
        booking = bookings.create(make_booking(at(10), 60))
        with pytest.raises(PermissionDeniedError):
            service.cancel_booking(booking.id, provider_caller)

    @pytest.mark.parametrize("status", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_terminal_booking(self, service, bookings, admin, status):
        booking = bookings.create(make_booking(at(10), 60, status=status))
        with pytest.raises(ValidationError, match=status.value):
            service.cancel_booking(booking.id, admin)


class TestCompleteBooking:
    def test_paid_booking_completes(self, service, bookings, customer):
        booking = bookings.create(make_booking(at(10), 60, payment_status=PaymentStatus.PAID))
        assert service.complete_booking(booking.id, customer).status == BookingStatus.COMPLETED

    def test_unpaid_booking_rejected(self, service, bookings, customer):
        booking = bookings.create(make_booking(at(10), 60))
        with pytest.raises(ValidationError) as exc_info:
            service.complete_booking(booking.id, customer)
        assert exc_info.value.field == "paymentStatus"

    def test_already_completed(self, service, bookings, customer):
        booking = bookings.create(make_booking(
            at(10), 60, status=BookingStatus.COMPLETED, payment_status=PaymentStatus.PAID,
        ))
        with pytest.raises(ValidationError, match="already"):
            service.complete_booking(booking.id, customer)

    def test_other_customer_rejected(self, service, bookings):
        booking = bookings.create(make_booking(at(10), 60, payment_status=PaymentStatus.PAID))
        with pytest.raises(PermissionDeniedError):
            service.complete_booking(booking.id, Caller(OTHER_CUSTOMER_ID))


class InterleavingBookingStore(BookingStore):
    """Runs ``on_lock`` once just after the provider lock is taken.

    Stands in for a competing request that committed while this one was
    waiting for the lock.
    """

    def __init__(self) -> None:
        super().__init__()
        self.on_lock: Optional[Callable[[], None]] = None

    @contextmanager
    def provider_lock(self, provider_id):
        with super().provider_lock(provider_id):
            if self.on_lock is not None:
                change, self.on_lock = self.on_lock, None
                change()
            yield


class TestDecisionsUseLockedState:
    @pytest.fixture
    def store(self):
        return InterleavingBookingStore()

    @pytest.fixture
    def locked_service(self, providers, catalog, store, customers):
        return BookingService(providers, catalog, store, customers, clock=lambda: FIXED_NOW)

    def test_confirm_after_concurrent_cancel(self, locked_service, store, provider_caller):
        store.create(make_booking(at(10), 30, booking_id="BK-A", status=BookingStatus.PENDING))
        store.on_lock = lambda: store.update("BK-A", status=BookingStatus.CANCELLED)
        with pytest.raises(ValidationError):
            locked_service.update_status("BK-A", provider_caller, BookingStatus.CONFIRMED)
        assert store.get("BK-A").status == BookingStatus.CANCELLED

    def test_cancel_after_concurrent_completion(self, locked_service, store, customer):
        store.create(make_booking(at(10), 30, booking_id="BK-A", payment_status=PaymentStatus.PAID))
        store.on_lock = lambda: store.update("BK-A", status=BookingStatus.COMPLETED)
        with pytest.raises(ValidationError, match="already completed"):
            locked_service.cancel_booking("BK-A", customer)
        assert store.get("BK-A").status == BookingStatus.COMPLETED

    def test_complete_after_concurrent_cancel(self, locked_service, store, customer):
        store.create(make_booking(at(10), 30, booking_id="BK-A", payment_status=PaymentStatus.PAID))
        store.on_lock = lambda: store.update("BK-A", status=BookingStatus.CANCELLED)
        with pytest.raises(ValidationError):
            locked_service.complete_booking("BK-A", customer)
        assert store.get("BK-A").status == BookingStatus.CANCELLED

    def test_reconfirm_sees_booking_created_while_waiting(self, locked_service, store, provider_caller):
        store.create(make_booking(at(10), 30, booking_id="BK-A", status=BookingStatus.RESCHEDULED))
        store.on_lock = lambda: store.create(make_booking(at(10), 30, booking_id="BK-B", user_id=OTHER_CUSTOMER_ID))
        with pytest.raises(ConflictError):
            locked_service.update_status("BK-A", provider_caller, BookingStatus.CONFIRMED)
