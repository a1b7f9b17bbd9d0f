"""Shared test fixtures and helpers."""

from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest

from provider_scheduling.booking_service import BookingService, Caller, CallerRole
from provider_scheduling.schemas.booking_schema import Booking, BookingStatus, PaymentStatus
from provider_scheduling.schemas.customer_schema import CustomerRecord
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.stores.catalog import ServiceCatalog, ServiceRecord
from provider_scheduling.stores.customers import CustomerStore
from provider_scheduling.stores.providers import ProviderRecord, ProviderStore

# Sunday noon; the next day is the booking day used throughout.
FIXED_NOW = datetime(2026, 1, 4, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 1, 5)

PROVIDER_ID = "PRV-1"
PROVIDER_USER = "USR-PROV-1"
CUSTOMER_ID = "USR-CUST-1"
OTHER_CUSTOMER_ID = "USR-CUST-2"
SERVICE_ID = "SRV-30"

# Monday 09:00-12:00, 15-minute buffer.
MONDAY_MORNING: dict[str, Any] = {
    "bufferTimeMinutes": 15,
    "days": [
        {"dayOfWeek": "Monday", "isAvailable": True, "windows": [{"start": "09:00", "end": "12:00"}]},
    ],
}


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    """UTC instant on the booking day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def make_booking(
    start: datetime,
    duration_minutes: int = 60,
    status: BookingStatus = BookingStatus.CONFIRMED,
    booking_id: Optional[str] = None,
    provider_id: str = PROVIDER_ID,
    user_id: str = CUSTOMER_ID,
    payment_status: PaymentStatus = PaymentStatus.UNPAID,
) -> Booking:
    """Helper to create a Booking with sensible defaults."""
    return Booking(
        id=booking_id or f"BK-{start:%H%M}",
        provider_id=provider_id,
        service_id=SERVICE_ID,
        user_id=user_id,
        scheduled_at=start,
        duration_minutes=duration_minutes,
        status=status,
        payment_status=payment_status,
    )


@pytest.fixture
def providers():
    store = ProviderStore()
    store.add(ProviderRecord(
        id=PROVIDER_ID, user_id=PROVIDER_USER, business_name="Test Plumbing", availability=MONDAY_MORNING,
    ))
    return store


@pytest.fixture
def catalog():
    store = ServiceCatalog()
    store.add(ServiceRecord(
        id=SERVICE_ID, provider_id=PROVIDER_ID, name="Tap repair", duration_minutes=30, hourly_rate=60.0,
    ))
    store.add(ServiceRecord(
        id="SRV-OFF", provider_id=PROVIDER_ID, name="Retired service", duration_minutes=30, is_active=False,
    ))
    return store


@pytest.fixture
def bookings():
    return BookingStore()


@pytest.fixture
def customers():
    store = CustomerStore()
    store.add(CustomerRecord(id=CUSTOMER_ID, name="Jane Doe", email="jane@example.com"))
    store.add(CustomerRecord(id=OTHER_CUSTOMER_ID, name="Sam Lee", email="sam@example.com"))
    return store


@pytest.fixture
def service(providers, catalog, bookings, customers):
    return BookingService(providers, catalog, bookings, customers, clock=lambda: FIXED_NOW)


@pytest.fixture
def customer():
    return Caller(user_id=CUSTOMER_ID, role=CallerRole.CUSTOMER)


@pytest.fixture
def provider_caller():
    return Caller(user_id=PROVIDER_USER, role=CallerRole.PROVIDER)


@pytest.fixture
def admin():
    return Caller(user_id="USR-ADMIN", role=CallerRole.ADMIN)
