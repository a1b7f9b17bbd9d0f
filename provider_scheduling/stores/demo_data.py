"""
Demo data for the console walkthrough and ``SEED_DEMO_DATA=true`` servers.

Two providers are seeded, one per stored availability shape: a current
``{bufferTimeMinutes, days}`` document and a legacy numeric-day list.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from provider_scheduling.schemas.booking_schema import Booking, BookingStatus, PaymentStatus
from provider_scheduling.schemas.customer_schema import CustomerRecord
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.stores.catalog import ServiceCatalog, ServiceRecord
from provider_scheduling.stores.customers import CustomerStore
from provider_scheduling.stores.providers import ProviderRecord, ProviderStore
from provider_scheduling.utils import at_utc, utc_now

logger = logging.getLogger(__name__)

DEMO_PROVIDERS = [
    ProviderRecord(
        id="PRV-1001",
        user_id="USR-P-1001",
        business_name="Harbor Home Repairs",
        availability={
            "bufferTimeMinutes": 15,
            "days": [
                {"dayOfWeek": day, "isAvailable": True,
                 "windows": [{"start": "09:00", "end": "12:00"}, {"start": "13:00", "end": "17:00"}]}
                for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
            ] + [{"dayOfWeek": "Saturday", "isAvailable": False, "windows": []}],
        },
    ),
    ProviderRecord(
        id="PRV-1002",
        user_id="USR-P-1002",
        business_name="Northside Cleaning Co.",
        # Legacy profile: bare list, numeric days, from/to keys.
        availability=[
            {"dayOfWeek": 1, "slots": [{"from": "08:00", "to": "14:00"}]},
            {"dayOfWeek": 3, "slots": [{"from": "08:00", "to": "14:00"}]},
            {"dayOfWeek": 6, "slots": [{"from": "10:00", "to": "13:00"}]},
        ],
    ),
]

DEMO_SERVICES = [
    ServiceRecord(id="SRV-2001", provider_id="PRV-1001", name="Leak repair",
                  duration_minutes=60, hourly_rate=90.0),
    ServiceRecord(id="SRV-2002", provider_id="PRV-1001", name="Fixture installation",
                  duration_minutes=30, hourly_rate=75.0),
    ServiceRecord(id="SRV-2003", provider_id="PRV-1002", name="Deep clean",
                  duration_minutes=120, hourly_rate=45.0),
    ServiceRecord(id="SRV-2004", provider_id="PRV-1002", name="Window cleaning",
                  duration_minutes=45, hourly_rate=40.0, is_active=False),
]

DEMO_CUSTOMERS = [
    CustomerRecord(id="USR-C-3001", name="Maria Lopez", email="maria.lopez@example.com", phone="+15551230001"),
    CustomerRecord(id="USR-C-3002", name="Daniel Okafor", email="d.okafor@example.com", phone="+15551230002"),
    CustomerRecord(id="USR-C-3003", name="Aiko Tanaka", email="aiko.t@example.com"),
]

# (customer, service, start, duration, status) on the seeded Monday.
DEMO_DAY_BOOKINGS = [
    ("USR-C-3001", "SRV-2001", time(9, 0), 60, BookingStatus.CONFIRMED),
    ("USR-C-3002", "SRV-2002", time(10, 30), 30, BookingStatus.CONFIRMED),
    ("USR-C-3003", "SRV-2001", time(14, 0), 60, BookingStatus.PENDING),
]


def next_monday(after: Optional[datetime] = None) -> date:
    """The first Monday strictly after ``after`` (UTC)."""
    today = (after or utc_now()).date()
    return today + timedelta(days=7 - today.weekday())


def seed_demo_data(
    providers: ProviderStore,
    catalog: ServiceCatalog,
    customers: CustomerStore,
    bookings: Optional[BookingStore] = None,
    booking_day: Optional[date] = None,
) -> None:
    """Load demo providers, services and customers; optionally a booked Monday."""
    for provider in DEMO_PROVIDERS:
        providers.add(provider)
    for service in DEMO_SERVICES:
        catalog.add(service)
    for customer in DEMO_CUSTOMERS:
        customers.add(customer)

    if bookings is None:
        return
    day = booking_day or next_monday()
    for user_id, service_id, start, duration, status in DEMO_DAY_BOOKINGS:
        service = catalog.get(service_id)
        bookings.create(Booking(
            id=bookings.new_id(),
            provider_id=service.provider_id,
            service_id=service_id,
            user_id=user_id,
            scheduled_at=at_utc(day, start),
            duration_minutes=duration,
            status=status,
            payment_status=PaymentStatus.PAID if status == BookingStatus.CONFIRMED else PaymentStatus.UNPAID,
            total_price=service.price_for(duration),
        ))
    logger.info(
        "Demo data seeded: %d providers, %d services, %d customers, bookings on %s",
        len(DEMO_PROVIDERS), len(DEMO_SERVICES), len(DEMO_CUSTOMERS), day.isoformat(),
    )
