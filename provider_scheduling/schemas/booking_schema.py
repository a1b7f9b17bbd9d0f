"""Booking data models and request payloads."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from provider_scheduling.utils import ensure_utc, utc_now


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    ON_SERVICE = "on-service"


ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED}
)


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Booking(CamelModel):
    """A customer's reservation of a provider's time."""

    id: str
    provider_id: str
    service_id: str
    user_id: str
    scheduled_at: datetime
    duration_minutes: int = Field(..., ge=10)
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    total_price: float = Field(0.0, ge=0)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("scheduled_at", "created_at", "updated_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        """Pending and confirmed bookings occupy provider time."""
        return self.status in ACTIVE_STATUSES


class BookingCreateRequest(CamelModel):
    """Validated booking request from a customer."""

    service_id: str = Field(..., min_length=1)
    scheduled_at: datetime
    duration_minutes: Optional[int] = Field(None, ge=10)
    notes: Optional[str] = None

    @field_validator("scheduled_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class BookingStatusUpdate(CamelModel):
    """Provider/admin status change."""

    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None


class ExtendBookingRequest(CamelModel):
    """Overrun extension; ``minutes`` defaults to the configured increment."""

    minutes: Optional[int] = Field(None, gt=0)
