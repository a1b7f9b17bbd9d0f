"""Outbound scheduling events consumed outside the request."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RescheduleNotice:
    """A booking was pushed back by ``delay_minutes``; its customer should hear about it."""

    booking_id: str
    user_id: str
    provider_id: str
    new_scheduled_at: datetime
    delay_minutes: int
