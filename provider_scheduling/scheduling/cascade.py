"""
Cascade Rescheduler

Extends an overrunning booking by a fixed increment and pushes every later
active booking of the same provider-day back by the same amount.

Simulate-then-commit:
    1. new target end = start + duration + delta
    2. collect active bookings of the target's UTC day that start at or
       after the target (target excluded), ascending
    3. closing time = latest working-window end of that day; no schedule
       for a day holding a live booking is a precondition violation
    4. shift every collected booking by delta, unconditionally, and take
       the latest resulting end
    5. end past closing -> ConflictError, nothing written
    6. commit: target duration += delta, each collected start += delta
    7. emit one RescheduleNotice per shifted booking

Step 6 is several writes. If one fails, the writes already applied are
reverted; if reverting fails too the error is flagged ``inconsistent``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from provider_scheduling.errors import CollaboratorFailure, ConflictError, PreconditionError, ValidationError
from provider_scheduling.logging_context import get_request_logger
from provider_scheduling.notifications.events import RescheduleNotice
from provider_scheduling.scheduling.availability import AvailabilitySource, closing_time
from provider_scheduling.scheduling.time_window import format_hhmm
from provider_scheduling.schemas.booking_schema import Booking
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.utils import utc_day_bounds

logger = get_request_logger(__name__)


@dataclass(frozen=True)
class BookingShift:
    """A downstream booking moved later by the cascade."""

    booking_id: str
    user_id: str
    original_start: datetime
    new_start: datetime
    duration_minutes: int

    @property
    def new_end(self) -> datetime:
        return self.new_start + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class ExtensionPlan:
    """Fully computed outcome of an extension, validated before any write."""

    target_id: str
    delta_minutes: int
    new_duration_minutes: int
    new_end: datetime
    closing_time: datetime
    shifts: tuple[BookingShift, ...] = ()

    @property
    def final_end(self) -> datetime:
        return max([self.new_end, *(shift.new_end for shift in self.shifts)])


@dataclass
class ExtensionResult:
    booking: Booking
    rescheduled: list[Booking] = field(default_factory=list)
    notices: list[RescheduleNotice] = field(default_factory=list)

    @property
    def rescheduled_count(self) -> int:
        return len(self.rescheduled)


def plan_extension(
    target: Booking,
    same_day_bookings: Iterable[Booking],
    weekly: AvailabilitySource,
    delta_minutes: int,
) -> ExtensionPlan:
    """Simulate extending ``target``; raise instead of returning an unfit plan.

    Raises:
        ValidationError: If ``delta_minutes`` is not positive.
        PreconditionError: If the target's day has no working schedule.
        ConflictError: If the rippled schedule would end after closing time.
    """
    if delta_minutes <= 0:
        raise ValidationError("Extension must be a positive number of minutes.", field="minutes")

    delta = timedelta(minutes=delta_minutes)
    closing = closing_time(weekly, target.scheduled_at)
    if closing is None:
        raise PreconditionError(
            f"Provider {target.provider_id} has no working schedule on "
            f"{target.scheduled_at.date().isoformat()} although booking {target.id} is live."
        )

    downstream = sorted(
        (
            b for b in same_day_bookings
            if b.is_active and b.id != target.id and b.scheduled_at >= target.scheduled_at
        ),
        key=lambda b: b.scheduled_at,
    )
    shifts = tuple(
        BookingShift(
            booking_id=b.id,
            user_id=b.user_id,
            original_start=b.scheduled_at,
            new_start=b.scheduled_at + delta,
            duration_minutes=b.duration_minutes,
        )
        for b in downstream
    )
    plan = ExtensionPlan(
        target_id=target.id,
        delta_minutes=delta_minutes,
        new_duration_minutes=target.duration_minutes + delta_minutes,
        new_end=target.ends_at + delta,
        closing_time=closing,
        shifts=shifts,
    )

    if plan.final_end > closing:
        raise ConflictError(
            f"Extending by {delta_minutes} minutes would run the day's schedule to "
            f"{format_hhmm(plan.final_end)}, past closing time {format_hhmm(closing)}. "
            "Resolve the remaining bookings manually.",
            details={
                "closingTime": format_hhmm(closing),
                "projectedEnd": format_hhmm(plan.final_end),
                "affectedBookings": len(shifts),
            },
        )
    return plan


class CascadeRescheduler:
    """Applies extension plans to the booking store."""

    def __init__(self, bookings: BookingStore) -> None:
        self._bookings = bookings

    def same_day_bookings(self, target: Booking) -> list[Booking]:
        """Active bookings sharing the target's UTC day."""
        day_start, day_end = utc_day_bounds(target.scheduled_at)
        return self._bookings.list_active(target.provider_id, day_start, day_end)

    def extend(self, target: Booking, weekly: AvailabilitySource, delta_minutes: int) -> ExtensionResult:
        """Extend ``target`` and ripple the day; all-or-nothing on rejection."""
        plan = plan_extension(target, self.same_day_bookings(target), weekly, delta_minutes)
        booking, rescheduled = self._commit(target, plan)

        notices = [
            RescheduleNotice(
                booking_id=shift.booking_id,
                user_id=shift.user_id,
                provider_id=target.provider_id,
                new_scheduled_at=shift.new_start,
                delay_minutes=plan.delta_minutes,
            )
            for shift in plan.shifts
        ]
        logger.info(
            "Booking %s extended by %d min; %d downstream booking(s) shifted (day closes %s)",
            target.id, plan.delta_minutes, len(rescheduled), format_hhmm(plan.closing_time),
        )
        return ExtensionResult(booking=booking, rescheduled=rescheduled, notices=notices)

    def _commit(self, target: Booking, plan: ExtensionPlan) -> tuple[Booking, list[Booking]]:
        undo: list[tuple[str, dict]] = []
        try:
            booking = self._bookings.update(target.id, duration_minutes=plan.new_duration_minutes)
            undo.append((target.id, {"duration_minutes": target.duration_minutes}))
            rescheduled = []
            for shift in plan.shifts:
                rescheduled.append(self._bookings.update(shift.booking_id, scheduled_at=shift.new_start))
                undo.append((shift.booking_id, {"scheduled_at": shift.original_start}))
        except Exception as exc:
            reverted = self._compensate(undo)
            logger.error(
                "Cascade commit for booking %s failed after %d write(s); reverted=%s",
                target.id, len(undo), reverted,
            )
            raise CollaboratorFailure(
                f"Could not persist the extension of booking {target.id}.",
                inconsistent=not reverted,
            ) from exc
        return booking, rescheduled

    def _compensate(self, undo: list[tuple[str, dict]]) -> bool:
        """Revert applied writes, newest first. True when every revert succeeded."""
        ok = True
        for booking_id, previous in reversed(undo):
            try:
                self._bookings.update(booking_id, **previous)
            except Exception:
                logger.exception("Failed to revert booking %s", booking_id)
                ok = False
        return ok
