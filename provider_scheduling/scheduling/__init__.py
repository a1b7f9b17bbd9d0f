from provider_scheduling.scheduling.time_window import (
    DayOfWeek,
    Interval,
    TimeRange,
    intervals_overlap,
    occupied_interval,
)
from provider_scheduling.scheduling.availability import (
    DaySchedule,
    WeeklyAvailability,
    closing_time,
    resolve_day,
)
from provider_scheduling.scheduling.conflicts import ConflictDetector, find_conflict
from provider_scheduling.scheduling.slots import SLOT_STEP_MINUTES, Slot, generate_slots
from provider_scheduling.scheduling.cascade import CascadeRescheduler, ExtensionResult, plan_extension
from provider_scheduling.scheduling.lifecycle import BookingLifecycle, InvalidTransitionError, StatusTrigger

__all__ = [
    "DayOfWeek",
    "Interval",
    "TimeRange",
    "intervals_overlap",
    "occupied_interval",
    "DaySchedule",
    "WeeklyAvailability",
    "resolve_day",
    "closing_time",
    "ConflictDetector",
    "find_conflict",
    "SLOT_STEP_MINUTES",
    "Slot",
    "generate_slots",
    "CascadeRescheduler",
    "ExtensionResult",
    "plan_extension",
    "BookingLifecycle",
    "InvalidTransitionError",
    "StatusTrigger",
]
