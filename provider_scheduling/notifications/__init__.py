from provider_scheduling.notifications.events import RescheduleNotice
from provider_scheduling.notifications.reschedule import (
    LoggingNotifier,
    NotificationDispatcher,
    Notifier,
    render_reschedule_message,
)

__all__ = [
    "RescheduleNotice",
    "Notifier",
    "LoggingNotifier",
    "NotificationDispatcher",
    "render_reschedule_message",
]
