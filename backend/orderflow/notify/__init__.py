"""Real-time notification of order lifecycle events."""

from orderflow.notify.bus import (
    EVENT_AUDIENCES,
    EventName,
    NotificationBus,
    NullNotificationBus,
    role_channel,
)

__all__ = [
    "EVENT_AUDIENCES",
    "EventName",
    "NotificationBus",
    "NullNotificationBus",
    "role_channel",
]
