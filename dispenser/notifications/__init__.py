"""
Notifications Module — User-Facing Alerts

Public API:
- Notifier: engine event subscriber with sticky error state
- NotificationBackend / LoggingNotificationBackend: delivery channel
- build_notification, NOTIFICATION_TEMPLATES: fixed title/body text
"""

from .notifier import (
    NOTIFICATION_TEMPLATES,
    LoggingNotificationBackend,
    Notification,
    NotificationBackend,
    NotificationDispatchError,
    NotificationPermissionDenied,
    Notifier,
    build_notification,
)

__all__ = [
    "Notifier",
    "Notification",
    "NotificationBackend",
    "LoggingNotificationBackend",
    "NotificationDispatchError",
    "NotificationPermissionDenied",
    "NOTIFICATION_TEMPLATES",
    "build_notification",
]
