"""
Notifier — Event to Notification Mapping

Each engine event maps 1:1 onto a user-facing notification with fixed
title/body text. Delivery is delegated to a NotificationBackend.

Failure model (no retries):
- Permission denied -> NotificationPermissionDenied recorded as last_error
- Backend send raises -> NotificationDispatchError recorded as last_error
- While last_error is set every further notification is skipped
- clear_error() re-enables delivery (and re-asks for permission)

The notifier never raises into the engine.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from dispenser.engine.schemas import (
    EVENT_EMPTY,
    EVENT_LOW_WATER,
    EVENT_REFILLED,
    DispenserEvent,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class NotificationPermissionDenied(Exception):
    """The platform refused permission to show notifications."""
    pass


class NotificationDispatchError(Exception):
    """A notification could not be delivered."""
    pass


# ============================================================================
# Message Templates
# ============================================================================

NOTIFICATION_TEMPLATES: Dict[str, Tuple[str, str]] = {
    EVENT_LOW_WATER: (
        "Low Water Level",
        "Water dispenser is below {threshold}%! Please refill soon.",
    ),
    EVENT_EMPTY: (
        "Water Dispenser Empty",
        "The water level is at 0%. Please refill immediately to continue usage.",
    ),
    EVENT_REFILLED: (
        "Water Refilled",
        "The water dispenser has been refilled to 100%.",
    ),
}


class Notification(BaseModel):
    """A rendered notification."""
    title: str
    body: str
    event_type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def build_notification(event: DispenserEvent) -> Notification:
    """Render the fixed title/body for an event."""
    try:
        title, body = NOTIFICATION_TEMPLATES[event.type]
    except KeyError:
        raise ValueError(f"No notification template for event type '{event.type}'") from None
    return Notification(
        title=title,
        body=body.format(threshold=event.threshold),
        event_type=event.type,
        timestamp=event.timestamp,
    )


# ============================================================================
# Backends
# ============================================================================

class NotificationBackend(Protocol):
    def request_permission(self) -> bool:
        ...

    def send(self, title: str, body: str) -> None:
        ...


class LoggingNotificationBackend:
    """
    Default backend: logs each notification and keeps a bounded outbox.

    Used when no platform delivery channel is configured.
    """

    OUTBOX_LIMIT = 50

    def __init__(self, granted: bool = True):
        self.granted = granted
        self._outbox: Deque[Tuple[str, str]] = deque(maxlen=self.OUTBOX_LIMIT)

    @property
    def outbox(self) -> List[Tuple[str, str]]:
        return list(self._outbox)

    def request_permission(self) -> bool:
        return self.granted

    def send(self, title: str, body: str) -> None:
        self._outbox.append((title, body))
        logger.info(f"🔔 {title}: {body}")


# ============================================================================
# Notifier
# ============================================================================

class Notifier:
    """
    Engine event subscriber.

    Usage:
        notifier = Notifier(LoggingNotificationBackend())
        engine.subscribe(notifier.handle_event)
    """

    SENT_HISTORY_LIMIT = 50

    def __init__(self, backend: Optional[NotificationBackend] = None, enabled: bool = True):
        self.backend = backend or LoggingNotificationBackend()
        self.enabled = enabled
        self._permission_granted: Optional[bool] = None  # None = not asked yet
        self._last_error: Optional[str] = None
        self._sent: Deque[Notification] = deque(maxlen=self.SENT_HISTORY_LIMIT)

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def sent(self) -> List[Notification]:
        """Notifications delivered so far (bounded), oldest first."""
        return list(self._sent)

    def clear_error(self) -> None:
        if self._last_error:
            logger.info(f"[Notifier] Cleared error: {self._last_error}")
        self._last_error = None
        self._permission_granted = None

    def handle_event(self, event: DispenserEvent) -> bool:
        """
        Deliver the notification for an engine event.

        Returns:
            True if delivered; False if skipped or failed.
        """
        if not self.enabled:
            return False
        if self._last_error is not None:
            logger.debug(f"[Notifier] Skipping {event.type}: error flag set ({self._last_error})")
            return False

        try:
            self._ensure_permission()
            notification = build_notification(event)
            self._send(notification)
        except (NotificationPermissionDenied, NotificationDispatchError) as e:
            self._last_error = str(e)
            logger.warning(f"[Notifier] {type(e).__name__}: {e}")
            return False

        self._sent.append(notification)
        return True

    def _ensure_permission(self) -> None:
        if self._permission_granted is None:
            try:
                self._permission_granted = bool(self.backend.request_permission())
            except Exception as e:
                raise NotificationPermissionDenied(f"Permission request failed: {e}") from e
        if not self._permission_granted:
            raise NotificationPermissionDenied("Notification permission not granted")

    def _send(self, notification: Notification) -> None:
        try:
            self.backend.send(notification.title, notification.body)
        except Exception as e:
            raise NotificationDispatchError(
                f"Failed to deliver '{notification.title}': {e}"
            ) from e
