"""
Notifier Tests — Event to Notification Mapping & Failure Handling

Tests verify:
- Fixed title/body text per event type
- Permission is requested once, lazily
- Permission denial and dispatch failures set a sticky error
- While the error is set further notifications are skipped
- clear_error() re-enables delivery
- Engine keeps working when every notification fails
"""

import pytest

from dispenser.engine import (
    EVENT_EMPTY,
    EVENT_LOW_WATER,
    EVENT_REFILLED,
    DispenserEngine,
    DispenserEvent,
    DispenserSettings,
    DispensingState,
    InlineDispatcher,
    ManualScheduler,
)
from dispenser.notifications import (
    LoggingNotificationBackend,
    Notifier,
    build_notification,
)


class FlakyBackend:
    """Backend whose permission and delivery outcomes are scripted."""

    def __init__(self, granted: bool = True, fail_sends: bool = False):
        self.granted = granted
        self.fail_sends = fail_sends
        self.permission_requests = 0
        self.sent = []

    def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    def send(self, title: str, body: str) -> None:
        if self.fail_sends:
            raise ConnectionError("push service unreachable")
        self.sent.append((title, body))


def low_water(threshold: int = 20) -> DispenserEvent:
    return DispenserEvent(type=EVENT_LOW_WATER, level=threshold, threshold=threshold)


class TestTemplates:
    """Test the fixed notification text."""

    def test_low_water_text(self):
        n = build_notification(low_water(25))

        assert n.title == "Low Water Level"
        assert n.body == "Water dispenser is below 25%! Please refill soon."

    def test_empty_text(self):
        n = build_notification(DispenserEvent(type=EVENT_EMPTY, level=0))

        assert n.title == "Water Dispenser Empty"
        assert n.body == "The water level is at 0%. Please refill immediately to continue usage."

    def test_refilled_text(self):
        n = build_notification(DispenserEvent(type=EVENT_REFILLED, level=100))

        assert n.title == "Water Refilled"
        assert n.body == "The water dispenser has been refilled to 100%."

    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError):
            build_notification(DispenserEvent(type="overflow", level=100))


class TestDelivery:
    """Test the happy path."""

    def test_delivers_through_backend(self):
        backend = FlakyBackend()
        notifier = Notifier(backend)

        assert notifier.handle_event(low_water()) is True
        assert backend.sent == [("Low Water Level", "Water dispenser is below 20%! Please refill soon.")]
        assert notifier.sent[0].event_type == EVENT_LOW_WATER

    def test_permission_requested_once(self):
        backend = FlakyBackend()
        notifier = Notifier(backend)

        notifier.handle_event(low_water())
        notifier.handle_event(DispenserEvent(type=EVENT_REFILLED, level=100))

        assert backend.permission_requests == 1
        assert len(backend.sent) == 2

    def test_disabled_notifier_skips(self):
        backend = FlakyBackend()
        notifier = Notifier(backend, enabled=False)

        assert notifier.handle_event(low_water()) is False
        assert backend.permission_requests == 0

    def test_logging_backend_keeps_outbox(self):
        backend = LoggingNotificationBackend()
        notifier = Notifier(backend)

        notifier.handle_event(DispenserEvent(type=EVENT_EMPTY, level=0))

        assert backend.outbox[0][0] == "Water Dispenser Empty"

    def test_sent_history_is_bounded(self):
        backend = FlakyBackend()
        notifier = Notifier(backend)

        for _ in range(Notifier.SENT_HISTORY_LIMIT + 5):
            notifier.handle_event(DispenserEvent(type=EVENT_REFILLED, level=100))

        assert len(backend.sent) == Notifier.SENT_HISTORY_LIMIT + 5
        assert len(notifier.sent) == Notifier.SENT_HISTORY_LIMIT


class TestStickyErrors:
    """Test failure recording and suppression."""

    def test_permission_denied_sets_error(self):
        backend = FlakyBackend(granted=False)
        notifier = Notifier(backend)

        assert notifier.handle_event(low_water()) is False
        assert "permission" in notifier.last_error.lower()

    def test_error_suppresses_further_attempts(self):
        backend = FlakyBackend(granted=False)
        notifier = Notifier(backend)
        notifier.handle_event(low_water())

        backend.granted = True
        notifier.handle_event(DispenserEvent(type=EVENT_EMPTY, level=0))

        assert backend.permission_requests == 1
        assert backend.sent == []

    def test_dispatch_failure_sets_error(self):
        backend = FlakyBackend(fail_sends=True)
        notifier = Notifier(backend)

        assert notifier.handle_event(low_water()) is False
        assert "unreachable" in notifier.last_error

        backend.fail_sends = False
        assert notifier.handle_event(low_water()) is False
        assert backend.sent == []

    def test_clear_error_reenables(self):
        backend = FlakyBackend(granted=False)
        notifier = Notifier(backend)
        notifier.handle_event(low_water())

        backend.granted = True
        notifier.clear_error()

        assert notifier.last_error is None
        assert notifier.handle_event(low_water()) is True
        assert backend.permission_requests == 2

    def test_permission_request_exception_is_denial(self):
        class ExplodingBackend(FlakyBackend):
            def request_permission(self) -> bool:
                raise OSError("no notification service")

        notifier = Notifier(ExplodingBackend())

        assert notifier.handle_event(low_water()) is False
        assert "no notification service" in notifier.last_error


class TestEngineIntegration:
    """Engine and notifier wired together."""

    def test_engine_unaffected_by_failing_notifications(self):
        scheduler = ManualScheduler()
        engine = DispenserEngine(
            settings=DispenserSettings(dispensing_speed=1),
            scheduler=scheduler,
            level=3,
            dispatcher=InlineDispatcher(),
        )
        notifier = Notifier(FlakyBackend(fail_sends=True))
        engine.subscribe(notifier.handle_event)

        engine.start()
        scheduler.advance(3)
        engine.refill()

        assert engine.level == 100
        assert engine.dispensing_state == DispensingState.IDLE
        assert [item.amount for item in engine.history] == [30, 0]
        assert notifier.last_error is not None

    def test_full_cycle_notifications(self):
        scheduler = ManualScheduler()
        engine = DispenserEngine(
            settings=DispenserSettings(dispensing_speed=1, low_water_threshold=2),
            scheduler=scheduler,
            level=3,
            dispatcher=InlineDispatcher(),
        )
        backend = FlakyBackend()
        engine.subscribe(Notifier(backend).handle_event)

        engine.start()
        scheduler.advance(3)
        engine.refill()

        assert [title for title, _ in backend.sent] == [
            "Low Water Level",
            "Water Dispenser Empty",
            "Water Refilled",
        ]
        assert backend.sent[0][1] == "Water dispenser is below 2%! Please refill soon."
