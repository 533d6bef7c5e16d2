"""
Dispatcher Tests — Ordered Event Delivery

Tests verify:
- Inline delivery happens before submit() returns
- The queue worker delivers in submission order, off the caller's thread
- A failing delivery does not stop later ones
- close() drains queued events and drops later submissions
"""

import threading

from dispenser.engine import (
    EVENT_EMPTY,
    EVENT_LOW_WATER,
    EVENT_REFILLED,
    DispenserEvent,
    InlineDispatcher,
    QueueDispatcher,
)


def make_event(event_type: str, level: int = 0) -> DispenserEvent:
    return DispenserEvent(type=event_type, level=level)


class TestInlineDispatcher:
    """Test synchronous delivery."""

    def test_delivers_immediately(self):
        dispatcher = InlineDispatcher()
        received = []

        dispatcher.submit(make_event(EVENT_EMPTY), received.append)

        assert [e.type for e in received] == [EVENT_EMPTY]
        assert dispatcher.flush() is True


class TestQueueDispatcher:
    """Test the single worker queue."""

    def test_delivers_in_submission_order(self):
        dispatcher = QueueDispatcher()
        received = []

        for event_type in (EVENT_LOW_WATER, EVENT_EMPTY, EVENT_REFILLED):
            dispatcher.submit(make_event(event_type), lambda e: received.append(e.type))

        assert dispatcher.flush(timeout=2.0)
        assert received == [EVENT_LOW_WATER, EVENT_EMPTY, EVENT_REFILLED]
        dispatcher.close()

    def test_delivers_off_the_caller_thread(self):
        dispatcher = QueueDispatcher()
        threads = []

        dispatcher.submit(make_event(EVENT_EMPTY), lambda e: threads.append(threading.current_thread()))

        assert dispatcher.flush(timeout=2.0)
        assert threads[0] is not threading.current_thread()
        assert threads[0].name == "dispenser-events"
        dispatcher.close()

    def test_submit_does_not_wait_for_delivery(self):
        dispatcher = QueueDispatcher()
        release = threading.Event()

        dispatcher.submit(make_event(EVENT_LOW_WATER), lambda e: release.wait(timeout=2.0))
        dispatcher.submit(make_event(EVENT_EMPTY), lambda e: None)

        assert dispatcher.pending == 2
        assert dispatcher.flush(timeout=0.01) is False
        release.set()
        assert dispatcher.flush(timeout=2.0)
        assert dispatcher.pending == 0
        dispatcher.close()

    def test_failing_delivery_does_not_stop_worker(self):
        dispatcher = QueueDispatcher()
        received = []

        def broken(_event):
            raise RuntimeError("boom")

        dispatcher.submit(make_event(EVENT_LOW_WATER), broken)
        dispatcher.submit(make_event(EVENT_EMPTY), lambda e: received.append(e.type))

        assert dispatcher.flush(timeout=2.0)
        assert received == [EVENT_EMPTY]
        dispatcher.close()

    def test_close_drains_then_drops(self):
        dispatcher = QueueDispatcher()
        release = threading.Event()
        received = []

        def slow(event):
            release.wait(timeout=2.0)
            received.append(event.type)

        dispatcher.submit(make_event(EVENT_LOW_WATER), slow)
        dispatcher.submit(make_event(EVENT_EMPTY), lambda e: received.append(e.type))
        dispatcher.close()
        dispatcher.submit(make_event(EVENT_REFILLED), lambda e: received.append(e.type))
        release.set()

        assert dispatcher.flush(timeout=2.0)
        assert received == [EVENT_LOW_WATER, EVENT_EMPTY]

    def test_close_without_submissions(self):
        dispatcher = QueueDispatcher()

        dispatcher.close()

        assert dispatcher.flush(timeout=0.1)
