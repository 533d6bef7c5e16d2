"""
Event Dispatch — Ordered Delivery to Subscribers

The engine submits events while holding its lock, so submission order is
the order in which the level changed. A dispatcher must deliver them in
that same order.

- QueueDispatcher: one worker thread drains a FIFO queue. Submitting never
  blocks on a subscriber (fire-and-forget).
- InlineDispatcher: delivers on the submitting thread. Used with the manual
  clock, where tests want events visible as soon as advance() returns.
"""

import logging
import queue
import threading
from typing import Callable, Optional, Protocol

from .schemas import DispenserEvent

logger = logging.getLogger(__name__)

Delivery = Callable[[DispenserEvent], None]

_STOP = object()


class EventDispatcher(Protocol):
    def submit(self, event: DispenserEvent, deliver: Delivery) -> None:
        ...

    def flush(self, timeout: Optional[float] = None) -> bool:
        ...

    def close(self) -> None:
        ...


class InlineDispatcher:
    """Deliver immediately on the caller's thread."""

    def submit(self, event: DispenserEvent, deliver: Delivery) -> None:
        deliver(event)

    def flush(self, timeout: Optional[float] = None) -> bool:
        return True

    def close(self) -> None:
        pass


class QueueDispatcher:
    """
    Single worker thread draining a FIFO of (event, deliver) pairs.

    The worker starts on the first submit. close() lets already queued
    events drain, then stops the worker; later submits are dropped.
    """

    def __init__(self, name: str = "dispenser-events"):
        self.name = name
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        """Events submitted but not yet delivered."""
        return self._queue.unfinished_tasks

    def submit(self, event: DispenserEvent, deliver: Delivery) -> None:
        with self._lock:
            if self._closed:
                logger.debug(f"[EventDispatcher] Dropped {event.type}: dispatcher closed")
                return
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name=self.name, daemon=True)
                self._worker.start()
            self._queue.put((event, deliver))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted event has been delivered.

        Returns:
            False if the timeout expired first.
        """
        with self._queue.all_tasks_done:
            return self._queue.all_tasks_done.wait_for(
                lambda: self._queue.unfinished_tasks == 0, timeout
            )

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._worker is not None:
                self._queue.put(_STOP)

    def _run(self) -> None:
        logger.debug(f"[EventDispatcher] Worker {self.name} started")
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    break
                event, deliver = item
                try:
                    deliver(event)
                except Exception as e:
                    logger.error(f"[EventDispatcher] Delivery of {event.type} failed: {e}")
            finally:
                self._queue.task_done()
        logger.debug(f"[EventDispatcher] Worker {self.name} stopped")
