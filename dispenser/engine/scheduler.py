"""
Schedulers — Repeating Timer Abstraction

The engine never touches timers directly. It asks a scheduler for a
repeating callback and gets back a handle it can cancel:

    handle = scheduler.schedule_repeating(100, engine_tick)
    scheduler.cancel(handle)

Two implementations:
- ThreadingScheduler: one daemon thread per handle, waits on an Event
  between ticks so cancellation takes effect immediately.
- ManualScheduler: virtual clock advanced explicitly. Deterministic, used
  for simulations and tests.
"""

import itertools
import logging
import threading
from typing import Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


class TimerHandle:
    """Opaque cancellation handle returned by a scheduler."""
    __slots__ = ("handle_id", "interval_ms", "callback", "cancelled")

    def __init__(self, handle_id: int, interval_ms: int, callback: TickCallback):
        self.handle_id = handle_id
        self.interval_ms = interval_ms
        self.callback = callback
        self.cancelled = False

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"TimerHandle(id={self.handle_id}, interval_ms={self.interval_ms}, {state})"


class Scheduler(Protocol):
    def schedule_repeating(self, interval_ms: int, callback: TickCallback) -> TimerHandle:
        ...

    def cancel(self, handle: TimerHandle) -> None:
        ...


def _check_interval(interval_ms: int) -> None:
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be > 0, got {interval_ms}")


# ============================================================================
# Thread-backed scheduler (live use)
# ============================================================================

class ThreadingScheduler:
    """
    Fires each handle's callback on its own daemon thread.

    Callbacks run off the caller's thread, so whatever they touch must be
    guarded by the owner (the engine holds a lock).
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._stops: Dict[int, threading.Event] = {}
        self._lock = threading.Lock()

    def schedule_repeating(self, interval_ms: int, callback: TickCallback) -> TimerHandle:
        _check_interval(interval_ms)
        handle = TimerHandle(next(self._ids), interval_ms, callback)
        stop_event = threading.Event()
        with self._lock:
            self._stops[handle.handle_id] = stop_event

        thread = threading.Thread(
            target=self._run,
            args=(handle, stop_event),
            name=f"dispenser-timer-{handle.handle_id}",
            daemon=True,
        )
        thread.start()
        logger.debug(f"[Scheduler] Started {handle!r}")
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        # Never joins: the callback itself may be the one cancelling.
        handle.cancelled = True
        with self._lock:
            stop_event = self._stops.pop(handle.handle_id, None)
        if stop_event is not None:
            stop_event.set()
            logger.debug(f"[Scheduler] Cancelled {handle!r}")

    def cancel_all(self) -> None:
        with self._lock:
            stops = list(self._stops.values())
            self._stops.clear()
        for stop_event in stops:
            stop_event.set()

    def _run(self, handle: TimerHandle, stop_event: threading.Event) -> None:
        interval_s = handle.interval_ms / 1000.0
        while not stop_event.wait(timeout=interval_s):
            try:
                handle.callback()
            except Exception as e:
                logger.error(f"[Scheduler] Tick callback failed for {handle!r}: {e}")
        logger.debug(f"[Scheduler] Timer loop ended for {handle!r}")


# ============================================================================
# Manual scheduler (deterministic)
# ============================================================================

class ManualScheduler:
    """
    Virtual-clock scheduler. Nothing fires until advance() is called.

    Usage:
        scheduler = ManualScheduler()
        engine = DispenserEngine(scheduler=scheduler, dispatcher=InlineDispatcher())
        engine.start()
        scheduler.advance(300)   # three ticks at the default 100 ms speed
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._now_ms: int = 0
        self._due: Dict[int, int] = {}
        self._handles: Dict[int, TimerHandle] = {}

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def active_count(self) -> int:
        return len(self._handles)

    def schedule_repeating(self, interval_ms: int, callback: TickCallback) -> TimerHandle:
        _check_interval(interval_ms)
        handle = TimerHandle(next(self._ids), interval_ms, callback)
        self._handles[handle.handle_id] = handle
        self._due[handle.handle_id] = self._now_ms + interval_ms
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancelled = True
        self._handles.pop(handle.handle_id, None)
        self._due.pop(handle.handle_id, None)

    def advance(self, ms: int) -> int:
        """
        Move the virtual clock forward by `ms`, firing every tick that falls
        due on the way, in time order.

        Returns:
            Number of callbacks fired.
        """
        if ms < 0:
            raise ValueError(f"ms must be >= 0, got {ms}")
        target = self._now_ms + ms
        fired = 0
        while True:
            handle_id = self._next_due(target)
            if handle_id is None:
                break
            handle = self._handles[handle_id]
            self._now_ms = self._due[handle_id]
            self._due[handle_id] = self._now_ms + handle.interval_ms
            handle.callback()
            fired += 1
        self._now_ms = target
        return fired

    def _next_due(self, target: int) -> Optional[int]:
        candidates = [(due, hid) for hid, due in self._due.items() if due <= target]
        if not candidates:
            return None
        return min(candidates)[1]
