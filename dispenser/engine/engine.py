"""
Dispenser Engine — Timer-Driven Level State Machine

Owns the water level, the dispensing state and the usage ledger.

    Idle --start()[level>0]--> Dispensing
    Dispensing --tick reaches 0--> Idle   (emits `empty`)
    Dispensing --stop()--> Idle
    Idle --refill()--> Idle               (level reset to 100, emits `refilled`)

Core rules:
- Level never leaves [0, 100].
- At most one scheduler handle per engine. A redundant start() is ignored.
- stop() cancels the handle before returning; a tick that was already in
  flight sees a stale timer generation and does nothing.
- Events are ALERTS, NOT STATES: low-water fires once per descent below
  the threshold and re-arms only after the level climbs back above it.
- Events are submitted to the dispatcher under the engine lock, so they
  reach subscribers in the order the level changed. Delivery is
  fire-and-forget; subscriber failures are logged and recorded in
  notification_state.last_error and never reach the caller.
"""

import logging
import threading
from typing import Callable, List, Optional

from .dispatcher import EventDispatcher, QueueDispatcher
from .ledger import UsageLedger
from .scheduler import Scheduler, ThreadingScheduler, TimerHandle
from .schemas import (
    EVENT_EMPTY,
    EVENT_LOW_WATER,
    EVENT_REFILLED,
    MAX_LEVEL,
    MIN_LEVEL,
    REFILL_EVENT_TAG,
    SEVERITY_CRITICAL,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    DispenserEvent,
    DispenserSettings,
    DispenserSnapshot,
    DispensingState,
    NotificationState,
    UsageHistoryItem,
)

logger = logging.getLogger(__name__)

EventListener = Callable[[DispenserEvent], None]


def compute_usage_ml(start_level: int, end_level: int, settings: DispenserSettings) -> float:
    """
    Convert a level drop into milliliters.

    amount = (start_level - end_level) * settings.dispensing_volume
    """
    return (start_level - end_level) * settings.dispensing_volume


class DispenserEngine:
    """
    Single-dispenser state machine.

    Usage:
        engine = DispenserEngine(scheduler=ManualScheduler(), dispatcher=InlineDispatcher())
        engine.subscribe(notifier.handle_event)
        engine.start()
    """

    def __init__(
        self,
        settings: Optional[DispenserSettings] = None,
        scheduler: Optional[Scheduler] = None,
        level: int = MAX_LEVEL,
        ledger: Optional[UsageLedger] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        if not (MIN_LEVEL <= level <= MAX_LEVEL):
            raise ValueError(f"level must be in [{MIN_LEVEL}, {MAX_LEVEL}], got {level}")

        self._settings = settings or DispenserSettings()
        self._scheduler = scheduler or ThreadingScheduler()
        self._ledger = ledger or UsageLedger()
        self._dispatcher = dispatcher or QueueDispatcher()

        self._level: int = level
        self._state = DispensingState.IDLE
        self._start_level: int = level
        self._alert_armed: bool = False
        self._last_error: Optional[str] = None

        self._timer: Optional[TimerHandle] = None
        self._timer_generation: int = 0

        self._listeners: List[EventListener] = []
        self._lock = threading.RLock()
        logger.info(
            f"[DispenserEngine] Initialized at level={level}% "
            f"(threshold={self._settings.low_water_threshold}%, "
            f"speed={self._settings.dispensing_speed}ms)"
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def level(self) -> int:
        return self._level

    @property
    def dispensing_state(self) -> DispensingState:
        return self._state

    @property
    def is_dispensing(self) -> bool:
        return self._state is DispensingState.DISPENSING

    @property
    def settings(self) -> DispenserSettings:
        return self._settings

    @property
    def history(self) -> List[UsageHistoryItem]:
        """Usage ledger, newest last."""
        with self._lock:
            return self._ledger.items()

    @property
    def history_limit(self) -> int:
        return self._ledger.limit

    @property
    def notification_state(self) -> NotificationState:
        with self._lock:
            return NotificationState(
                low_water_alert_armed=self._alert_armed,
                last_error=self._last_error,
            )

    def snapshot(self) -> DispenserSnapshot:
        with self._lock:
            return DispenserSnapshot(
                level=self._level,
                dispensing_state=self._state,
                history=self._ledger.items(),
                notification_state=self.notification_state,
                settings=self._settings,
            )

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def clear_error(self) -> None:
        with self._lock:
            self._last_error = None

    def flush_events(self, timeout: Optional[float] = None) -> bool:
        """Wait until every emitted event has reached the subscribers."""
        return self._dispatcher.flush(timeout)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """
        Begin a dispensing run.

        Returns:
            True if a run started; False if the tank is empty or a run is
            already active.
        """
        with self._lock:
            if self._level <= MIN_LEVEL:
                logger.info("[DispenserEngine] start() ignored: tank is empty")
                return False
            if self._state is DispensingState.DISPENSING:
                logger.debug("[DispenserEngine] start() ignored: already dispensing")
                return False

            self._start_level = self._level
            self._state = DispensingState.DISPENSING
            self._schedule_tick()
            logger.info(f"[DispenserEngine] Dispensing started at {self._level}%")
            return True

    def stop(self) -> bool:
        """
        End the active run and record what was dispensed.

        Returns:
            True if a run was stopped; False if already idle.
        """
        with self._lock:
            if self._state is not DispensingState.DISPENSING:
                return False

            self._cancel_tick()
            self._record_usage(self._start_level, self._level)
            self._state = DispensingState.IDLE
            logger.info(f"[DispenserEngine] Dispensing stopped at {self._level}%")
            return True

    def refill(self) -> bool:
        """
        Reset the level to 100%. Ignored while dispensing.

        Returns:
            True if refilled.
        """
        with self._lock:
            if self._state is DispensingState.DISPENSING:
                logger.info("[DispenserEngine] refill() ignored while dispensing")
                return False

            self._level = MAX_LEVEL
            self._start_level = MAX_LEVEL
            self._alert_armed = False
            self._ledger.append(UsageHistoryItem(amount=0, event=REFILL_EVENT_TAG))
            events = self._watch_threshold()
            events.append(self._event(EVENT_REFILLED, SEVERITY_INFO))
            logger.info("[DispenserEngine] Refilled to 100%")
            self._publish(events)

        return True

    def apply_settings(self, settings: DispenserSettings) -> None:
        """
        Replace the live settings record.

        An active run keeps going; if the speed changed its single timer
        is re-scheduled at the new interval.
        """
        with self._lock:
            previous = self._settings
            self._settings = settings
            if self.is_dispensing and previous.dispensing_speed != settings.dispensing_speed:
                self._cancel_tick()
                self._schedule_tick()
            logger.info(
                f"[DispenserEngine] Settings applied: "
                f"threshold={settings.low_water_threshold}%, "
                f"speed={settings.dispensing_speed}ms, "
                f"volume={settings.dispensing_volume}ml/%"
            )

    def shutdown(self) -> None:
        """Cancel any pending timer without recording usage; queued events still drain."""
        with self._lock:
            self._cancel_tick()
            self._state = DispensingState.IDLE
        self._dispatcher.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _schedule_tick(self) -> None:
        self._timer_generation += 1
        generation = self._timer_generation
        self._timer = self._scheduler.schedule_repeating(
            self._settings.dispensing_speed,
            lambda: self._tick(generation),
        )

    def _cancel_tick(self) -> None:
        # Bumping the generation invalidates any tick already in flight.
        self._timer_generation += 1
        if self._timer is not None:
            self._scheduler.cancel(self._timer)
            self._timer = None

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation or not self.is_dispensing:
                return

            self._level -= 1
            if self._level <= MIN_LEVEL:
                self._level = MIN_LEVEL
                self._cancel_tick()
                self._record_usage(self._start_level, MIN_LEVEL)
                self._state = DispensingState.IDLE
                logger.info("[DispenserEngine] Tank emptied; dispensing ended")

            self._publish(self._watch_threshold())

    def _record_usage(self, start_level: int, end_level: int) -> None:
        amount = compute_usage_ml(start_level, end_level, self._settings)
        if amount > 0:
            self._ledger.append(UsageHistoryItem(amount=amount))
            logger.info(f"[DispenserEngine] Recorded usage: {amount:g}ml")

    def _watch_threshold(self) -> List[DispenserEvent]:
        """Evaluate alert conditions after a level change."""
        events: List[DispenserEvent] = []
        threshold = self._settings.low_water_threshold

        if self._level <= threshold:
            if not self._alert_armed:
                self._alert_armed = True
                events.append(self._event(EVENT_LOW_WATER, SEVERITY_WARNING, threshold=threshold))
                logger.warning(
                    f"[DispenserEngine] Level {self._level}% at or below threshold {threshold}%"
                )
        else:
            self._alert_armed = False

        if self._level == MIN_LEVEL:
            events.append(self._event(EVENT_EMPTY, SEVERITY_CRITICAL))
            logger.warning("[DispenserEngine] Dispenser is empty")

        return events

    def _event(self, event_type: str, severity: str, threshold: Optional[int] = None) -> DispenserEvent:
        return DispenserEvent(
            type=event_type,
            severity=severity,
            level=self._level,
            threshold=threshold,
        )

    def _publish(self, events: List[DispenserEvent]) -> None:
        # Caller holds the lock.
        for event in events:
            self._dispatcher.submit(event, self._deliver)

    def _deliver(self, event: DispenserEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                with self._lock:
                    self._last_error = f"{event.type}: {e}"
                logger.error(f"[DispenserEngine] Listener failed on {event.type}: {e}")
