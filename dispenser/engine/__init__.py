"""
Engine Module — Dispensing State Machine & Usage Ledger

Public API:
- DispenserEngine: level/ticking state machine
- compute_usage_ml: level drop -> milliliters
- UsageLedger: bounded most-recent-N usage log
- QueueDispatcher / InlineDispatcher: ordered event delivery to subscribers
- ThreadingScheduler / ManualScheduler: repeating timer providers
- DispenserSettings, UsageHistoryItem, DispenserEvent, NotificationState
"""

from .engine import DispenserEngine, compute_usage_ml
from .dispatcher import EventDispatcher, InlineDispatcher, QueueDispatcher
from .ledger import UsageLedger
from .scheduler import ManualScheduler, Scheduler, ThreadingScheduler, TimerHandle
from .schemas import (
    DEFAULT_DISPENSING_SPEED_MS,
    DEFAULT_LOW_WATER_THRESHOLD,
    DEFAULT_ML_PER_PERCENT,
    EVENT_EMPTY,
    EVENT_LOW_WATER,
    EVENT_REFILLED,
    HISTORY_LIMIT,
    MAX_LEVEL,
    MIN_LEVEL,
    REFILL_EVENT_TAG,
    DispenserEvent,
    DispenserSettings,
    DispenserSnapshot,
    DispensingState,
    NotificationState,
    UsageHistoryItem,
)

__all__ = [
    "DispenserEngine",
    "compute_usage_ml",
    "UsageLedger",
    "EventDispatcher",
    "QueueDispatcher",
    "InlineDispatcher",
    "Scheduler",
    "ThreadingScheduler",
    "ManualScheduler",
    "TimerHandle",
    "DispenserEvent",
    "DispenserSettings",
    "DispenserSnapshot",
    "DispensingState",
    "NotificationState",
    "UsageHistoryItem",
    "DEFAULT_DISPENSING_SPEED_MS",
    "DEFAULT_LOW_WATER_THRESHOLD",
    "DEFAULT_ML_PER_PERCENT",
    "EVENT_EMPTY",
    "EVENT_LOW_WATER",
    "EVENT_REFILLED",
    "HISTORY_LIMIT",
    "MAX_LEVEL",
    "MIN_LEVEL",
    "REFILL_EVENT_TAG",
]
