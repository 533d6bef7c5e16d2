"""
API Services — Dispenser Host

Wires the engine to its collaborators (scheduler, notifier, settings
repository) and formats ledger entries for display.
"""

import logging
import math
from threading import Lock
from typing import Optional

from dispenser.config import settings as app_settings
from dispenser.engine import (
    DispenserEngine,
    DispenserSettings,
    EventDispatcher,
    Scheduler,
    ThreadingScheduler,
    UsageHistoryItem,
)
from dispenser.notifications import Notifier
from dispenser.storage import SettingsRepository

from .schemas import HistoryResponse, StatusResponse, UsageHistoryEntry

logger = logging.getLogger(__name__)


def format_usage_item(item: UsageHistoryItem) -> UsageHistoryEntry:
    """
    Display fields for one ledger entry.

    Date and time are shown in local time. Amounts are rounded half-up to
    whole milliliters.
    """
    ts = item.timestamp.astimezone()
    return UsageHistoryEntry(
        timestamp=item.timestamp,
        amount=item.amount,
        event=item.event,
        date=f"{ts:%b} {ts.day}, {ts.year}",
        time=ts.strftime("%I:%M %p"),
        amount_label=f"{math.floor(item.amount + 0.5)}ml",
    )


class DispenserService:
    """
    Host for one dispenser.

    Settings are loaded once at construction. Saving replaces the whole
    record: persisted first, applied to the engine only on success.
    """

    def __init__(
        self,
        repository: SettingsRepository,
        notifier: Optional[Notifier] = None,
        scheduler: Optional[Scheduler] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self.repository = repository
        self.notifier = notifier or Notifier(enabled=app_settings.NOTIFICATIONS_ENABLED)
        self.engine = DispenserEngine(
            settings=repository.load(),
            scheduler=scheduler or ThreadingScheduler(),
            dispatcher=dispatcher,
        )
        self.engine.subscribe(self.notifier.handle_event)

    # --- commands ---

    def start(self) -> StatusResponse:
        self.engine.start()
        return self.status()

    def stop(self) -> StatusResponse:
        self.engine.stop()
        return self.status()

    def toggle(self) -> StatusResponse:
        """Single Dispense/Stop control."""
        if self.engine.is_dispensing:
            self.engine.stop()
        else:
            self.engine.start()
        return self.status()

    def refill(self) -> StatusResponse:
        self.engine.refill()
        return self.status()

    def save_settings(self, new_settings: DispenserSettings) -> DispenserSettings:
        """
        Persist and apply settings.

        Raises:
            SettingsSaveError: If persistence fails (live settings unchanged)
        """
        saved = self.repository.save(new_settings)
        self.engine.apply_settings(saved)
        return saved

    def clear_notification_error(self) -> StatusResponse:
        self.notifier.clear_error()
        self.engine.clear_error()
        return self.status()

    def shutdown(self) -> None:
        self.engine.shutdown()

    # --- views ---

    def status(self) -> StatusResponse:
        snap = self.engine.snapshot()
        dispensing = self.engine.is_dispensing
        return StatusResponse(
            level=snap.level,
            dispensing_state=snap.dispensing_state,
            can_dispense=snap.level > 0,
            can_refill=not dispensing,
            is_low=snap.level <= snap.settings.low_water_threshold,
            low_water_alert_armed=snap.notification_state.low_water_alert_armed,
            notification_error=self.notifier.last_error or snap.notification_state.last_error,
        )

    def history(self) -> HistoryResponse:
        return HistoryResponse(
            items=[format_usage_item(item) for item in self.engine.history],
            limit=self.engine.history_limit,
        )


# ============================================================================
# Process-wide service
# ============================================================================

_service: Optional[DispenserService] = None
_service_lock = Lock()


def get_dispenser_service() -> DispenserService:
    """FastAPI dependency: lazily built process-wide service."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = DispenserService(SettingsRepository.from_config())
                logger.info("[DispenserService] Initialized")
    return _service


def shutdown_dispenser_service() -> None:
    global _service
    with _service_lock:
        if _service is not None:
            _service.shutdown()
            _service = None
