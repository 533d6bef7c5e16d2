"""
Dispenser Schemas — Domain Records

Pydantic models for the dispenser state machine: user settings, usage
ledger entries, emitted events and the notification state.

Constraints:
- Level is an integer percentage in [MIN_LEVEL, MAX_LEVEL]
- Timestamps are timezone-aware UTC
- Settings are replaced as a whole record, never field-by-field
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# CONSTANTS — Explicit, Named, No Magic Numbers
# ============================================================================

MIN_LEVEL = 0
MAX_LEVEL = 100

# Usage ledger window (most recent N entries)
HISTORY_LIMIT = 5

# Defaults for the user settings record
DEFAULT_LOW_WATER_THRESHOLD = 20    # percent
DEFAULT_DISPENSING_SPEED_MS = 100   # milliseconds per 1% step
DEFAULT_ML_PER_PERCENT = 10         # milliliters per 1% step

REFILL_EVENT_TAG = "Refill"

EVENT_LOW_WATER = "low-water"
EVENT_EMPTY = "empty"
EVENT_REFILLED = "refilled"

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"


class DispensingState(str, Enum):
    """Engine activity. Ticking occurs iff DISPENSING."""
    IDLE = "IDLE"
    DISPENSING = "DISPENSING"


class DispenserSettings(BaseModel):
    """User-configurable dispenser settings (persisted as one record)."""
    model_config = ConfigDict(frozen=True)

    low_water_threshold: int = Field(
        default=DEFAULT_LOW_WATER_THRESHOLD,
        ge=MIN_LEVEL,
        le=MAX_LEVEL,
        description="Low-water alert threshold in percent",
    )
    dispensing_speed: int = Field(
        default=DEFAULT_DISPENSING_SPEED_MS,
        gt=0,
        description="Milliseconds per 1% level step",
    )
    dispensing_volume: float = Field(
        default=DEFAULT_ML_PER_PERCENT,
        gt=0,
        description="Milliliters dispensed per 1% level step",
    )


class UsageHistoryItem(BaseModel):
    """One usage ledger entry. Refills carry amount 0 and event 'Refill'."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    amount: float = Field(..., ge=0, description="Milliliters dispensed")
    event: Optional[str] = Field(default=None, description="Optional tag, e.g. 'Refill'")

    @field_validator('timestamp')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class DispenserEvent(BaseModel):
    """Domain event emitted by the engine for the notifier."""
    type: str = Field(..., description="low-water | empty | refilled")
    severity: str = Field(default=SEVERITY_INFO)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: int = Field(..., ge=MIN_LEVEL, le=MAX_LEVEL)
    threshold: Optional[int] = Field(default=None, description="Set for low-water only")


class NotificationState(BaseModel):
    """
    Alert bookkeeping exposed to the host.

    low_water_alert_armed is set once the low-water alert has fired and
    cleared when the level rises back above the threshold.
    """
    low_water_alert_armed: bool = False
    last_error: Optional[str] = None


class DispenserSnapshot(BaseModel):
    """Read-only view of the engine at one instant."""
    level: int = Field(..., ge=MIN_LEVEL, le=MAX_LEVEL)
    dispensing_state: DispensingState
    history: List[UsageHistoryItem] = Field(default_factory=list)
    notification_state: NotificationState
    settings: DispenserSettings
