"""
Pydantic Schemas — API Request/Response Models

Response shapes for the dispenser host. Settings updates reuse the
domain DispenserSettings model so validation lives in one place.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from dispenser.engine.schemas import DispenserSettings, DispensingState


class StatusResponse(BaseModel):
    """Current dispenser state plus what the controls allow."""
    level: int = Field(..., ge=0, le=100, description="Water level in percent")
    dispensing_state: DispensingState
    can_dispense: bool = Field(..., description="Dispense button enabled (level > 0)")
    can_refill: bool = Field(..., description="Refill button enabled (not dispensing)")
    is_low: bool = Field(..., description="Level at or below the low-water threshold")
    low_water_alert_armed: bool
    notification_error: Optional[str] = None


class UsageHistoryEntry(BaseModel):
    """Ledger entry with display fields."""
    timestamp: datetime
    amount: float = Field(..., ge=0, description="Milliliters")
    event: Optional[str] = None
    date: str = Field(..., description="e.g. 'Oct 18, 2026'")
    time: str = Field(..., description="e.g. '02:05 PM'")
    amount_label: str = Field(..., description="Rounded milliliters, e.g. '30ml'")


class HistoryResponse(BaseModel):
    """Usage ledger, newest last."""
    items: List[UsageHistoryEntry] = Field(default_factory=list)
    limit: int


class SettingsResponse(BaseModel):
    """Live settings plus the outcome of the startup load."""
    settings: DispenserSettings
    load_error: Optional[str] = None


class PingResponse(BaseModel):
    status: str = "ok"
