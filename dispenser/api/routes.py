"""
API Routes — Dispenser Controls

The host surface for one dispenser: the Dispense/Stop and Refill buttons,
the level readout, the recent-usage list and the settings form.

All handlers are async. Commands that are not allowed in the current state
(refill while dispensing, start when empty) are ignored, not errors; the
returned status tells the caller what happened.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from dispenser.engine import DispenserSettings
from dispenser.storage import SettingsSaveError

from .schemas import HistoryResponse, SettingsResponse, StatusResponse
from .services import DispenserService, get_dispenser_service


router = APIRouter(prefix="/dispenser", tags=["Dispenser"])


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Current level and control state",
)
async def get_status(
    service: DispenserService = Depends(get_dispenser_service),
) -> StatusResponse:
    return service.status()


@router.post(
    "/start",
    response_model=StatusResponse,
    summary="Start dispensing",
    description="Ignored when the tank is empty or a run is already active.",
)
async def start_dispensing(
    service: DispenserService = Depends(get_dispenser_service),
) -> StatusResponse:
    return service.start()


@router.post(
    "/stop",
    response_model=StatusResponse,
    summary="Stop dispensing",
    description="Records the dispensed amount. Ignored when idle.",
)
async def stop_dispensing(
    service: DispenserService = Depends(get_dispenser_service),
) -> StatusResponse:
    return service.stop()


@router.post(
    "/toggle",
    response_model=StatusResponse,
    summary="Dispense/Stop button",
)
async def toggle_dispensing(
    service: DispenserService = Depends(get_dispenser_service),
) -> StatusResponse:
    return service.toggle()


@router.post(
    "/refill",
    response_model=StatusResponse,
    summary="Refill to 100%",
    description="Ignored while dispensing.",
)
async def refill(
    service: DispenserService = Depends(get_dispenser_service),
) -> StatusResponse:
    return service.refill()


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="Recent usage (newest last)",
)
async def get_history(
    service: DispenserService = Depends(get_dispenser_service),
) -> HistoryResponse:
    return service.history()


@router.get(
    "/settings",
    response_model=SettingsResponse,
    summary="Current settings",
)
async def get_settings(
    service: DispenserService = Depends(get_dispenser_service),
) -> SettingsResponse:
    return SettingsResponse(
        settings=service.engine.settings,
        load_error=service.repository.last_load_error,
    )


@router.put(
    "/settings",
    response_model=SettingsResponse,
    responses={
        422: {"description": "Validation error (invalid settings)"},
        503: {"description": "Settings could not be saved"},
    },
    summary="Replace settings",
    description="Persists the whole record, then applies it. Live settings are unchanged on failure.",
)
async def put_settings(
    new_settings: DispenserSettings,
    service: DispenserService = Depends(get_dispenser_service),
) -> SettingsResponse:
    try:
        saved = service.save_settings(new_settings)
    except SettingsSaveError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
    return SettingsResponse(settings=saved)


@router.post(
    "/notifications/clear-error",
    response_model=StatusResponse,
    summary="Re-enable notifications after a failure",
)
async def clear_notification_error(
    service: DispenserService = Depends(get_dispenser_service),
) -> StatusResponse:
    return service.clear_notification_error()
