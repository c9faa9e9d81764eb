from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import require_api_key
from api.models import ConfigResponse, ConfigUpdateRequest
from config import SETTINGS_HELP, settings

router = APIRouter(prefix="/config", tags=["config"], dependencies=[Depends(require_api_key)])


def _coerce(name: str, current: object, value: object) -> object:
    if isinstance(current, bool) or isinstance(value, bool):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Knob '{name}' must be numeric")
    try:
        if isinstance(current, int):
            coerced = int(value)
            if coerced != value:
                raise ValueError(value)
            if coerced < 0 or (coerced == 0 and not name.startswith("points_")):
                raise ValueError(value)
            return coerced
        return float(value)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid value {value!r} for knob '{name}'",
        ) from None


@router.get("/", response_model=ConfigResponse, summary="List current engine knobs")
async def get_config() -> ConfigResponse:
    return ConfigResponse(knobs=settings.snapshot())


@router.patch("/", response_model=ConfigResponse, summary="Update one or more engine knobs")
async def patch_config(payload: ConfigUpdateRequest) -> ConfigResponse:
    if not payload.updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates provided")
    snapshot = settings.snapshot()
    coerced = {}
    for name, value in payload.updates.items():
        if name not in snapshot:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown knob '{name}'")
        coerced[name] = _coerce(name, snapshot[name], value)
    for name, value in coerced.items():
        settings.set(name, value)
    return ConfigResponse(knobs=settings.snapshot())


@router.post("/reset", response_model=ConfigResponse, summary="Restore every knob to its default")
async def reset_config() -> ConfigResponse:
    settings.reset()
    return ConfigResponse(knobs=settings.snapshot())


@router.get("/help", summary="Describe available configuration knobs")
async def config_help() -> dict[str, str]:
    return SETTINGS_HELP.copy()
