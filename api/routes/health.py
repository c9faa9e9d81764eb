from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.dependencies import get_context_manager
from cache import importance_cache
from context import ContextManager

router = APIRouter(tags=["health"])


@router.get("/healthz", summary="Application health check")
async def healthcheck(manager: ContextManager = Depends(get_context_manager)) -> Dict[str, Any]:
    try:
        fingerprint = manager.sources().fingerprint
    except (FileNotFoundError, ValueError):
        fingerprint = None
    return {
        "status": "ok",
        "dataLoaded": fingerprint is not None,
        "fingerprint": fingerprint,
        "importanceCache": importance_cache.stats(),
    }
