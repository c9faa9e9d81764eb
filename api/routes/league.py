from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_context_manager, load_sources, require_api_key
from api.models import (
    DivisionListResponse,
    DivisionSummary,
    LeagueDataUpload,
    LeagueMetadataResponse,
    LeagueReloadRequest,
)
from context import ContextManager
from data import data_sources_from_dict

router = APIRouter(prefix="/league", tags=["league"], dependencies=[Depends(require_api_key)])


def _metadata(manager: ContextManager) -> LeagueMetadataResponse:
    load_sources(manager)
    return LeagueMetadataResponse.model_validate(manager.metadata())


@router.get("", response_model=LeagueMetadataResponse, summary="Get league data metadata")
async def get_league_metadata(
    manager: ContextManager = Depends(get_context_manager),
) -> LeagueMetadataResponse:
    return _metadata(manager)


@router.post("/reload", response_model=LeagueMetadataResponse, summary="Reload league data from disk")
async def reload_league(
    payload: LeagueReloadRequest,
    manager: ContextManager = Depends(get_context_manager),
) -> LeagueMetadataResponse:
    data_dir = None
    if payload.data_dir:
        path = Path(payload.data_dir)
        if not path.exists() or not path.is_dir():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Data directory not found")
        data_dir = str(path)
    try:
        manager.reload(data_dir=data_dir)
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _metadata(manager)


@router.put("/data", response_model=LeagueMetadataResponse, summary="Replace league data with an uploaded snapshot")
async def upload_league_data(
    payload: LeagueDataUpload,
    manager: ContextManager = Depends(get_context_manager),
) -> LeagueMetadataResponse:
    try:
        sources = data_sources_from_dict(payload.model_dump())
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid league data: {exc}") from exc
    manager.replace_sources(sources)
    return _metadata(manager)


@router.get("/divisions", response_model=DivisionListResponse, summary="List divisions and their teams")
async def list_divisions(
    manager: ContextManager = Depends(get_context_manager),
) -> DivisionListResponse:
    sources = load_sources(manager)
    items = [
        DivisionSummary(code=div.code, name=div.name, teams=list(div.teams))
        for div in sorted(sources.divisions.values(), key=lambda d: d.code)
    ]
    return DivisionListResponse(items=items)
