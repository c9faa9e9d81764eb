"""Shared FastAPI dependencies (auth, context access, etc.)."""

from __future__ import annotations

import os
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from api.background import JobManager, job_manager
from context import ContextManager, context_manager
from data import DataSources
from errors import ConfigurationError


class APISettings:
    """Runtime settings for the API layer."""

    def __init__(self) -> None:
        self.api_key = os.environ.get("LEAGUE_API_KEY")


def get_api_settings() -> APISettings:
    return APISettings()


async def require_api_key(
    settings: Annotated[APISettings, Depends(get_api_settings)],
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    """Validate the ``X-API-Key`` header if an API key is configured."""

    if settings.api_key is None:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def get_context_manager() -> ContextManager:
    return context_manager


def get_job_manager() -> JobManager:
    return job_manager


def load_sources(manager: ContextManager) -> DataSources:
    try:
        return manager.sources()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def require_division(sources: DataSources, division: str, team: str | None = None) -> None:
    """404 for a division (or team) the loaded data does not contain."""

    try:
        if team is None:
            sources.division(division)
        else:
            sources.require_team(division, team)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
