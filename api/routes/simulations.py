from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from api.background import JobManager
from api.dependencies import (
    get_context_manager,
    get_job_manager,
    load_sources,
    require_api_key,
    require_division,
)
from api.models import JobCreatedResponse, JobStatus, SimulationRequest, SimulationResponse
from api.utils import run_engine, simulation_response
from context import ContextManager
from data import DataSources
from simulation import simulate_season

router = APIRouter(prefix="/simulations", tags=["simulations"], dependencies=[Depends(require_api_key)])


def _season_kwargs(payload: SimulationRequest) -> Dict[str, Any]:
    return {
        "squad_overrides": payload.overrides(),
        "top_n": payload.top_n,
        "what_if_results": payload.what_ifs(),
        "trials": payload.trials,
        "seed": payload.seed,
        "frames": payload.frames,
        "home_advantage": payload.home_advantage,
        "top_positions": payload.top_positions,
        "bottom_positions": payload.bottom_positions,
        "workers": payload.workers,
    }


def _run_season_job(division: str, sources: DataSources, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    season = simulate_season(division, sources, **kwargs)
    return simulation_response(season).model_dump(by_alias=True, mode="json")


@router.post("", response_model=SimulationResponse, summary="Simulate the rest of a division's season")
async def simulate(
    payload: SimulationRequest,
    manager: ContextManager = Depends(get_context_manager),
) -> SimulationResponse:
    sources = load_sources(manager)
    require_division(sources, payload.division)
    season = run_engine(simulate_season, payload.division, sources, **_season_kwargs(payload))
    return simulation_response(season)


@router.post(
    "/jobs",
    response_model=JobCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a season simulation in the background",
)
async def simulate_async(
    payload: SimulationRequest,
    manager: ContextManager = Depends(get_context_manager),
    jobs: JobManager = Depends(get_job_manager),
) -> JobCreatedResponse:
    sources = load_sources(manager)
    require_division(sources, payload.division)
    job_id = jobs.create_job(
        "season_simulation",
        _run_season_job,
        args=(payload.division, sources, _season_kwargs(payload)),
        metadata={"division": payload.division, "seed": payload.seed, "fingerprint": sources.fingerprint},
    )
    return JobCreatedResponse(
        jobId=job_id,
        status=JobStatus.pending,
        jobType="season_simulation",
        pollUrl=f"/jobs/{job_id}",
    )
