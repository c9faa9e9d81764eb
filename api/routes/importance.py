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
from api.models import ImportanceRequest, ImportanceResponse, JobCreatedResponse, JobStatus
from api.utils import importance_models, run_engine
from context import ContextManager
from data import DataSources
from importance import calc_fixture_importance

router = APIRouter(prefix="/importance", tags=["importance"], dependencies=[Depends(require_api_key)])


def _compute(payload: ImportanceRequest, sources: DataSources) -> ImportanceResponse:
    fixtures = calc_fixture_importance(
        payload.division,
        payload.team,
        payload.overrides(),
        payload.top_n,
        payload.what_ifs(),
        sources,
        seed=payload.seed,
        trials=payload.trials,
        frames=payload.frames,
        top_positions=payload.top_positions,
        bottom_positions=payload.bottom_positions,
        metric=payload.metric.value,
        scope=payload.scope.value,
        workers=payload.workers,
    )
    return ImportanceResponse(
        division=payload.division,
        team=payload.team,
        metric=payload.metric,
        scope=payload.scope,
        fixtures=importance_models(fixtures),
    )


def _run_importance_job(payload: ImportanceRequest, sources: DataSources) -> Dict[str, Any]:
    return _compute(payload, sources).model_dump(by_alias=True, mode="json")


@router.post("", response_model=ImportanceResponse, summary="Rank remaining fixtures by importance to a team")
async def fixture_importance(
    payload: ImportanceRequest,
    manager: ContextManager = Depends(get_context_manager),
) -> ImportanceResponse:
    sources = load_sources(manager)
    require_division(sources, payload.division, payload.team)
    return run_engine(_compute, payload, sources)


@router.post(
    "/jobs",
    response_model=JobCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a fixture importance analysis in the background",
)
async def fixture_importance_async(
    payload: ImportanceRequest,
    manager: ContextManager = Depends(get_context_manager),
    jobs: JobManager = Depends(get_job_manager),
) -> JobCreatedResponse:
    sources = load_sources(manager)
    require_division(sources, payload.division, payload.team)
    job_id = jobs.create_job(
        "fixture_importance",
        _run_importance_job,
        args=(payload, sources),
        metadata={"division": payload.division, "team": payload.team, "seed": payload.seed},
    )
    return JobCreatedResponse(
        jobId=job_id,
        status=JobStatus.pending,
        jobType="fixture_importance",
        pollUrl=f"/jobs/{job_id}",
    )
