from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_context_manager, load_sources, require_api_key
from api.models import AccuracyRequest, AccuracyResponse, ResolveResponse
from api.utils import accuracy_response, run_engine, snapshot_from_model, snapshot_model
from context import ContextManager
from tracking import calculate_accuracy, resolve_predictions

router = APIRouter(prefix="/accuracy", tags=["accuracy"], dependencies=[Depends(require_api_key)])


@router.post("", response_model=AccuracyResponse, summary="Summarise the accuracy of stored predictions")
async def accuracy(payload: AccuracyRequest) -> AccuracyResponse:
    snapshots = [snapshot_from_model(item) for item in payload.predictions]
    return accuracy_response(run_engine(calculate_accuracy, snapshots))


@router.post("/resolve", response_model=ResolveResponse, summary="Resolve predictions against loaded results")
async def resolve(
    payload: AccuracyRequest,
    manager: ContextManager = Depends(get_context_manager),
) -> ResolveResponse:
    sources = load_sources(manager)
    snapshots = [snapshot_from_model(item) for item in payload.predictions]
    pending_before = sum(1 for s in snapshots if not s.resolved)
    resolved = run_engine(resolve_predictions, snapshots, sources.results)
    pending_after = sum(1 for s in resolved if not s.resolved)
    return ResolveResponse(
        predictions=[snapshot_model(s) for s in resolved],
        resolved=pending_before - pending_after,
    )
