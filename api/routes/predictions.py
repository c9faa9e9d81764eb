from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_context_manager, load_sources, require_api_key, require_division
from api.models import PredictionModel, PredictionRequest
from api.utils import prediction_model, run_engine
from context import ContextManager
from simulation import predict_fixture

router = APIRouter(prefix="/predictions", tags=["predictions"], dependencies=[Depends(require_api_key)])


@router.post("", response_model=PredictionModel, summary="Predict a single fixture")
async def predict(
    payload: PredictionRequest,
    manager: ContextManager = Depends(get_context_manager),
) -> PredictionModel:
    sources = load_sources(manager)
    require_division(sources, payload.division, payload.home)
    require_division(sources, payload.division, payload.away)
    result = run_engine(
        predict_fixture,
        payload.division,
        payload.home,
        payload.away,
        sources,
        squad_overrides=payload.overrides(),
        top_n=payload.top_n,
        seed=payload.seed,
        trials=payload.trials,
        frames=payload.frames,
        home_advantage=payload.home_advantage,
    )
    return prediction_model(result)
