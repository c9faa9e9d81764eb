from __future__ import annotations

from typing import Any, Callable, Iterable, List, TypeVar

from fastapi import HTTPException, status

from api.models import (
    AccuracyResponse,
    FixtureImportanceModel,
    PredictionModel,
    PredictionSnapshotModel,
    SimulationResponse,
    StandingRow,
)
from errors import EngineError
from importance import FixtureImportance
from simulation import PredictionResult, SeasonSimulation
from standings import StandingEntry
from tracking import AccuracyStats, PredictionSnapshot

T = TypeVar("T")


def run_engine(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Call into the engine, reporting caller mistakes as HTTP 400."""

    try:
        return func(*args, **kwargs)
    except (EngineError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def standing_rows(entries: Iterable[StandingEntry]) -> List[StandingRow]:
    return [StandingRow.model_validate(entry.to_dict()) for entry in entries]


def prediction_model(result: PredictionResult) -> PredictionModel:
    return PredictionModel.model_validate(result.to_dict())


def simulation_response(season: SeasonSimulation) -> SimulationResponse:
    return SimulationResponse.model_validate(season.to_dict())


def importance_models(items: Iterable[FixtureImportance]) -> List[FixtureImportanceModel]:
    return [FixtureImportanceModel.model_validate(item.to_dict()) for item in items]


def accuracy_response(stats: AccuracyStats) -> AccuracyResponse:
    return AccuracyResponse.model_validate(stats.to_dict())


def snapshot_from_model(model: PredictionSnapshotModel) -> PredictionSnapshot:
    return PredictionSnapshot.from_dict(model.model_dump())


def snapshot_model(snapshot: PredictionSnapshot) -> PredictionSnapshotModel:
    return PredictionSnapshotModel.model_validate(snapshot.to_dict())
