"""Pydantic schemas used by the API endpoints."""

from __future__ import annotations

import datetime as dt
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from data import SquadOverride, WhatIfResult, parse_squad_overrides, parse_what_if_results

Winner = Literal["home", "draw", "away"]


class ConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    knobs: Dict[str, Any]


class ConfigUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    updates: Dict[str, Any] = Field(default_factory=dict)


class MessageResponse(BaseModel):
    message: str


# League data --------------------------------------------------------------


class LeagueMetadataResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_reload: datetime = Field(..., alias="lastReload")
    source: str
    fingerprint: str
    division_count: int = Field(..., alias="divisionCount")
    team_count: int = Field(..., alias="teamCount")
    result_count: int = Field(..., alias="resultCount")
    fixture_count: int = Field(..., alias="fixtureCount")
    player_count: int = Field(..., alias="playerCount")
    settings: Dict[str, Any]


class LeagueReloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_dir: Optional[str] = Field(default=None, alias="dataDir")


class LeagueDataUpload(BaseModel):
    """Raw league snapshot in the layout of :meth:`data.DataSources.to_dict`."""

    divisions: Dict[str, Dict[str, Any]]
    fixtures: List[Dict[str, Any]] = Field(default_factory=list)
    results: List[Dict[str, Any]] = Field(default_factory=list)
    rosters: Dict[str, List[str]] = Field(default_factory=dict)
    players: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class DivisionSummary(BaseModel):
    code: str
    name: str
    teams: List[str]


class DivisionListResponse(BaseModel):
    items: List[DivisionSummary]


class StandingRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    position: int
    team: str
    played: int
    won: int
    drawn: int
    lost: int
    frames_for: int = Field(..., alias="framesFor")
    frames_against: int = Field(..., alias="framesAgainst")
    diff: int
    points: int


class StandingsResponse(BaseModel):
    division: str
    standings: List[StandingRow]


class StrengthRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team: str
    strength: float
    remaining_schedule_strength: float = Field(..., alias="remainingScheduleStrength")


class StrengthResponse(BaseModel):
    division: str
    teams: List[StrengthRow]


# Scenario inputs ------------------------------------------------------------


class SquadOverrideModel(BaseModel):
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)


class WhatIfModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    home: str
    away: str
    home_score: int = Field(..., ge=0, alias="homeScore")
    away_score: int = Field(..., ge=0, alias="awayScore")


class ScenarioRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    division: str
    squad_overrides: Dict[str, SquadOverrideModel] = Field(default_factory=dict, alias="squadOverrides")
    top_n: Optional[int] = Field(default=None, ge=1, alias="topN")
    seed: Optional[int] = None
    trials: Optional[int] = Field(default=None, ge=1)
    frames: Optional[int] = Field(default=None, ge=1)
    home_advantage: Optional[float] = Field(default=None, alias="homeAdvantage")

    def overrides(self) -> Dict[str, SquadOverride]:
        return parse_squad_overrides({team: entry.model_dump() for team, entry in self.squad_overrides.items()})


class PredictionRequest(ScenarioRequest):
    home: str
    away: str


class SimulationRequest(ScenarioRequest):
    what_if_results: List[WhatIfModel] = Field(default_factory=list, alias="whatIfResults")
    top_positions: Optional[int] = Field(default=None, ge=1, alias="topPositions")
    bottom_positions: Optional[int] = Field(default=None, ge=1, alias="bottomPositions")
    workers: int = Field(default=1, ge=1, le=32)

    def what_ifs(self) -> List[WhatIfResult]:
        return parse_what_if_results(w.model_dump() for w in self.what_if_results)


class ImportanceMetric(str, Enum):
    top = "top"
    title = "title"
    bottom = "bottom"


class ImportanceScope(str, Enum):
    team = "team"
    division = "division"


class ImportanceRequest(SimulationRequest):
    team: str
    metric: ImportanceMetric = ImportanceMetric.top
    scope: ImportanceScope = ImportanceScope.team


# Engine outputs ------------------------------------------------------------------


class ScoreLineModel(BaseModel):
    score: str
    home: int
    away: int
    probability: float


class PredictionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    p_home_win: float = Field(..., alias="pHomeWin")
    p_draw: float = Field(..., alias="pDraw")
    p_away_win: float = Field(..., alias="pAwayWin")
    expected_home: float = Field(..., alias="expectedHome")
    expected_away: float = Field(..., alias="expectedAway")
    confidence: float
    predicted_winner: Winner = Field(..., alias="predictedWinner")
    p_frame: float = Field(..., alias="pFrame")
    frames: int
    trials: int
    top_scores: List[ScoreLineModel] = Field(default_factory=list, alias="topScores")
    baseline: Optional["PredictionModel"] = None


class TeamProjectionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team: str
    current_points: int = Field(..., alias="currentPoints")
    avg_points: float = Field(..., alias="avgPoints")
    p_title: float = Field(..., alias="pTitle")
    p_top: float = Field(..., alias="pTop")
    p_bottom: float = Field(..., alias="pBottom")
    position_probabilities: List[float] = Field(default_factory=list, alias="positionProbabilities")


class FixtureOutcomeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    home: str
    away: str
    date: dt.date
    p_home_win: float = Field(..., alias="pHomeWin")
    p_draw: float = Field(..., alias="pDraw")
    p_away_win: float = Field(..., alias="pAwayWin")


class SimulationResponse(BaseModel):
    division: str
    trials: int
    seed: Optional[int] = None
    teams: List[TeamProjectionModel]
    fixtures: List[FixtureOutcomeModel] = Field(default_factory=list)


class FixtureImportanceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    home: str
    away: str
    date: dt.date
    involves_team: bool = Field(..., alias="involvesTeam")
    importance: float
    p_if_home_win: float = Field(..., alias="pIfHomeWin")
    p_if_away_win: float = Field(..., alias="pIfAwayWin")
    p_if_win: Optional[float] = Field(default=None, alias="pIfWin")
    p_if_loss: Optional[float] = Field(default=None, alias="pIfLoss")


class ImportanceResponse(BaseModel):
    division: str
    team: str
    metric: ImportanceMetric
    scope: ImportanceScope
    fixtures: List[FixtureImportanceModel]


# Accuracy tracking ----------------------------------------------------------------


class PredictionSnapshotModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    season_id: Optional[str] = Field(default=None, alias="seasonId")
    division: str
    date: dt.date
    home: str
    away: str
    predicted_at: Optional[datetime] = Field(default=None, alias="predictedAt")
    p_home_win: float = Field(..., alias="pHomeWin")
    p_draw: float = Field(..., alias="pDraw")
    p_away_win: float = Field(..., alias="pAwayWin")
    expected_home: float = Field(default=0.0, alias="expectedHome")
    expected_away: float = Field(default=0.0, alias="expectedAway")
    confidence: float = Field(..., ge=0.0, le=1.0)
    predicted_winner: Winner = Field(..., alias="predictedWinner")
    actual_home_score: Optional[int] = Field(default=None, alias="actualHomeScore")
    actual_away_score: Optional[int] = Field(default=None, alias="actualAwayScore")
    actual_winner: Optional[Winner] = Field(default=None, alias="actualWinner")
    correct: Optional[bool] = None


class AccuracyRequest(BaseModel):
    predictions: List[PredictionSnapshotModel]


class DivisionAccuracyModel(BaseModel):
    division: str
    total: int
    correct: int
    accuracy: float


class ConfidenceBandModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str
    min_confidence: float = Field(..., alias="minConfidence")
    max_confidence: float = Field(..., alias="maxConfidence")
    total: int
    correct: int
    accuracy: float


class CalibrationBucketModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    min_confidence: float = Field(..., alias="minConfidence")
    max_confidence: float = Field(..., alias="maxConfidence")
    predicted_rate: float = Field(..., alias="predictedRate")
    actual_rate: float = Field(..., alias="actualRate")
    count: int


class AccuracyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_predictions: int = Field(..., alias="totalPredictions")
    correct_predictions: int = Field(..., alias="correctPredictions")
    accuracy_rate: float = Field(..., alias="accuracyRate")
    pending_predictions: int = Field(..., alias="pendingPredictions")
    by_division: List[DivisionAccuracyModel] = Field(default_factory=list, alias="byDivision")
    by_confidence: List[ConfidenceBandModel] = Field(default_factory=list, alias="byConfidence")
    calibration: List[CalibrationBucketModel] = Field(default_factory=list)


class ResolveResponse(BaseModel):
    predictions: List[PredictionSnapshotModel]
    resolved: int


# Background jobs -------------------------------------------------------------------


class JobStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class JobInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias="jobId")
    job_type: str = Field(..., alias="jobType")
    status: JobStatus
    created_at: datetime = Field(..., alias="createdAt")
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    finished_at: Optional[datetime] = Field(default=None, alias="finishedAt")
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class JobCreatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias="jobId")
    status: JobStatus
    job_type: str = Field(..., alias="jobType")
    poll_url: str = Field(..., alias="pollUrl")


PredictionModel.model_rebuild()
