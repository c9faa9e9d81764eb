"""Prediction snapshots and accuracy reporting.

A :class:`PredictionSnapshot` freezes what the engine predicted for a fixture at
a point in time. Once the result is known, :func:`resolve_prediction` returns a
resolved copy, and :func:`calculate_accuracy` summarises a collection of
snapshots. Storage is the caller's concern; everything here is pure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from data import Result, parse_match_date
from errors import ConfigurationError
from simulation import PredictionResult

logger = logging.getLogger(__name__)

CONFIDENCE_BANDS: Tuple[Tuple[str, float, float], ...] = (
    ("High", 0.7, 1.0),
    ("Medium", 0.5, 0.7),
    ("Low", 0.0, 0.5),
)
CALIBRATION_BUCKETS = 10
WINNERS = ("home", "draw", "away")


@dataclass(frozen=True)
class PredictionSnapshot:
    id: str
    division: str
    date: date
    home: str
    away: str
    predicted_at: datetime
    p_home_win: float
    p_draw: float
    p_away_win: float
    expected_home: float
    expected_away: float
    confidence: float
    predicted_winner: str
    season_id: Optional[str] = None
    actual_home_score: Optional[int] = None
    actual_away_score: Optional[int] = None
    actual_winner: Optional[str] = None
    correct: Optional[bool] = None

    @property
    def resolved(self) -> bool:
        return self.actual_winner is not None and self.correct is not None

    def __post_init__(self) -> None:
        if self.predicted_winner not in WINNERS:
            raise ValueError(f"predicted_winner must be one of {WINNERS}, got {self.predicted_winner!r}")
        if self.actual_winner is not None and self.actual_winner not in WINNERS:
            raise ValueError(f"actual_winner must be one of {WINNERS}, got {self.actual_winner!r}")

    @property
    def predicted_probability(self) -> float:
        """Probability the snapshot assigned to its own predicted winner."""

        return {"home": self.p_home_win, "draw": self.p_draw, "away": self.p_away_win}[self.predicted_winner]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "season_id": self.season_id,
            "division": self.division,
            "date": self.date.isoformat(),
            "home": self.home,
            "away": self.away,
            "predicted_at": self.predicted_at.isoformat(),
            "p_home_win": self.p_home_win,
            "p_draw": self.p_draw,
            "p_away_win": self.p_away_win,
            "expected_home": self.expected_home,
            "expected_away": self.expected_away,
            "confidence": self.confidence,
            "predicted_winner": self.predicted_winner,
            "actual_home_score": self.actual_home_score,
            "actual_away_score": self.actual_away_score,
            "actual_winner": self.actual_winner,
            "correct": self.correct,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PredictionSnapshot":
        predicted_at = raw.get("predicted_at")
        if isinstance(predicted_at, str):
            predicted_at = datetime.fromisoformat(predicted_at)
        elif predicted_at is None:
            predicted_at = datetime.now(timezone.utc)
        return cls(
            id=str(raw.get("id") or uuid4().hex),
            season_id=raw.get("season_id"),
            division=str(raw["division"]),
            date=parse_match_date(raw["date"]),
            home=str(raw["home"]),
            away=str(raw["away"]),
            predicted_at=predicted_at,
            p_home_win=float(raw["p_home_win"]),
            p_draw=float(raw["p_draw"]),
            p_away_win=float(raw["p_away_win"]),
            expected_home=float(raw.get("expected_home", 0.0)),
            expected_away=float(raw.get("expected_away", 0.0)),
            confidence=float(raw["confidence"]),
            predicted_winner=str(raw["predicted_winner"]),
            actual_home_score=raw.get("actual_home_score"),
            actual_away_score=raw.get("actual_away_score"),
            actual_winner=raw.get("actual_winner"),
            correct=raw.get("correct"),
        )


def snapshot_from_prediction(
    division: str,
    match_date: date,
    home: str,
    away: str,
    prediction: PredictionResult,
    *,
    season_id: Optional[str] = None,
    predicted_at: Optional[datetime] = None,
    snapshot_id: Optional[str] = None,
) -> PredictionSnapshot:
    return PredictionSnapshot(
        id=snapshot_id or uuid4().hex,
        season_id=season_id,
        division=division,
        date=match_date,
        home=home,
        away=away,
        predicted_at=predicted_at or datetime.now(timezone.utc),
        p_home_win=prediction.p_home_win,
        p_draw=prediction.p_draw,
        p_away_win=prediction.p_away_win,
        expected_home=prediction.expected_home,
        expected_away=prediction.expected_away,
        confidence=prediction.confidence,
        predicted_winner=prediction.predicted_winner,
    )


def resolve_prediction(snapshot: PredictionSnapshot, result: Result) -> PredictionSnapshot:
    """Return ``snapshot`` reconciled against the actual ``result``."""

    if (snapshot.division, snapshot.home, snapshot.away, snapshot.date) != (
        result.division,
        result.home,
        result.away,
        result.date,
    ):
        raise ConfigurationError(
            f"Result {result.division} {result.home} v {result.away} on {result.date} does not match prediction {snapshot.id}",
            division=snapshot.division,
        )
    actual = result.winner
    return replace(
        snapshot,
        actual_home_score=result.home_score,
        actual_away_score=result.away_score,
        actual_winner=actual,
        correct=snapshot.predicted_winner == actual,
    )


def resolve_predictions(
    snapshots: Iterable[PredictionSnapshot],
    results: Iterable[Result],
) -> List[PredictionSnapshot]:
    """Resolve every pending snapshot that has a matching result; others pass through."""

    by_key = {(r.division, r.date, r.home, r.away): r for r in results}
    resolved: List[PredictionSnapshot] = []
    count = 0
    for snapshot in snapshots:
        result = by_key.get((snapshot.division, snapshot.date, snapshot.home, snapshot.away))
        if result is None or snapshot.resolved:
            resolved.append(snapshot)
            continue
        resolved.append(resolve_prediction(snapshot, result))
        count += 1
    logger.info("Resolved %d prediction(s)", count)
    return resolved


@dataclass(frozen=True)
class DivisionAccuracy:
    division: str
    total: int
    correct: int
    accuracy: float


@dataclass(frozen=True)
class ConfidenceBand:
    label: str
    min_confidence: float
    max_confidence: float
    total: int
    correct: int
    accuracy: float


@dataclass(frozen=True)
class CalibrationBucket:
    min_confidence: float
    max_confidence: float
    predicted_rate: float
    actual_rate: float
    count: int


@dataclass(frozen=True)
class AccuracyStats:
    total_predictions: int
    correct_predictions: int
    accuracy_rate: float
    pending_predictions: int
    by_division: Tuple[DivisionAccuracy, ...] = ()
    by_confidence: Tuple[ConfidenceBand, ...] = ()
    calibration: Tuple[CalibrationBucket, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_predictions": self.total_predictions,
            "correct_predictions": self.correct_predictions,
            "accuracy_rate": self.accuracy_rate,
            "pending_predictions": self.pending_predictions,
            "by_division": [vars(item) for item in self.by_division],
            "by_confidence": [vars(item) for item in self.by_confidence],
            "calibration": [vars(item) for item in self.calibration],
        }


def _in_band(confidence: float, low: float, high: float) -> bool:
    # The top band is closed so a confidence of exactly 1.0 is counted.
    if high >= 1.0:
        return low <= confidence <= high
    return low <= confidence < high


def calculate_calibration(predictions: Sequence[PredictionSnapshot]) -> List[CalibrationBucket]:
    """Bucket resolved predictions into confidence deciles; empty buckets are dropped."""

    groups: Dict[int, List[PredictionSnapshot]] = {}
    for snapshot in predictions:
        if not snapshot.resolved:
            continue
        index = min(int(snapshot.confidence * CALIBRATION_BUCKETS), CALIBRATION_BUCKETS - 1)
        groups.setdefault(max(index, 0), []).append(snapshot)

    buckets = []
    for index in sorted(groups):
        members = groups[index]
        buckets.append(
            CalibrationBucket(
                min_confidence=index / CALIBRATION_BUCKETS,
                max_confidence=(index + 1) / CALIBRATION_BUCKETS,
                predicted_rate=sum(s.predicted_probability for s in members) / len(members),
                actual_rate=sum(1 for s in members if s.correct) / len(members),
                count=len(members),
            )
        )
    return buckets


def calculate_accuracy(predictions: Iterable[PredictionSnapshot]) -> AccuracyStats:
    """Summarise how often resolved predictions picked the right outcome.

    Pending snapshots are counted in ``pending_predictions`` and otherwise
    ignored. With nothing resolved every rate is ``0.0``.
    """

    snapshots = list(predictions)
    completed = [s for s in snapshots if s.resolved]
    pending = len(snapshots) - len(completed)
    if not completed:
        return AccuracyStats(0, 0, 0.0, pending)

    correct = sum(1 for s in completed if s.correct)

    divisions: Dict[str, List[int]] = {}
    for snapshot in completed:
        tally = divisions.setdefault(snapshot.division, [0, 0])
        tally[0] += 1
        tally[1] += int(bool(snapshot.correct))
    by_division = tuple(
        DivisionAccuracy(division=div, total=total, correct=hits, accuracy=hits / total)
        for div, (total, hits) in sorted(divisions.items())
    )

    by_confidence = []
    for label, low, high in CONFIDENCE_BANDS:
        members = [s for s in completed if _in_band(s.confidence, low, high)]
        hits = sum(1 for s in members if s.correct)
        by_confidence.append(
            ConfidenceBand(
                label=label,
                min_confidence=low,
                max_confidence=high,
                total=len(members),
                correct=hits,
                accuracy=hits / len(members) if members else 0.0,
            )
        )

    return AccuracyStats(
        total_predictions=len(completed),
        correct_predictions=correct,
        accuracy_rate=correct / len(completed),
        pending_predictions=pending,
        by_division=by_division,
        by_confidence=tuple(by_confidence),
        calibration=tuple(calculate_calibration(completed)),
    )


__all__ = [
    "AccuracyStats",
    "CONFIDENCE_BANDS",
    "CalibrationBucket",
    "ConfidenceBand",
    "DivisionAccuracy",
    "PredictionSnapshot",
    "calculate_accuracy",
    "calculate_calibration",
    "resolve_prediction",
    "resolve_predictions",
    "snapshot_from_prediction",
]
