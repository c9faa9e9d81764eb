from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from data import Result
from errors import ConfigurationError
from simulation import run_pred_sim
from tracking import (
    PredictionSnapshot,
    calculate_accuracy,
    calculate_calibration,
    resolve_prediction,
    resolve_predictions,
    snapshot_from_prediction,
)

PREDICTED_AT = datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc)


def _snapshot(idx: int, *, confidence: float = 0.6, correct=None, division: str = "D1") -> PredictionSnapshot:
    resolved = correct is not None
    return PredictionSnapshot(
        id=f"p{idx}",
        division=division,
        date=date(2025, 9, 1),
        home=f"H{idx}",
        away=f"A{idx}",
        predicted_at=PREDICTED_AT,
        p_home_win=0.6,
        p_draw=0.1,
        p_away_win=0.3,
        expected_home=5.5,
        expected_away=4.5,
        confidence=confidence,
        predicted_winner="home",
        actual_home_score=(6 if correct else 3) if resolved else None,
        actual_away_score=(4 if correct else 7) if resolved else None,
        actual_winner=("home" if correct else "away") if resolved else None,
        correct=correct,
    )


def test_accuracy_rate() -> None:
    snapshots = [_snapshot(i, correct=i < 7) for i in range(10)]
    stats = calculate_accuracy(snapshots)
    assert stats.total_predictions == 10
    assert stats.correct_predictions == 7
    assert stats.accuracy_rate == pytest.approx(0.7)
    assert stats.pending_predictions == 0


def test_pending_predictions_are_excluded() -> None:
    snapshots = [_snapshot(0, correct=True), _snapshot(1), _snapshot(2)]
    stats = calculate_accuracy(snapshots)
    assert stats.total_predictions == 1
    assert stats.pending_predictions == 2
    assert stats.accuracy_rate == 1.0


def test_no_resolved_predictions() -> None:
    stats = calculate_accuracy([_snapshot(0)])
    assert (stats.total_predictions, stats.correct_predictions, stats.accuracy_rate) == (0, 0, 0.0)
    assert stats.pending_predictions == 1
    assert calculate_accuracy([]).to_dict()["by_confidence"] == []


def test_confidence_band_edges() -> None:
    snapshots = [
        _snapshot(0, confidence=0.7, correct=True),
        _snapshot(1, confidence=1.0, correct=True),
        _snapshot(2, confidence=0.5, correct=False),
        _snapshot(3, confidence=0.4999, correct=True),
    ]
    bands = {band.label: band for band in calculate_accuracy(snapshots).by_confidence}
    assert bands["High"].total == 2
    assert bands["Medium"].total == 1
    assert bands["Medium"].accuracy == 0.0
    assert bands["Low"].total == 1


def test_calibration_drops_empty_buckets() -> None:
    snapshots = [
        _snapshot(0, confidence=0.05, correct=False),
        _snapshot(1, confidence=0.92, correct=True),
        _snapshot(2, confidence=0.95, correct=False),
        _snapshot(3, confidence=1.0, correct=True),
        _snapshot(4, confidence=0.95),
    ]
    buckets = calculate_calibration(snapshots)
    assert [b.count for b in buckets] == [1, 3]
    top = buckets[-1]
    assert (top.min_confidence, top.max_confidence) == (0.9, 1.0)
    assert top.actual_rate == pytest.approx(2 / 3)
    assert top.predicted_rate == pytest.approx(0.6)


def test_by_division_breakdown() -> None:
    snapshots = [
        _snapshot(0, correct=True, division="D1"),
        _snapshot(1, correct=False, division="D2"),
        _snapshot(2, correct=True, division="D2"),
    ]
    by_division = {item.division: item for item in calculate_accuracy(snapshots).by_division}
    assert by_division["D1"].accuracy == 1.0
    assert by_division["D2"].accuracy == 0.5


def test_resolve_prediction_against_result() -> None:
    snapshot = _snapshot(0)
    resolved = resolve_prediction(snapshot, Result("D1", date(2025, 9, 1), "H0", "A0", 4, 6))
    assert resolved.actual_winner == "away"
    assert resolved.correct is False
    assert resolved.resolved and not snapshot.resolved

    with pytest.raises(ConfigurationError):
        resolve_prediction(snapshot, Result("D1", date(2025, 9, 8), "H0", "A0", 4, 6))


def test_resolve_predictions_leaves_unmatched_pending() -> None:
    snapshots = [_snapshot(0), _snapshot(1)]
    results = [Result("D1", date(2025, 9, 1), "H1", "A1", 5, 5)]
    resolved = resolve_predictions(snapshots, results)
    assert not resolved[0].resolved
    assert resolved[1].actual_winner == "draw"
    assert resolved[1].correct is False


def test_snapshot_round_trips_through_dict() -> None:
    prediction = run_pred_sim(0.6, trials=500, seed=1)
    snapshot = snapshot_from_prediction(
        "D1", date(2025, 9, 15), "Anchor", "Crown", prediction, predicted_at=PREDICTED_AT, snapshot_id="abc"
    )
    assert snapshot.predicted_winner == prediction.predicted_winner
    assert PredictionSnapshot.from_dict(snapshot.to_dict()) == snapshot


def test_resolution_respects_division() -> None:
    snapshot = _snapshot(0)
    other_division = Result("D2", date(2025, 9, 1), "H0", "A0", 3, 7)
    resolved = resolve_predictions([snapshot], [other_division])
    assert not resolved[0].resolved
    assert resolved[0].actual_winner is None

    with pytest.raises(ConfigurationError):
        resolve_prediction(snapshot, other_division)

    both = resolve_predictions([snapshot], [other_division, Result("D1", date(2025, 9, 1), "H0", "A0", 8, 2)])
    assert both[0].actual_winner == "home"
    assert both[0].correct is True


@pytest.mark.parametrize("field", ["predicted_winner", "actual_winner"])
def test_unknown_winner_label_rejected(field) -> None:
    raw = _snapshot(0, correct=True).to_dict()
    raw[field] = "Anchor"
    with pytest.raises(ValueError):
        PredictionSnapshot.from_dict(raw)
