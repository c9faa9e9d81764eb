from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from data import Result, SquadOverride, WhatIfResult
from errors import ConfigurationError
from matchup import predict_frame
from simulation import predict_fixture, prepare_season, run_pred_sim, simulate_season
from standings import calc_standings


def test_single_frame_matches_analytic_probability() -> None:
    p = predict_frame(1.0, 0.0)
    result = run_pred_sim(p, frames=1, trials=10_000, seed=1)
    assert result.p_home_win == pytest.approx(p, abs=0.03)
    assert result.p_draw == 0.0
    assert result.confidence >= 0.0
    assert result.predicted_winner == "home"


def test_stronger_home_side_single_frame() -> None:
    p = predict_frame(0.6, 0.4)
    assert p > 0.5
    result = run_pred_sim(p, frames=1, trials=10_000, seed=11)
    assert result.p_home_win == pytest.approx(p, abs=0.03)
    assert result.p_away_win == pytest.approx(1.0 - p, abs=0.03)
    assert result.p_draw == 0.0
    assert result.predicted_winner == "home"


def test_prediction_is_reproducible_with_seed() -> None:
    first = run_pred_sim(0.55, frames=10, trials=2000, seed=42)
    second = run_pred_sim(0.55, frames=10, trials=2000, seed=42)
    assert first == second
    assert first.p_home_win + first.p_draw + first.p_away_win == pytest.approx(1.0)
    assert first.expected_home == pytest.approx(5.5)
    assert 0 < len(first.top_scores) <= 5
    probabilities = [line.probability for line in first.top_scores]
    assert probabilities == sorted(probabilities, reverse=True)


@pytest.mark.parametrize("kwargs", [{"trials": 0}, {"frames": 0}, {"trials": -5}])
def test_invalid_simulation_sizes_rejected(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        run_pred_sim(0.5, **kwargs)


def test_predict_fixture_carries_baseline(sample_sources) -> None:
    plain = predict_fixture("D1", "Bell", "Crown", sample_sources, seed=3, trials=1000)
    assert plain.baseline is not None
    assert plain.baseline.probabilities == plain.probabilities

    boosted = predict_fixture(
        "D1",
        "Bell",
        "Crown",
        sample_sources,
        squad_overrides={"Bell": SquadOverride(added=frozenset({"Zed"}))},
        seed=3,
        trials=1000,
    )
    assert boosted.p_frame > boosted.baseline.p_frame
    assert boosted.baseline.p_frame == plain.p_frame


def test_predict_fixture_rejects_bad_teams(sample_sources) -> None:
    with pytest.raises(ConfigurationError):
        predict_fixture("D1", "Anchor", "Nobody", sample_sources)
    with pytest.raises(ConfigurationError):
        predict_fixture("D1", "Anchor", "Anchor", sample_sources)


def test_season_is_deterministic_for_a_seed(sample_sources) -> None:
    first = simulate_season("D1", sample_sources, trials=300, seed=9)
    second = simulate_season("D1", sample_sources, trials=300, seed=9)
    assert first.to_dict() == second.to_dict()


def test_worker_count_does_not_change_results(sample_sources) -> None:
    serial = simulate_season("D1", sample_sources, trials=400, seed=11, workers=1, chunk_size=50)
    threaded = simulate_season("D1", sample_sources, trials=400, seed=11, workers=4, chunk_size=50)
    assert serial.to_dict() == threaded.to_dict()


def test_position_probabilities_are_distributions(sample_sources) -> None:
    season = simulate_season("D1", sample_sources, trials=500, seed=5)
    assert len(season.teams) == 4
    for projection in season.teams:
        assert sum(projection.position_probabilities) == pytest.approx(1.0)
        assert projection.avg_points >= projection.current_points
    for position in range(4):
        assert sum(p.position_probabilities[position] for p in season.teams) == pytest.approx(1.0)
    assert sum(p.p_title for p in season.teams) == pytest.approx(1.0)
    for outcome in season.fixtures:
        assert outcome.p_home_win + outcome.p_draw + outcome.p_away_win == pytest.approx(1.0)


def test_forcing_every_fixture_reproduces_final_table(sample_sources) -> None:
    what_ifs = [
        WhatIfResult("Anchor", "Crown", 4, 6),
        WhatIfResult("Bell", "Dragon", 5, 5),
        WhatIfResult("Crown", "Anchor", 8, 2),
        WhatIfResult("Dragon", "Bell", 3, 7),
    ]
    season = simulate_season("D1", sample_sources, what_if_results=what_ifs, trials=50, seed=1)
    assert season.fixtures == ()

    played = {
        ("Anchor", "Crown"): date(2025, 9, 15),
        ("Bell", "Dragon"): date(2025, 9, 15),
        ("Crown", "Anchor"): date(2025, 9, 22),
        ("Dragon", "Bell"): date(2025, 9, 22),
    }
    extra = tuple(
        Result("D1", played[w.key], w.home, w.away, w.home_score, w.away_score) for w in what_ifs
    )
    final = calc_standings("D1", replace(sample_sources, results=sample_sources.results + extra))
    for entry in final:
        projection = season.projection(entry.team)
        assert projection.position_probabilities[entry.position - 1] == 1.0
        assert projection.avg_points == entry.points


def test_current_points_ignore_what_ifs(sample_sources) -> None:
    setup = prepare_season(
        "D1", sample_sources, what_if_results=[WhatIfResult("Bell", "Dragon", 10, 0)]
    )
    assert setup.current_points["Bell"] == 2
    assert len(setup.fixtures) == 3
    assert int(setup.base_points[setup.team_index["Bell"]]) == 4


def test_unknown_what_if_team_rejected(sample_sources) -> None:
    with pytest.raises(ConfigurationError):
        simulate_season("D1", sample_sources, what_if_results=[WhatIfResult("Anchor", "Ghost", 6, 4)], trials=10)


def test_unmatched_what_if_is_ignored(sample_sources) -> None:
    # Anchor v Bell has already been played
    baseline = simulate_season("D1", sample_sources, trials=200, seed=4)
    season = simulate_season(
        "D1", sample_sources, what_if_results=[WhatIfResult("Anchor", "Bell", 0, 10)], trials=200, seed=4
    )
    assert season.to_dict() == baseline.to_dict()


def test_unknown_metric_rejected(sample_sources) -> None:
    season = simulate_season("D1", sample_sources, trials=20, seed=2)
    with pytest.raises(ConfigurationError):
        season.metric("Anchor", "promotion")
