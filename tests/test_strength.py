from __future__ import annotations

import pytest

from config import DEFAULT_STRENGTH
from data import PlayerStats, SquadOverride
from errors import InsufficientDataError
from strength import (
    bayesian_rating,
    calc_remaining_schedule_strength,
    calc_strength_adjustments,
    calc_team_strength,
    division_average_rating,
    rate_to_strength,
    squad_ratings,
    top_n_players,
)


def test_rate_to_strength_is_bounded() -> None:
    assert rate_to_strength(0.5) == 0.0
    assert rate_to_strength(1.0) == 2.0
    assert rate_to_strength(0.0) == -2.0
    assert rate_to_strength(0.75) == pytest.approx(1.0)


def test_bayesian_rating_shrinks_small_samples() -> None:
    assert bayesian_rating(PlayerStats(0, 0)) == 0.5
    assert bayesian_rating(PlayerStats(6, 6)) == pytest.approx(0.75)
    assert bayesian_rating(PlayerStats(60, 60)) > bayesian_rating(PlayerStats(6, 6))


def test_current_form_only_once_blend_window_passed(sample_sources) -> None:
    strengths = calc_team_strength("D1", sample_sources, prior_blend_matches=1)
    assert strengths["Anchor"] == pytest.approx(1.0)  # 15 of 20 frames
    assert strengths["Dragon"] == pytest.approx(-0.6)  # 7 of 20 frames
    assert strengths["Bell"] == pytest.approx(strengths["Crown"])


def test_early_season_blends_roster_prior(sample_sources) -> None:
    strengths = calc_team_strength("D1", sample_sources)
    # two matches played: 20% current form, 80% roster prior
    prior = ((35 / 60) - 0.5) * 4
    assert strengths["Anchor"] == pytest.approx(0.8 * prior + 0.2 * 1.0)


def test_unknown_players_use_below_average_prior(sample_sources) -> None:
    strengths = calc_team_strength("D1", sample_sources)
    # Dan has no frames: 6 phantom frames at 45%
    prior = ((9 + 0.45 * 6) / (30 + 6) - 0.5) * 4
    current = -0.6
    assert strengths["Dragon"] == pytest.approx(0.8 * prior + 0.2 * current)


def test_teams_without_data_fall_back_to_default(sample_sources) -> None:
    strengths = calc_team_strength("D2", sample_sources)
    assert strengths == {"Eagle": DEFAULT_STRENGTH, "Fox": DEFAULT_STRENGTH}


def test_strict_mode_reports_missing_data(sample_sources) -> None:
    with pytest.raises(InsufficientDataError) as excinfo:
        calc_team_strength("D2", sample_sources, strict=True)
    assert excinfo.value.division == "D2"


def test_top_n_players_breaks_ties_by_name() -> None:
    ratings = {"bob": 0.5, "amy": 0.5, "cal": 0.6}
    assert top_n_players(ratings, 2) == [("cal", 0.6), ("amy", 0.5)]
    assert len(top_n_players(ratings, 10)) == 3


def test_no_overrides_means_no_adjustment(sample_sources) -> None:
    adjustments = calc_strength_adjustments("D1", {}, 5, sample_sources)
    assert adjustments == {"Anchor": 0.0, "Bell": 0.0, "Crown": 0.0, "Dragon": 0.0}


def test_add_then_remove_cancels_exactly(sample_sources) -> None:
    override = SquadOverride().add("Zed").remove("Zed")
    assert override.is_empty
    adjustments = calc_strength_adjustments("D1", {"Bell": override}, 2, sample_sources)
    assert adjustments["Bell"] == 0.0

    removal = SquadOverride().remove("Ben").add("Ben")
    adjustments = calc_strength_adjustments("D1", {"Bell": removal}, 2, sample_sources)
    assert adjustments["Bell"] == 0.0


def test_adding_stronger_player_raises_strength(sample_sources) -> None:
    override = SquadOverride(added=frozenset({"Zed"}))
    adjustments = calc_strength_adjustments("D1", {"Bell": override}, 2, sample_sources)
    ben, zed = bayesian_rating(PlayerStats(12, 30)), bayesian_rating(PlayerStats(25, 30))
    # Zed displaces Ben from the top two
    assert adjustments["Bell"] == pytest.approx((zed - ben) / 2 * 4)
    assert adjustments["Anchor"] == 0.0


def test_removing_player_changes_mean(sample_sources) -> None:
    override = SquadOverride(removed=frozenset({"Bo"}))
    adjustments = calc_strength_adjustments("D1", {"Bell": override}, 5, sample_sources)
    assert adjustments["Bell"] < 0


def test_added_player_without_stats_gets_division_average(sample_sources) -> None:
    override = SquadOverride(added=frozenset({"Newbie"}))
    ratings = squad_ratings("D1", "Bell", sample_sources, override)
    assert ratings["Newbie"] == pytest.approx(division_average_rating("D1", sample_sources))
    assert division_average_rating("D1", sample_sources) == pytest.approx(3.25 / 7)


def test_remaining_schedule_strength(sample_sources) -> None:
    strengths = {"Anchor": 1.0, "Bell": 0.0, "Crown": -1.0, "Dragon": 0.5}
    schedule = calc_remaining_schedule_strength("D1", sample_sources, strengths)
    assert schedule["Anchor"] == pytest.approx(-1.0)
    assert schedule["Bell"] == pytest.approx(0.5)
    assert schedule["Crown"] == pytest.approx(1.0)
    assert schedule["Dragon"] == pytest.approx(0.0)
