"""Team strength ratings and squad-change adjustments.

Strengths live on a bounded scale: a team that wins every frame rates ``+2``,
one that loses every frame ``-2``, and an average side ``0``. Early in the
season (fewer than ``prior_blend_matches`` matches) a team's rating is blended
with a prior derived from its rostered players' frame records, so a couple of
lucky results do not dominate the projection.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from config import (
    BAYESIAN_K,
    BAYESIAN_PRIOR,
    DEFAULT_STRENGTH,
    STRENGTH_SCALE,
    UNKNOWN_PLAYER_PRIOR,
    settings,
)
from data import DataSources, PlayerStats, SquadOverride
from errors import InsufficientDataError
from fixtures import remaining_fixtures, team_frame_record

logger = logging.getLogger(__name__)

STRENGTH_BOUND = STRENGTH_SCALE / 2.0


def rate_to_strength(rate: float) -> float:
    """Map a frame win rate in [0, 1] onto the strength scale."""

    return float(np.clip((rate - 0.5) * STRENGTH_SCALE, -STRENGTH_BOUND, STRENGTH_BOUND))


def bayesian_rating(stats: PlayerStats) -> float:
    """Frame win rate shrunk toward 50% by ``BAYESIAN_K`` phantom frames."""

    return (stats.won + BAYESIAN_K * BAYESIAN_PRIOR) / (stats.played + BAYESIAN_K)


def _roster_prior(division: str, team: str, ds: DataSources) -> Optional[float]:
    roster = ds.roster(division, team)
    if not roster:
        return None

    frames_won = 0.0
    frames_played = 0.0
    for name in roster:
        stats = ds.player_stats(name)
        if stats.played > 0:
            frames_won += stats.won
            frames_played += stats.played
        else:
            frames_won += UNKNOWN_PLAYER_PRIOR * BAYESIAN_K
            frames_played += BAYESIAN_K
    if frames_played == 0:
        return None
    return rate_to_strength(frames_won / frames_played)


def _team_strength(
    division: str,
    team: str,
    record: Mapping[str, int],
    ds: DataSources,
    blend_matches: int,
) -> float:
    frames_played = record["frames_played"]
    current = rate_to_strength(record["frames_won"] / frames_played) if frames_played else None
    weight = min(1.0, record["matches"] / blend_matches) if blend_matches > 0 else 1.0
    if current is not None and weight >= 1.0:
        return current

    prior = _roster_prior(division, team, ds)
    if current is None and prior is None:
        raise InsufficientDataError(team, division)
    if prior is None:
        return current
    if current is None:
        return prior
    return (1.0 - weight) * prior + weight * current


def calc_team_strength(
    division: str,
    ds: DataSources,
    *,
    prior_blend_matches: Optional[int] = None,
    strict: bool = False,
) -> Dict[str, float]:
    """Strength rating for every team in ``division``.

    Teams with neither frames nor roster data rate ``DEFAULT_STRENGTH`` unless
    ``strict`` is set, in which case :class:`errors.InsufficientDataError` is
    raised for the first such team.
    """

    blend = int(prior_blend_matches if prior_blend_matches is not None else settings.get("prior_blend_matches"))
    records = team_frame_record(division, ds)
    strengths: Dict[str, float] = {}
    for team in ds.division(division).teams:
        try:
            strengths[team] = _team_strength(division, team, records[team], ds, blend)
        except InsufficientDataError as exc:
            if strict:
                raise
            logger.info("%s; using default strength %.2f", exc, DEFAULT_STRENGTH)
            strengths[team] = DEFAULT_STRENGTH
    return strengths


# Squad adjustments -------------------------------------------------------


def top_n_players(ratings: Mapping[str, float], n: int) -> List[Tuple[str, float]]:
    """The ``n`` best-rated players, ties broken by name. Fewer than ``n`` returns all."""

    ordered = sorted(ratings.items(), key=lambda item: (-item[1], item[0]))
    return ordered[: max(0, n)]


def division_average_rating(division: str, ds: DataSources) -> float:
    ratings = [
        bayesian_rating(ds.player_stats(name))
        for team in ds.division(division).teams
        for name in ds.roster(division, team)
        if ds.player_stats(name).played > 0
    ]
    if not ratings:
        return BAYESIAN_PRIOR
    return float(np.mean(ratings))


def squad_ratings(
    division: str,
    team: str,
    ds: DataSources,
    override: Optional[SquadOverride] = None,
    fallback_rating: Optional[float] = None,
) -> Dict[str, float]:
    """Ratings of the players a team can field, optionally with an override applied.

    Rostered players without frames are left out. Added players without frames
    are rated at ``fallback_rating`` (the division average by default).
    """

    ratings = {
        name: bayesian_rating(ds.player_stats(name))
        for name in ds.roster(division, team)
        if ds.player_stats(name).played > 0
    }
    if override is None or override.is_empty:
        return ratings

    for name in override.removed:
        ratings.pop(name, None)
    for name in override.added:
        stats = ds.player_stats(name)
        if stats.played > 0:
            ratings[name] = bayesian_rating(stats)
        else:
            if fallback_rating is None:
                fallback_rating = division_average_rating(division, ds)
            ratings[name] = fallback_rating
    return ratings


def _mean_top_n(ratings: Mapping[str, float], n: int) -> Optional[float]:
    chosen = top_n_players(ratings, n)
    if not chosen:
        return None
    return float(np.mean([rating for _, rating in chosen]))


def calc_strength_adjustments(
    division: str,
    squad_overrides: Optional[Mapping[str, SquadOverride]],
    top_n: Optional[int],
    ds: DataSources,
) -> Dict[str, float]:
    """Strength delta per team caused by ``squad_overrides``.

    Every team of the division is present; teams without an override (or whose
    squad has no rated players to compare against) get ``0.0``.
    """

    n = int(top_n if top_n is not None else settings.get("squad_top_n"))
    overrides = squad_overrides or {}
    teams = ds.division(division).teams
    adjustments = {team: 0.0 for team in teams}

    fallback: Optional[float] = None
    for team in teams:
        override = overrides.get(team)
        if override is None or override.is_empty:
            continue
        if fallback is None:
            fallback = division_average_rating(division, ds)

        original = _mean_top_n(squad_ratings(division, team, ds), n)
        modified = _mean_top_n(squad_ratings(division, team, ds, override, fallback), n)
        if original is None or modified is None:
            logger.debug("No rated players to compare for %s in %s; adjustment left at 0", team, division)
            continue
        adjustments[team] = (modified - original) * STRENGTH_SCALE
    return adjustments


def adjusted_strengths(
    division: str,
    ds: DataSources,
    squad_overrides: Optional[Mapping[str, SquadOverride]] = None,
    top_n: Optional[int] = None,
    *,
    strict: bool = False,
) -> Dict[str, float]:
    base = calc_team_strength(division, ds, strict=strict)
    if not squad_overrides:
        return base
    deltas = calc_strength_adjustments(division, squad_overrides, top_n, ds)
    return {team: base[team] + deltas.get(team, 0.0) for team in base}


def calc_remaining_schedule_strength(
    division: str,
    ds: DataSources,
    strengths: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """Mean strength of each team's remaining opponents (0.0 with none left)."""

    strengths = strengths if strengths is not None else calc_team_strength(division, ds)
    opponents: Dict[str, List[float]] = {team: [] for team in ds.division(division).teams}
    for fixture in remaining_fixtures(division, ds):
        opponents[fixture.home].append(strengths.get(fixture.away, DEFAULT_STRENGTH))
        opponents[fixture.away].append(strengths.get(fixture.home, DEFAULT_STRENGTH))
    return {
        team: float(np.mean(values)) if values else 0.0
        for team, values in opponents.items()
    }


__all__ = [
    "STRENGTH_BOUND",
    "adjusted_strengths",
    "bayesian_rating",
    "calc_remaining_schedule_strength",
    "calc_strength_adjustments",
    "calc_team_strength",
    "division_average_rating",
    "rate_to_strength",
    "squad_ratings",
    "top_n_players",
]
