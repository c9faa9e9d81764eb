"""How much each remaining fixture matters to a team's finishing position.

For every candidate fixture the season is simulated twice with the same seed:
once with the fixture forced to a home win and once to an away win. The
importance is the absolute change in the team's target probability between
the two branches. Because both branches share their random draws, the
difference comes from the forced result alone.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from cache import ResultCache, build_cache_key, importance_cache
from config import FORCED_WIN_SHARE, settings
from data import DataSources, Fixture, SquadOverride, WhatIfResult
from errors import ConfigurationError
from simulation import METRICS, SeasonSetup, prepare_season, run_season

logger = logging.getLogger(__name__)

SCOPES = ("team", "division")


@dataclass(frozen=True)
class FixtureImportance:
    home: str
    away: str
    date: date
    involves_team: bool
    importance: float
    p_if_home_win: float
    p_if_away_win: float
    p_if_win: Optional[float] = None
    p_if_loss: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "home": self.home,
            "away": self.away,
            "date": self.date.isoformat(),
            "involves_team": self.involves_team,
            "importance": self.importance,
            "p_if_home_win": self.p_if_home_win,
            "p_if_away_win": self.p_if_away_win,
            "p_if_win": self.p_if_win,
            "p_if_loss": self.p_if_loss,
        }


def forced_scores(frames: int) -> Tuple[int, int]:
    """Winning and losing frame counts used for a forced result."""

    winner = min(frames, math.ceil(FORCED_WIN_SHARE * frames))
    return winner, frames - winner


def _evaluate_fixture(
    setup: SeasonSetup,
    fixture: Fixture,
    team: str,
    *,
    metric: str,
    trials: int,
    seed: Optional[int],
    top_positions: Optional[int],
    bottom_positions: Optional[int],
) -> FixtureImportance:
    win, loss = forced_scores(setup.frames)
    branches = {}
    for label, (home_score, away_score) in (("home", (win, loss)), ("away", (loss, win))):
        forced = setup.fix_result(fixture, home_score, away_score)
        season = run_season(
            forced,
            trials=trials,
            seed=seed,
            top_positions=top_positions,
            bottom_positions=bottom_positions,
        )
        branches[label] = season.metric(team, metric)

    p_home, p_away = branches["home"], branches["away"]
    involves = fixture.involves(team)
    p_if_win = p_if_loss = None
    if involves:
        p_if_win, p_if_loss = (p_home, p_away) if fixture.home == team else (p_away, p_home)
    return FixtureImportance(
        home=fixture.home,
        away=fixture.away,
        date=fixture.date,
        involves_team=involves,
        importance=abs(p_home - p_away),
        p_if_home_win=p_home,
        p_if_away_win=p_away,
        p_if_win=p_if_win,
        p_if_loss=p_if_loss,
    )


def calc_fixture_importance(
    division: str,
    team: str,
    squad_overrides: Optional[Mapping[str, SquadOverride]],
    top_n: Optional[int],
    what_if_results: Optional[Sequence[WhatIfResult]],
    ds: DataSources,
    *,
    seed: Optional[int] = None,
    trials: Optional[int] = None,
    frames: Optional[int] = None,
    top_positions: Optional[int] = None,
    bottom_positions: Optional[int] = None,
    metric: str = "top",
    scope: str = "team",
    workers: int = 1,
    cache: Optional[ResultCache] = importance_cache,
) -> List[FixtureImportance]:
    """Rank the remaining fixtures by their effect on ``team``'s ``metric``.

    ``metric`` is ``"top"`` (finish in the top ``top_positions``), ``"title"`` or
    ``"bottom"`` (finish in the bottom ``bottom_positions``). ``scope="team"``
    looks at the team's own fixtures only, ``scope="division"`` at every open
    fixture. Fixtures already decided by a what-if are skipped.

    Seeded results are memoised in ``cache`` (pass ``None`` to bypass it).
    """

    ds.require_team(division, team)
    if metric not in METRICS:
        raise ConfigurationError(f"Unknown metric '{metric}'; expected one of {METRICS}")
    if scope not in SCOPES:
        raise ConfigurationError(f"Unknown scope '{scope}'; expected one of {SCOPES}")
    trials = int(trials if trials is not None else settings.get("season_trials"))
    if trials <= 0:
        raise ConfigurationError(f"trials must be positive, got {trials}")
    if workers <= 0:
        raise ConfigurationError(f"workers must be positive, got {workers}")

    key = None
    if cache is not None and seed is not None:
        key = build_cache_key(
            "fixture_importance",
            fingerprint=ds.fingerprint,
            division=division,
            team=team,
            squad_overrides=squad_overrides,
            what_if_results=what_if_results,
            options={
                "seed": seed,
                "trials": trials,
                "frames": frames if frames is not None else settings.get("frames_per_match"),
                "home_advantage": settings.get("home_advantage"),
                "prior_blend_matches": settings.get("prior_blend_matches"),
                "chunk_size": settings.get("simulation_chunk_size"),
                "top_n": top_n if top_n is not None else settings.get("squad_top_n"),
                "top_positions": top_positions if top_positions is not None else settings.get("top_positions"),
                "bottom_positions": (
                    bottom_positions if bottom_positions is not None else settings.get("bottom_positions")
                ),
                "scoring": [
                    settings.get("points_home_win"),
                    settings.get("points_away_win"),
                    settings.get("points_draw"),
                ],
                "metric": metric,
                "scope": scope,
            },
        )
        cached = cache.get(key)
        if cached is not None:
            logger.debug("Fixture importance cache hit for %s/%s", division, team)
            return list(cached)

    setup = prepare_season(
        division,
        ds,
        squad_overrides=squad_overrides,
        top_n=top_n,
        what_if_results=what_if_results,
        frames=frames,
    )
    candidates = [f for f in setup.fixtures if scope == "division" or f.involves(team)]

    def work(fixture: Fixture) -> FixtureImportance:
        return _evaluate_fixture(
            setup,
            fixture,
            team,
            metric=metric,
            trials=trials,
            seed=seed,
            top_positions=top_positions,
            bottom_positions=bottom_positions,
        )

    if workers > 1 and len(candidates) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            ranked = list(pool.map(work, candidates))
    else:
        ranked = [work(fixture) for fixture in candidates]

    ranked.sort(key=lambda item: (-item.importance, item.date, item.home, item.away))
    logger.info(
        "Fixture importance for %s in %s: %d fixture(s), %d trials per branch",
        team,
        division,
        len(ranked),
        trials,
    )
    if key is not None:
        cache.set(key, tuple(ranked))
    return ranked


__all__ = ["FixtureImportance", "SCOPES", "calc_fixture_importance", "forced_scores"]
