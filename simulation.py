"""Monte Carlo match and season simulation.

Two entry points matter to callers:

* :func:`run_pred_sim` simulates one fixture many times from a frame
  probability and summarises outcome odds and likely scorelines.
* :func:`simulate_season` plays out every remaining fixture of a division many
  times and reports finishing-position probabilities per team.

Season runs are split into fixed-size chunks of trials. Each chunk draws from
its own child of ``SeedSequence(seed)``, so a given seed produces the same
numbers whether the chunks run serially or on a thread pool.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from config import TOP_SCORELINES, settings
from data import DataSources, Fixture, SquadOverride, WhatIfResult
from errors import ConfigurationError
from fixtures import remaining_fixtures, split_what_ifs
from matchup import (
    check_probabilities,
    confidence_from_probabilities,
    draws_possible,
    predict_frame,
    predicted_winner,
)
from standings import ScoringRule, tally_records
from strength import adjusted_strengths, calc_strength_adjustments, calc_team_strength

logger = logging.getLogger(__name__)


def _require_positive(name: str, value: int) -> int:
    value = int(value)
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def _knob(value: Any, name: str) -> Any:
    return settings.get(name) if value is None else value


# Single fixture ---------------------------------------------------------


@dataclass(frozen=True)
class ScoreLine:
    home: int
    away: int
    probability: float

    @property
    def score(self) -> str:
        return f"{self.home}-{self.away}"

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "home": self.home, "away": self.away, "probability": self.probability}


@dataclass(frozen=True)
class PredictionResult:
    p_home_win: float
    p_draw: float
    p_away_win: float
    expected_home: float
    expected_away: float
    confidence: float
    predicted_winner: str
    p_frame: float
    frames: int
    trials: int
    top_scores: Tuple[ScoreLine, ...] = ()
    baseline: Optional["PredictionResult"] = None

    @property
    def probabilities(self) -> Tuple[float, float, float]:
        return (self.p_home_win, self.p_draw, self.p_away_win)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "p_home_win": self.p_home_win,
            "p_draw": self.p_draw,
            "p_away_win": self.p_away_win,
            "expected_home": self.expected_home,
            "expected_away": self.expected_away,
            "confidence": self.confidence,
            "predicted_winner": self.predicted_winner,
            "p_frame": self.p_frame,
            "frames": self.frames,
            "trials": self.trials,
            "top_scores": [line.to_dict() for line in self.top_scores],
            "baseline": self.baseline.to_dict() if self.baseline is not None else None,
        }


def run_pred_sim(
    p_frame: float,
    *,
    frames: Optional[int] = None,
    trials: Optional[int] = None,
    seed: Optional[int] = None,
) -> PredictionResult:
    """Simulate one fixture ``trials`` times with home frame probability ``p_frame``."""

    frames = _require_positive("frames", _knob(frames, "frames_per_match"))
    trials = _require_positive("trials", _knob(trials, "prediction_trials"))
    if not 0.0 <= p_frame <= 1.0:
        raise ConfigurationError(f"p_frame must be within [0, 1], got {p_frame}")

    rng = np.random.default_rng(seed)
    home_frames = rng.binomial(frames, p_frame, size=trials)

    home_wins = int(np.count_nonzero(2 * home_frames > frames))
    away_wins = int(np.count_nonzero(2 * home_frames < frames))
    draws = trials - home_wins - away_wins
    probs = (home_wins / trials, draws / trials, away_wins / trials)
    check_probabilities(probs)

    counts = np.bincount(home_frames, minlength=frames + 1)
    ranked = sorted(
        (int(h) for h in np.flatnonzero(counts)),
        key=lambda h: (-int(counts[h]), -h),
    )
    top_scores = tuple(
        ScoreLine(home=h, away=frames - h, probability=int(counts[h]) / trials)
        for h in ranked[:TOP_SCORELINES]
    )

    outcomes = 3 if draws_possible(frames) else 2
    return PredictionResult(
        p_home_win=probs[0],
        p_draw=probs[1],
        p_away_win=probs[2],
        expected_home=p_frame * frames,
        expected_away=(1.0 - p_frame) * frames,
        confidence=confidence_from_probabilities(probs, outcomes),
        predicted_winner=predicted_winner(*probs),
        p_frame=p_frame,
        frames=frames,
        trials=trials,
        top_scores=top_scores,
    )


def predict_fixture(
    division: str,
    home: str,
    away: str,
    ds: DataSources,
    *,
    squad_overrides: Optional[Mapping[str, SquadOverride]] = None,
    top_n: Optional[int] = None,
    seed: Optional[int] = None,
    trials: Optional[int] = None,
    frames: Optional[int] = None,
    home_advantage: Optional[float] = None,
) -> PredictionResult:
    """Predict ``home`` v ``away`` with squad overrides applied.

    The returned result carries a ``baseline`` run without overrides that uses
    the same seed, so the two differ only by the squad change.
    """

    ds.require_team(division, home)
    ds.require_team(division, away)
    if home == away:
        raise ConfigurationError(f"A team cannot play itself: '{home}'", division=division, team=home)

    advantage = float(_knob(home_advantage, "home_advantage"))
    base = calc_team_strength(division, ds)
    deltas = calc_strength_adjustments(division, squad_overrides, top_n, ds)

    p_base = predict_frame(base[home], base[away], advantage)
    p_adjusted = predict_frame(base[home] + deltas[home], base[away] + deltas[away], advantage)

    baseline = run_pred_sim(p_base, frames=frames, trials=trials, seed=seed)
    adjusted = run_pred_sim(p_adjusted, frames=frames, trials=trials, seed=seed)
    return replace(adjusted, baseline=baseline)


# Season -----------------------------------------------------------------


@dataclass(frozen=True)
class TeamProjection:
    team: str
    current_points: int
    avg_points: float
    p_title: float
    p_top: float
    p_bottom: float
    position_probabilities: Tuple[float, ...]

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["position_probabilities"] = list(self.position_probabilities)
        return payload


@dataclass(frozen=True)
class FixtureOutcome:
    home: str
    away: str
    date: date
    p_home_win: float
    p_draw: float
    p_away_win: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "home": self.home,
            "away": self.away,
            "date": self.date.isoformat(),
            "p_home_win": self.p_home_win,
            "p_draw": self.p_draw,
            "p_away_win": self.p_away_win,
        }


METRICS = ("top", "title", "bottom")


@dataclass(frozen=True)
class SeasonSimulation:
    division: str
    trials: int
    seed: Optional[int]
    teams: Tuple[TeamProjection, ...]
    fixtures: Tuple[FixtureOutcome, ...] = ()

    def projection(self, team: str) -> TeamProjection:
        for entry in self.teams:
            if entry.team == team:
                return entry
        raise ConfigurationError(f"Team '{team}' is not in division '{self.division}'", division=self.division, team=team)

    def metric(self, team: str, metric: str = "top") -> float:
        entry = self.projection(team)
        if metric == "top":
            return entry.p_top
        if metric == "title":
            return entry.p_title
        if metric == "bottom":
            return entry.p_bottom
        raise ConfigurationError(f"Unknown metric '{metric}'; expected one of {METRICS}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "division": self.division,
            "trials": self.trials,
            "seed": self.seed,
            "teams": [entry.to_dict() for entry in self.teams],
            "fixtures": [fixture.to_dict() for fixture in self.fixtures],
        }


@dataclass(frozen=True, eq=False)
class SeasonSetup:
    """Everything a season run needs, resolved once from the data sources."""

    division: str
    teams: Tuple[str, ...]
    frames: int
    scoring: ScoringRule
    strengths: Mapping[str, float]
    current_points: Mapping[str, int]
    base_points: np.ndarray
    base_diff: np.ndarray
    base_wins: np.ndarray
    fixtures: Tuple[Fixture, ...]
    p_frame: np.ndarray
    fixed: Tuple[Tuple[Fixture, WhatIfResult], ...] = field(default=())

    @property
    def team_index(self) -> Dict[str, int]:
        return {team: idx for idx, team in enumerate(self.teams)}

    def fix_result(self, fixture: Fixture, home_score: int, away_score: int) -> "SeasonSetup":
        """A copy of this setup with ``fixture`` treated as already played."""

        try:
            position = self.fixtures.index(fixture)
        except ValueError:
            raise ConfigurationError(
                f"Fixture {fixture.home} v {fixture.away} on {fixture.date} is not open", division=self.division
            ) from None

        index = self.team_index
        home_idx = index[fixture.home]
        away_idx = index[fixture.away]
        points = self.base_points.copy()
        diff = self.base_diff.copy()
        wins = self.base_wins.copy()

        home_points, away_points = self.scoring.points(home_score, away_score)
        points[home_idx] += home_points
        points[away_idx] += away_points
        diff[home_idx] += home_score - away_score
        diff[away_idx] += away_score - home_score
        if home_score > away_score:
            wins[home_idx] += 1
        elif away_score > home_score:
            wins[away_idx] += 1

        what_if = WhatIfResult(fixture.home, fixture.away, home_score, away_score)
        return replace(
            self,
            base_points=points,
            base_diff=diff,
            base_wins=wins,
            fixtures=self.fixtures[:position] + self.fixtures[position + 1:],
            p_frame=np.delete(self.p_frame, position),
            fixed=self.fixed + ((fixture, what_if),),
        )


def _validate_what_ifs(division: str, teams: Sequence[str], what_ifs: Sequence[WhatIfResult]) -> None:
    for what_if in what_ifs:
        for team in (what_if.home, what_if.away):
            if team not in teams:
                raise ConfigurationError(
                    f"What-if team '{team}' is not in division '{division}'", division=division, team=team
                )
        if what_if.home_score < 0 or what_if.away_score < 0:
            raise ConfigurationError(f"What-if scores must be non-negative: {what_if}", division=division)


def prepare_season(
    division: str,
    ds: DataSources,
    *,
    squad_overrides: Optional[Mapping[str, SquadOverride]] = None,
    top_n: Optional[int] = None,
    what_if_results: Optional[Sequence[WhatIfResult]] = None,
    frames: Optional[int] = None,
    home_advantage: Optional[float] = None,
    scoring: Optional[ScoringRule] = None,
) -> SeasonSetup:
    frames = _require_positive("frames", _knob(frames, "frames_per_match"))
    advantage = float(_knob(home_advantage, "home_advantage"))
    scoring = scoring or ScoringRule.from_settings()
    teams = tuple(ds.division(division).teams)
    what_ifs = list(what_if_results or [])
    _validate_what_ifs(division, teams, what_ifs)

    strengths = adjusted_strengths(division, ds, squad_overrides, top_n)

    open_fixtures, fixed = split_what_ifs(remaining_fixtures(division, ds), what_ifs)
    if len(fixed) < len(what_ifs):
        logger.warning(
            "%d what-if result(s) in %s match no remaining fixture and were ignored",
            len(what_ifs) - len(fixed),
            division,
        )

    current = tally_records(division, ds, scoring=scoring)
    records = tally_records(
        division,
        ds,
        extra_results=[(w.home, w.away, w.home_score, w.away_score) for _, w in fixed],
        scoring=scoring,
    )

    p_frame = np.array(
        [predict_frame(strengths[f.home], strengths[f.away], advantage) for f in open_fixtures],
        dtype=float,
    )
    logger.debug("Prepared %s: %d teams, %d open fixtures, %d fixed", division, len(teams), len(open_fixtures), len(fixed))
    return SeasonSetup(
        division=division,
        teams=teams,
        frames=frames,
        scoring=scoring,
        strengths=strengths,
        current_points={team: current[team].points for team in teams},
        base_points=np.array([records[t].points for t in teams], dtype=np.int64),
        base_diff=np.array([records[t].diff for t in teams], dtype=np.int64),
        base_wins=np.array([records[t].won for t in teams], dtype=np.int64),
        fixtures=tuple(open_fixtures),
        p_frame=p_frame,
        fixed=tuple(fixed),
    )


@dataclass
class _ChunkTally:
    position_counts: np.ndarray
    points_sum: np.ndarray
    outcome_counts: np.ndarray

    def merge(self, other: "_ChunkTally") -> None:
        self.position_counts += other.position_counts
        self.points_sum += other.points_sum
        self.outcome_counts += other.outcome_counts


def _incidence(setup: SeasonSetup) -> Tuple[np.ndarray, np.ndarray]:
    index = setup.team_index
    n_fixtures = len(setup.fixtures)
    home = np.zeros((n_fixtures, len(setup.teams)), dtype=np.int64)
    away = np.zeros((n_fixtures, len(setup.teams)), dtype=np.int64)
    for row, fixture in enumerate(setup.fixtures):
        home[row, index[fixture.home]] = 1
        away[row, index[fixture.away]] = 1
    return home, away


def _simulate_chunk(
    setup: SeasonSetup,
    n_trials: int,
    seed_seq: np.random.SeedSequence,
    home_incidence: np.ndarray,
    away_incidence: np.ndarray,
    name_rank: np.ndarray,
) -> _ChunkTally:
    rng = np.random.default_rng(seed_seq)
    n_teams = len(setup.teams)
    frames = setup.frames
    scoring = setup.scoring

    home_frames = rng.binomial(frames, setup.p_frame, size=(n_trials, len(setup.fixtures))).astype(np.int64)
    away_frames = frames - home_frames
    home_win = 2 * home_frames > frames
    away_win = 2 * home_frames < frames
    draw = ~(home_win | away_win)

    home_pts = np.where(home_win, scoring.home_win, np.where(draw, scoring.draw, 0)).astype(np.int64)
    away_pts = np.where(away_win, scoring.away_win, np.where(draw, scoring.draw, 0)).astype(np.int64)
    margin = home_frames - away_frames

    points = setup.base_points + home_pts @ home_incidence + away_pts @ away_incidence
    diff = setup.base_diff + margin @ home_incidence - margin @ away_incidence
    wins = setup.base_wins + home_win.astype(np.int64) @ home_incidence + away_win.astype(np.int64) @ away_incidence

    keys = np.stack([np.broadcast_to(name_rank, points.shape), -wins, -diff, -points])
    order = np.lexsort(keys, axis=-1)

    position_counts = np.zeros((n_teams, n_teams), dtype=np.int64)
    positions = np.broadcast_to(np.arange(n_teams), order.shape)
    np.add.at(position_counts, (order, positions), 1)

    outcome_counts = np.stack(
        [home_win.sum(axis=0), draw.sum(axis=0), away_win.sum(axis=0)], axis=1
    ).astype(np.int64)
    return _ChunkTally(position_counts, points.sum(axis=0), outcome_counts)


def _chunk_sizes(trials: int, chunk_size: int) -> List[int]:
    n_chunks = math.ceil(trials / chunk_size)
    sizes = [chunk_size] * n_chunks
    sizes[-1] = trials - chunk_size * (n_chunks - 1)
    return sizes


def run_season(
    setup: SeasonSetup,
    *,
    trials: Optional[int] = None,
    seed: Optional[int] = None,
    top_positions: Optional[int] = None,
    bottom_positions: Optional[int] = None,
    workers: int = 1,
    chunk_size: Optional[int] = None,
) -> SeasonSimulation:
    trials = _require_positive("trials", _knob(trials, "season_trials"))
    chunk_size = _require_positive("chunk_size", _knob(chunk_size, "simulation_chunk_size"))
    top = _require_positive("top_positions", _knob(top_positions, "top_positions"))
    bottom = _require_positive("bottom_positions", _knob(bottom_positions, "bottom_positions"))
    workers = _require_positive("workers", workers)

    teams = setup.teams
    n_teams = len(teams)
    home_incidence, away_incidence = _incidence(setup)
    alphabetical = {team: rank for rank, team in enumerate(sorted(teams))}
    name_rank = np.array([alphabetical[team] for team in teams], dtype=np.int64)

    sizes = _chunk_sizes(trials, chunk_size)
    seeds = np.random.SeedSequence(seed).spawn(len(sizes))

    def work(job: Tuple[int, np.random.SeedSequence]) -> _ChunkTally:
        n_trials, seed_seq = job
        return _simulate_chunk(setup, n_trials, seed_seq, home_incidence, away_incidence, name_rank)

    jobs = list(zip(sizes, seeds))
    if workers > 1 and len(jobs) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            partials = list(pool.map(work, jobs))
    else:
        partials = [work(job) for job in jobs]

    total = _ChunkTally(
        np.zeros((n_teams, n_teams), dtype=np.int64),
        np.zeros(n_teams, dtype=np.int64),
        np.zeros((len(setup.fixtures), 3), dtype=np.int64),
    )
    for partial in partials:
        total.merge(partial)

    top = min(top, n_teams)
    bottom = min(bottom, n_teams)
    projections = []
    for idx, team in enumerate(teams):
        counts = total.position_counts[idx]
        projections.append(
            TeamProjection(
                team=team,
                current_points=int(setup.current_points[team]),
                avg_points=float(total.points_sum[idx]) / trials,
                p_title=float(counts[0]) / trials,
                p_top=float(counts[:top].sum()) / trials,
                p_bottom=float(counts[n_teams - bottom:].sum()) / trials,
                position_probabilities=tuple(float(c) / trials for c in counts),
            )
        )
    projections.sort(key=lambda p: (-p.avg_points, -p.p_title, p.team))

    outcomes = tuple(
        FixtureOutcome(
            home=fixture.home,
            away=fixture.away,
            date=fixture.date,
            p_home_win=float(total.outcome_counts[row, 0]) / trials,
            p_draw=float(total.outcome_counts[row, 1]) / trials,
            p_away_win=float(total.outcome_counts[row, 2]) / trials,
        )
        for row, fixture in enumerate(setup.fixtures)
    )
    logger.debug(
        "Simulated %s: %d trials in %d chunk(s), %d worker(s)", setup.division, trials, len(sizes), workers
    )
    return SeasonSimulation(
        division=setup.division,
        trials=trials,
        seed=seed,
        teams=tuple(projections),
        fixtures=outcomes,
    )


def simulate_season(
    division: str,
    ds: DataSources,
    *,
    squad_overrides: Optional[Mapping[str, SquadOverride]] = None,
    top_n: Optional[int] = None,
    what_if_results: Optional[Sequence[WhatIfResult]] = None,
    trials: Optional[int] = None,
    seed: Optional[int] = None,
    frames: Optional[int] = None,
    home_advantage: Optional[float] = None,
    top_positions: Optional[int] = None,
    bottom_positions: Optional[int] = None,
    workers: int = 1,
    chunk_size: Optional[int] = None,
) -> SeasonSimulation:
    """Project the final table of ``division`` by Monte Carlo simulation.

    What-if results are applied to the matching remaining fixtures before
    simulating; everything else is drawn frame by frame from team strengths
    (including any squad override adjustments). The same ``seed`` always gives
    the same output, independent of ``workers``.
    """

    setup = prepare_season(
        division,
        ds,
        squad_overrides=squad_overrides,
        top_n=top_n,
        what_if_results=what_if_results,
        frames=frames,
        home_advantage=home_advantage,
    )
    return run_season(
        setup,
        trials=trials,
        seed=seed,
        top_positions=top_positions,
        bottom_positions=bottom_positions,
        workers=workers,
        chunk_size=chunk_size,
    )


__all__ = [
    "FixtureOutcome",
    "METRICS",
    "PredictionResult",
    "ScoreLine",
    "SeasonSetup",
    "SeasonSimulation",
    "TeamProjection",
    "predict_fixture",
    "prepare_season",
    "run_pred_sim",
    "run_season",
    "simulate_season",
]
