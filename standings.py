"""League table construction.

Standings are always derived from results, never stored. The season
simulator ranks its trials on the same keys as :func:`standings_sort_key`, so a
simulated table is ordered exactly like the real one.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from config import settings
from data import DataSources, outcome_of


@dataclass(frozen=True)
class ScoringRule:
    home_win: int = 2
    away_win: int = 3
    draw: int = 1

    @classmethod
    def from_settings(cls) -> "ScoringRule":
        return cls(
            home_win=int(settings.get("points_home_win")),
            away_win=int(settings.get("points_away_win")),
            draw=int(settings.get("points_draw")),
        )

    def points(self, home_score: float, away_score: float) -> Tuple[int, int]:
        outcome = outcome_of(home_score, away_score)
        if outcome == "home":
            return self.home_win, 0
        if outcome == "away":
            return 0, self.away_win
        return self.draw, self.draw


@dataclass
class TeamRecord:
    won: int = 0
    drawn: int = 0
    lost: int = 0
    frames_for: int = 0
    frames_against: int = 0
    points: int = 0

    @property
    def played(self) -> int:
        return self.won + self.drawn + self.lost

    @property
    def diff(self) -> int:
        return self.frames_for - self.frames_against


@dataclass(frozen=True)
class StandingEntry:
    team: str
    played: int
    won: int
    drawn: int
    lost: int
    frames_for: int
    frames_against: int
    diff: int
    points: int
    position: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def apply_result(
    records: Dict[str, TeamRecord],
    home: str,
    away: str,
    home_score: int,
    away_score: int,
    scoring: ScoringRule,
) -> None:
    """Fold one match into ``records`` in place."""

    home_rec = records.setdefault(home, TeamRecord())
    away_rec = records.setdefault(away, TeamRecord())

    home_rec.frames_for += home_score
    home_rec.frames_against += away_score
    away_rec.frames_for += away_score
    away_rec.frames_against += home_score

    outcome = outcome_of(home_score, away_score)
    if outcome == "home":
        home_rec.won += 1
        away_rec.lost += 1
    elif outcome == "away":
        away_rec.won += 1
        home_rec.lost += 1
    else:
        home_rec.drawn += 1
        away_rec.drawn += 1

    home_points, away_points = scoring.points(home_score, away_score)
    home_rec.points += home_points
    away_rec.points += away_points


def standings_sort_key(team: str, record: TeamRecord) -> Tuple[int, int, int, str]:
    return (-record.points, -record.diff, -record.won, team)


def tally_records(
    division: str,
    ds: DataSources,
    *,
    extra_results: Iterable[Tuple[str, str, int, int]] = (),
    scoring: Optional[ScoringRule] = None,
) -> Dict[str, TeamRecord]:
    """Records for every team of ``division`` from its results plus ``extra_results``.

    ``extra_results`` are ``(home, away, home_score, away_score)`` tuples and are
    used for what-if scenarios.
    """

    scoring = scoring or ScoringRule.from_settings()
    records = {team: TeamRecord() for team in ds.division(division).teams}
    for result in ds.division_results(division):
        apply_result(records, result.home, result.away, result.home_score, result.away_score, scoring)
    for home, away, home_score, away_score in extra_results:
        apply_result(records, home, away, home_score, away_score, scoring)
    return records


def rank_records(records: Mapping[str, TeamRecord]) -> List[StandingEntry]:
    ordered = sorted(records.items(), key=lambda item: standings_sort_key(*item))
    return [
        StandingEntry(
            team=team,
            played=rec.played,
            won=rec.won,
            drawn=rec.drawn,
            lost=rec.lost,
            frames_for=rec.frames_for,
            frames_against=rec.frames_against,
            diff=rec.diff,
            points=rec.points,
            position=position,
        )
        for position, (team, rec) in enumerate(ordered, start=1)
    ]


def calc_standings(
    division: str,
    ds: DataSources,
    *,
    scoring: Optional[ScoringRule] = None,
) -> List[StandingEntry]:
    """Current league table for ``division``.

    Ordered by points, frame difference and wins (all descending), then team
    name. Raises :class:`errors.ConfigurationError` for an unknown division.
    """

    return rank_records(tally_records(division, ds, scoring=scoring))


def standings_dataframe(entries: Iterable[StandingEntry]) -> pd.DataFrame:
    rows = [
        {
            "Pos": entry.position,
            "Team": entry.team,
            "P": entry.played,
            "W": entry.won,
            "D": entry.drawn,
            "L": entry.lost,
            "F": entry.frames_for,
            "A": entry.frames_against,
            "Diff": entry.diff,
            "Pts": entry.points,
        }
        for entry in entries
    ]
    if not rows:
        return pd.DataFrame(columns=["Pos", "Team", "P", "W", "D", "L", "F", "A", "Diff", "Pts"])
    return pd.DataFrame(rows).set_index("Pos")


__all__ = [
    "ScoringRule",
    "StandingEntry",
    "TeamRecord",
    "apply_result",
    "calc_standings",
    "rank_records",
    "standings_dataframe",
    "standings_sort_key",
    "tally_records",
]
