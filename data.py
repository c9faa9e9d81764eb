"""League data value objects and loaders.

The engine only ever reads a :class:`DataSources` snapshot. Loading it from
CSV files (or from a JSON payload posted to the API) is the job of the helpers
at the bottom of this module.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from errors import ConfigurationError

DATE_FORMATS = ("%d-%m-%Y", "%Y-%m-%d", "%d/%m/%Y", "%d-%b-%Y")


def parse_match_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unsupported date format: {raw!r}")


def roster_key(division: str, team: str) -> str:
    return f"{division}:{team}"


def outcome_of(home_score: float, away_score: float) -> str:
    if home_score > away_score:
        return "home"
    if away_score > home_score:
        return "away"
    return "draw"


@dataclass(frozen=True)
class Division:
    code: str
    name: str
    teams: Tuple[str, ...]


@dataclass(frozen=True)
class PlayerStats:
    won: int = 0
    played: int = 0


DEFAULT_PLAYER_STATS = PlayerStats()


@dataclass(frozen=True)
class Fixture:
    division: str
    date: date
    home: str
    away: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.home, self.away)

    def involves(self, team: str) -> bool:
        return team in (self.home, self.away)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "division": self.division,
            "date": self.date.isoformat(),
            "home": self.home,
            "away": self.away,
        }


@dataclass(frozen=True)
class Result:
    division: str
    date: date
    home: str
    away: str
    home_score: int
    away_score: int

    @property
    def key(self) -> Tuple[str, str]:
        return (self.home, self.away)

    @property
    def winner(self) -> str:
        return outcome_of(self.home_score, self.away_score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "division": self.division,
            "date": self.date.isoformat(),
            "home": self.home,
            "away": self.away,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }


@dataclass(frozen=True)
class WhatIfResult:
    """A hypothetical result the caller wants treated as already played."""

    home: str
    away: str
    home_score: int
    away_score: int

    @property
    def key(self) -> Tuple[str, str]:
        return (self.home, self.away)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "home": self.home,
            "away": self.away,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }


@dataclass(frozen=True)
class SquadOverride:
    """Hypothetical roster change for one team.

    A player is never in both ``added`` and ``removed``. Use :meth:`add` and
    :meth:`remove` (or :meth:`reconciled`) to build overrides incrementally:
    adding a removed player cancels the removal and vice versa.
    """

    added: FrozenSet[str] = frozenset()
    removed: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "added", frozenset(self.added))
        object.__setattr__(self, "removed", frozenset(self.removed))
        overlap = self.added & self.removed
        if overlap:
            raise ValueError(f"Players cannot be both added and removed: {sorted(overlap)}")

    @classmethod
    def reconciled(cls, added: Iterable[str] = (), removed: Iterable[str] = ()) -> "SquadOverride":
        override = cls()
        for name in added:
            override = override.add(name)
        for name in removed:
            override = override.remove(name)
        return override

    def add(self, player: str) -> "SquadOverride":
        if player in self.removed:
            return SquadOverride(self.added, self.removed - {player})
        return SquadOverride(self.added | {player}, self.removed)

    def remove(self, player: str) -> "SquadOverride":
        if player in self.added:
            return SquadOverride(self.added - {player}, self.removed)
        return SquadOverride(self.added, self.removed | {player})

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def to_dict(self) -> Dict[str, List[str]]:
        return {"added": sorted(self.added), "removed": sorted(self.removed)}


@dataclass(frozen=True)
class DataSources:
    """Read-only snapshot of everything the engine consumes."""

    divisions: Mapping[str, Division] = field(default_factory=dict)
    fixtures: Tuple[Fixture, ...] = ()
    results: Tuple[Result, ...] = ()
    rosters: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    players: Mapping[str, PlayerStats] = field(default_factory=dict)

    def division(self, code: str) -> Division:
        try:
            return self.divisions[code]
        except KeyError:
            raise ConfigurationError(f"Unknown division '{code}'", division=code) from None

    def require_team(self, code: str, team: str) -> Division:
        div = self.division(code)
        if team not in div.teams:
            raise ConfigurationError(f"Team '{team}' is not in division '{code}'", division=code, team=team)
        return div

    def division_results(self, code: str) -> List[Result]:
        teams = set(self.division(code).teams)
        return [
            r for r in self.results
            if r.division == code and r.home in teams and r.away in teams
        ]

    def roster(self, code: str, team: str) -> Tuple[str, ...]:
        return tuple(self.rosters.get(roster_key(code, team), ()))

    def player_stats(self, name: str) -> PlayerStats:
        return self.players.get(name, DEFAULT_PLAYER_STATS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "divisions": {
                code: {"name": div.name, "teams": list(div.teams)}
                for code, div in sorted(self.divisions.items())
            },
            "fixtures": [f.to_dict() for f in self.fixtures],
            "results": [r.to_dict() for r in self.results],
            "rosters": {key: list(names) for key, names in sorted(self.rosters.items())},
            "players": {
                name: {"won": stats.won, "played": stats.played}
                for name, stats in sorted(self.players.items())
            },
        }

    @cached_property
    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON form; changes whenever any input changes."""

        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# Loaders ---------------------------------------------------------------

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "divisions.csv": ["division", "name", "team"],
    "fixtures.csv": ["division", "date", "home", "away"],
    "results.csv": ["division", "date", "home", "away", "home_score", "away_score"],
    "rosters.csv": ["division", "team", "player"],
    "players.csv": ["player", "won", "played"],
}

OPTIONAL_FILES = {"fixtures.csv", "results.csv", "rosters.csv", "players.csv"}


def _read_table(directory: Path, filename: str) -> pd.DataFrame:
    path = directory / filename
    required = REQUIRED_COLUMNS[filename]
    if not path.exists():
        if filename in OPTIONAL_FILES:
            return pd.DataFrame(columns=required)
        raise FileNotFoundError(f"League data file not found: {path}")

    df = pd.read_csv(path)
    df.columns = df.columns.astype(str).str.strip().str.replace("﻿", "", regex=False)
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ValueError(f"{filename} missing required columns: {missing}")

    for col in df.columns:
        if df[col].dtype == object:
            df[col] = df[col].fillna("").astype(str).str.strip()
    return df


def _divisions_from_frame(df: pd.DataFrame) -> Dict[str, Division]:
    divisions: Dict[str, Division] = {}
    for code, group in df.groupby("division", sort=False):
        teams = tuple(dict.fromkeys(t for t in group["team"] if t))
        divisions[str(code)] = Division(code=str(code), name=str(group["name"].iloc[0]), teams=teams)
    return divisions


def load_data_sources(directory: str | Path) -> DataSources:
    """Load a league snapshot from a directory of CSV files."""

    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"League data directory not found: {root}")

    divisions = _divisions_from_frame(_read_table(root, "divisions.csv"))

    fixtures_df = _read_table(root, "fixtures.csv")
    fixtures = tuple(
        Fixture(
            division=str(row["division"]),
            date=parse_match_date(row["date"]),
            home=str(row["home"]),
            away=str(row["away"]),
        )
        for _, row in fixtures_df.iterrows()
    )

    results_df = _read_table(root, "results.csv")
    results_df["home_score"] = pd.to_numeric(results_df["home_score"], errors="coerce")
    results_df["away_score"] = pd.to_numeric(results_df["away_score"], errors="coerce")
    results_df = results_df.dropna(subset=["home_score", "away_score"])
    results = tuple(
        Result(
            division=str(row["division"]),
            date=parse_match_date(row["date"]),
            home=str(row["home"]),
            away=str(row["away"]),
            home_score=int(row["home_score"]),
            away_score=int(row["away_score"]),
        )
        for _, row in results_df.iterrows()
    )

    rosters: Dict[str, List[str]] = {}
    for _, row in _read_table(root, "rosters.csv").iterrows():
        names = rosters.setdefault(roster_key(str(row["division"]), str(row["team"])), [])
        if row["player"] and row["player"] not in names:
            names.append(str(row["player"]))

    players_df = _read_table(root, "players.csv")
    players = {
        str(row["player"]): PlayerStats(won=int(row["won"]), played=int(row["played"]))
        for _, row in players_df.iterrows()
    }

    return DataSources(
        divisions=divisions,
        fixtures=fixtures,
        results=results,
        rosters={key: tuple(names) for key, names in rosters.items()},
        players=players,
    )


def data_sources_from_dict(payload: Mapping[str, Any]) -> DataSources:
    """Build a snapshot from the JSON layout produced by :meth:`DataSources.to_dict`."""

    divisions = {
        str(code): Division(code=str(code), name=str(raw.get("name", code)), teams=tuple(raw.get("teams", [])))
        for code, raw in (payload.get("divisions") or {}).items()
    }
    fixtures = tuple(
        Fixture(
            division=str(raw["division"]),
            date=parse_match_date(raw["date"]),
            home=str(raw["home"]),
            away=str(raw["away"]),
        )
        for raw in payload.get("fixtures") or []
    )
    results = tuple(
        Result(
            division=str(raw["division"]),
            date=parse_match_date(raw["date"]),
            home=str(raw["home"]),
            away=str(raw["away"]),
            home_score=int(raw["home_score"]),
            away_score=int(raw["away_score"]),
        )
        for raw in payload.get("results") or []
    )
    rosters = {str(key): tuple(names) for key, names in (payload.get("rosters") or {}).items()}
    players = {
        str(name): PlayerStats(won=int(raw.get("won", 0)), played=int(raw.get("played", 0)))
        for name, raw in (payload.get("players") or {}).items()
    }
    return DataSources(divisions=divisions, fixtures=fixtures, results=results, rosters=rosters, players=players)


def parse_squad_overrides(raw: Optional[Mapping[str, Mapping[str, Iterable[str]]]]) -> Dict[str, SquadOverride]:
    overrides: Dict[str, SquadOverride] = {}
    for team, entry in (raw or {}).items():
        override = SquadOverride.reconciled(entry.get("added", ()), entry.get("removed", ()))
        if not override.is_empty:
            overrides[team] = override
    return overrides


def parse_what_if_results(raw: Optional[Iterable[Mapping[str, Any]]]) -> List[WhatIfResult]:
    return [
        WhatIfResult(
            home=str(item["home"]),
            away=str(item["away"]),
            home_score=int(item["home_score"]),
            away_score=int(item["away_score"]),
        )
        for item in raw or []
    ]


__all__ = [
    "DEFAULT_PLAYER_STATS",
    "DataSources",
    "Division",
    "Fixture",
    "PlayerStats",
    "Result",
    "SquadOverride",
    "WhatIfResult",
    "data_sources_from_dict",
    "load_data_sources",
    "outcome_of",
    "parse_match_date",
    "parse_squad_overrides",
    "parse_what_if_results",
    "roster_key",
]
