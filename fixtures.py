"""Fixture and result queries shared by the standings, strength and simulation layers."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set, Tuple

from data import DataSources, Fixture, Result, WhatIfResult


def _played_keys(results: Iterable[Result]) -> Set[Tuple[str, str, str, object]]:
    return {(r.division, r.home, r.away, r.date) for r in results}


def remaining_fixtures(division: str, ds: DataSources) -> List[Fixture]:
    """Fixtures of ``division`` that have no result yet, in date order."""

    teams = set(ds.division(division).teams)
    played = _played_keys(ds.results)
    remaining = [
        f for f in ds.fixtures
        if f.division == division
        and f.home in teams
        and f.away in teams
        and (f.division, f.home, f.away, f.date) not in played
    ]
    remaining.sort(key=lambda f: (f.date, f.home, f.away))
    return remaining


def split_what_ifs(
    fixtures: Sequence[Fixture],
    what_if_results: Iterable[WhatIfResult],
) -> Tuple[List[Fixture], List[Tuple[Fixture, WhatIfResult]]]:
    """Partition remaining fixtures into still-open ones and ones fixed by a what-if.

    A what-if matches the first open fixture with the same home and away team.
    What-ifs that match nothing are ignored.
    """

    pending: Dict[Tuple[str, str], List[WhatIfResult]] = {}
    for what_if in what_if_results:
        pending.setdefault(what_if.key, []).append(what_if)

    open_fixtures: List[Fixture] = []
    fixed: List[Tuple[Fixture, WhatIfResult]] = []
    for fixture in fixtures:
        queue = pending.get(fixture.key)
        if queue:
            fixed.append((fixture, queue.pop(0)))
        else:
            open_fixtures.append(fixture)
    return open_fixtures, fixed


def team_frame_record(division: str, ds: DataSources) -> Dict[str, Dict[str, int]]:
    """Frames won, frames played and matches played per team of the division."""

    record = {
        team: {"frames_won": 0, "frames_played": 0, "matches": 0}
        for team in ds.division(division).teams
    }
    for result in ds.division_results(division):
        total = result.home_score + result.away_score
        home = record[result.home]
        away = record[result.away]
        home["frames_won"] += result.home_score
        away["frames_won"] += result.away_score
        home["frames_played"] += total
        away["frames_played"] += total
        home["matches"] += 1
        away["matches"] += 1
    return record


__all__ = [
    "remaining_fixtures",
    "split_what_ifs",
    "team_frame_record",
]
