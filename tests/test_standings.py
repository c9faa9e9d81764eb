from __future__ import annotations

from datetime import date

import pytest

from data import DataSources, Division, Result
from errors import ConfigurationError
from standings import ScoringRule, calc_standings, standings_dataframe


def _two_team_sources(results) -> DataSources:
    return DataSources(divisions={"X": Division("X", "Test", ("A", "B"))}, results=tuple(results))


def test_current_table_order(sample_sources) -> None:
    table = calc_standings("D1", sample_sources)
    assert [entry.team for entry in table] == ["Anchor", "Bell", "Crown", "Dragon"]
    assert [entry.position for entry in table] == [1, 2, 3, 4]

    anchor = table[0]
    # 2 for a home win plus 3 for an away win
    assert anchor.points == 5
    assert (anchor.won, anchor.drawn, anchor.lost) == (2, 0, 0)
    assert (anchor.frames_for, anchor.frames_against, anchor.diff) == (15, 5, 10)

    crown, dragon = table[2], table[3]
    assert crown.points == dragon.points == 1
    assert crown.diff > dragon.diff


def test_played_totals_match_results(sample_sources) -> None:
    table = calc_standings("D1", sample_sources)
    assert sum(entry.played for entry in table) == 2 * len(sample_sources.division_results("D1"))
    for entry in table:
        assert entry.played == entry.won + entry.drawn + entry.lost


def test_tied_points_broken_by_frame_difference() -> None:
    ds = _two_team_sources(
        [
            Result("X", date(2025, 1, 1), "A", "B", 3, 1),
            Result("X", date(2025, 1, 8), "B", "A", 3, 2),
        ]
    )
    table = calc_standings("X", ds)
    assert table[0].points == table[1].points == 2
    assert [entry.team for entry in table] == ["A", "B"]
    assert table[0].diff == 1


def test_fully_tied_teams_ordered_by_name() -> None:
    ds = DataSources(divisions={"X": Division("X", "Test", ("Zulu", "Alpha"))})
    table = calc_standings("X", ds)
    assert [entry.team for entry in table] == ["Alpha", "Zulu"]
    assert all(entry.played == 0 for entry in table)


def test_wins_break_ties_before_name() -> None:
    ds = DataSources(
        divisions={"X": Division("X", "Test", ("Abe", "Rex", "Zed"))},
        results=(
            Result("X", date(2025, 1, 1), "Zed", "Rex", 6, 4),
            Result("X", date(2025, 1, 8), "Rex", "Zed", 6, 4),
            Result("X", date(2025, 1, 15), "Abe", "Rex", 5, 5),
            Result("X", date(2025, 1, 22), "Rex", "Abe", 5, 5),
        ),
    )
    table = calc_standings("X", ds)
    zed = next(entry for entry in table if entry.team == "Zed")
    abe = next(entry for entry in table if entry.team == "Abe")
    assert (zed.points, zed.diff, zed.won) == (2, 0, 1)
    assert (abe.points, abe.diff, abe.won) == (2, 0, 0)
    assert [entry.team for entry in table] == ["Rex", "Zed", "Abe"]


def test_scoring_rule_points() -> None:
    rule = ScoringRule()
    assert rule.points(7, 3) == (2, 0)
    assert rule.points(3, 7) == (0, 3)
    assert rule.points(5, 5) == (1, 1)


def test_unknown_division_raises(sample_sources) -> None:
    with pytest.raises(ConfigurationError):
        calc_standings("ZZ", sample_sources)


def test_standings_dataframe(sample_sources) -> None:
    df = standings_dataframe(calc_standings("D1", sample_sources))
    assert list(df.columns) == ["Team", "P", "W", "D", "L", "F", "A", "Diff", "Pts"]
    assert df.loc[1, "Team"] == "Anchor"
    assert standings_dataframe([]).empty
