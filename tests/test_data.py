from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from data import (
    SquadOverride,
    WhatIfResult,
    data_sources_from_dict,
    load_data_sources,
    parse_match_date,
    parse_squad_overrides,
)
from fixtures import remaining_fixtures, split_what_ifs, team_frame_record


def _write_league(root: Path) -> None:
    (root / "divisions.csv").write_text(
        "division,name,team\nD1,Premier,Anchor\nD1,Premier,Bell\nD1,Premier,Crown\n"
    )
    (root / "fixtures.csv").write_text(
        "division,date,home,away\n"
        "D1,01-09-2025,Anchor,Bell\n"
        "D1,08-09-2025,Bell,Crown\n"
        "D1,15-09-2025,Crown,Anchor\n"
    )
    (root / "results.csv").write_text(
        "division,date,home,away,home_score,away_score\n"
        "D1,01-09-2025,Anchor,Bell,6,4\n"
        "D1,08-09-2025,Bell,Crown,,\n"
    )
    (root / "rosters.csv").write_text("division,team,player\nD1,Anchor,Amy\nD1,Anchor,Amy\nD1,Bell,Ben\n")
    (root / "players.csv").write_text("player,won,played\nAmy,10,20\nBen,4,12\n")


def test_load_data_sources_from_csv(tmp_path: Path) -> None:
    _write_league(tmp_path)
    ds = load_data_sources(tmp_path)
    assert ds.division("D1").teams == ("Anchor", "Bell", "Crown")
    assert len(ds.fixtures) == 3
    # the unscored row is not a result
    assert len(ds.results) == 1
    assert ds.results[0].date == date(2025, 9, 1)
    assert ds.roster("D1", "Anchor") == ("Amy",)
    assert ds.player_stats("Ben").played == 12
    assert ds.player_stats("Nobody").played == 0


def test_missing_optional_files_are_empty(tmp_path: Path) -> None:
    (tmp_path / "divisions.csv").write_text("division,name,team\nD1,Premier,Anchor\n")
    ds = load_data_sources(tmp_path)
    assert ds.fixtures == () and ds.results == ()
    assert ds.rosters == {} and ds.players == {}


def test_missing_divisions_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_data_sources(tmp_path)
    with pytest.raises(FileNotFoundError):
        load_data_sources(tmp_path / "absent")


def test_missing_column_raises(tmp_path: Path) -> None:
    _write_league(tmp_path)
    (tmp_path / "players.csv").write_text("player,won\nAmy,10\n")
    with pytest.raises(ValueError, match="played"):
        load_data_sources(tmp_path)


def test_parse_match_date_formats() -> None:
    assert parse_match_date("15-09-2025") == date(2025, 9, 15)
    assert parse_match_date("2025-09-15") == date(2025, 9, 15)
    assert parse_match_date("15/09/2025") == date(2025, 9, 15)
    with pytest.raises(ValueError):
        parse_match_date("next tuesday")


def test_fingerprint_tracks_content(sample_sources) -> None:
    rebuilt = data_sources_from_dict(sample_sources.to_dict())
    assert rebuilt.fingerprint == sample_sources.fingerprint
    assert rebuilt.division("D1") == sample_sources.division("D1")

    payload = sample_sources.to_dict()
    payload["players"]["Amy"]["won"] += 1
    assert data_sources_from_dict(payload).fingerprint != sample_sources.fingerprint


def test_squad_override_reconciles_conflicts() -> None:
    with pytest.raises(ValueError):
        SquadOverride(added=frozenset({"Amy"}), removed=frozenset({"Amy"}))
    assert SquadOverride.reconciled(added=["Amy"], removed=["Amy"]).is_empty
    override = SquadOverride().add("Amy").remove("Ben")
    assert override.to_dict() == {"added": ["Amy"], "removed": ["Ben"]}
    assert parse_squad_overrides({"Bell": {"added": ["Zed"], "removed": ["Zed"]}}) == {}


def test_remaining_fixtures_excludes_played(sample_sources) -> None:
    remaining = remaining_fixtures("D1", sample_sources)
    assert [(f.home, f.away) for f in remaining] == [
        ("Anchor", "Crown"),
        ("Bell", "Dragon"),
        ("Crown", "Anchor"),
        ("Dragon", "Bell"),
    ]
    assert [f.date for f in remaining] == sorted(f.date for f in remaining)


def test_split_what_ifs(sample_sources) -> None:
    remaining = remaining_fixtures("D1", sample_sources)
    what_if = WhatIfResult("Crown", "Anchor", 6, 4)
    open_fixtures, fixed = split_what_ifs(remaining, [what_if, WhatIfResult("Anchor", "Bell", 5, 5)])
    assert len(open_fixtures) == 3
    assert fixed == [(remaining[2], what_if)]


def test_team_frame_record(sample_sources) -> None:
    record = team_frame_record("D1", sample_sources)
    assert record["Anchor"] == {"frames_won": 15, "frames_played": 20, "matches": 2}
    assert record["Crown"]["frames_won"] == 9
