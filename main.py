"""Command line entry point for the league prediction engine.

Examples::

    python main.py --data-dir league_data standings --division D1
    python main.py simulate --division D1 --seed 7 --what-if "Red Lion:Crown=7-3"
    python main.py importance --division D1 --team "Red Lion" --seed 7
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from context import DEFAULT_DATA_DIR
from data import DataSources, SquadOverride, WhatIfResult, load_data_sources
from errors import EngineError
from importance import SCOPES, calc_fixture_importance
from simulation import METRICS, predict_fixture, simulate_season
from standings import calc_standings, standings_dataframe
from strength import calc_remaining_schedule_strength, calc_team_strength
from tracking import PredictionSnapshot, calculate_accuracy, resolve_predictions

logger = logging.getLogger("league")


def hr(char="─", n=80):  # horizontal rule
    print(char * n)


def print_table(title: str, df: pd.DataFrame) -> None:
    print(title); hr()
    if df.empty:
        print("(nothing to show)")
    else:
        print(df.to_string())
    print()


def _parse_overrides(adds: Iterable[str], removes: Iterable[str]) -> Dict[str, SquadOverride]:
    overrides: Dict[str, SquadOverride] = {}
    for raw, action in [(item, "add") for item in adds] + [(item, "remove") for item in removes]:
        if "=" not in raw:
            raise ValueError(f"Expected TEAM=PLAYER, got '{raw}'")
        team, player = (part.strip() for part in raw.split("=", 1))
        override = overrides.get(team, SquadOverride())
        overrides[team] = override.add(player) if action == "add" else override.remove(player)
    return {team: override for team, override in overrides.items() if not override.is_empty}


def _parse_what_ifs(items: Iterable[str]) -> List[WhatIfResult]:
    parsed: List[WhatIfResult] = []
    for raw in items:
        try:
            teams, score = raw.rsplit("=", 1)
            home, away = (part.strip() for part in teams.split(":", 1))
            home_score, away_score = (int(part) for part in score.split("-", 1))
        except ValueError:
            raise ValueError(f"Expected HOME:AWAY=H-A, got '{raw}'") from None
        parsed.append(WhatIfResult(home, away, home_score, away_score))
    return parsed


def _emit(payload: dict, as_json: bool) -> bool:
    if as_json:
        print(json.dumps(payload, indent=2, default=str))
    return as_json


def cmd_standings(args: argparse.Namespace, ds: DataSources) -> None:
    entries = calc_standings(args.division, ds)
    if _emit({"division": args.division, "standings": [e.to_dict() for e in entries]}, args.json):
        return
    print_table(f"Standings — {ds.division(args.division).name}", standings_dataframe(entries))


def cmd_strength(args: argparse.Namespace, ds: DataSources) -> None:
    strengths = calc_team_strength(args.division, ds, strict=args.strict)
    schedule = calc_remaining_schedule_strength(args.division, ds, strengths)
    df = pd.DataFrame(
        [{"Team": team, "Strength": value, "Remaining SoS": schedule[team]} for team, value in strengths.items()]
    ).sort_values(["Strength", "Team"], ascending=[False, True]).reset_index(drop=True)
    if _emit({"division": args.division, "teams": df.to_dict(orient="records")}, args.json):
        return
    print_table(f"Team strength — {args.division}", df.round(3))


def cmd_predict(args: argparse.Namespace, ds: DataSources) -> None:
    result = predict_fixture(
        args.division,
        args.home,
        args.away,
        ds,
        squad_overrides=_parse_overrides(args.squad_add, args.squad_remove),
        top_n=args.top_n,
        seed=args.seed,
        trials=args.trials,
        frames=args.frames,
    )
    if _emit(result.to_dict(), args.json):
        return
    print(f"{args.home} v {args.away}"); hr()
    print(f"Home win {result.p_home_win:6.1%}   Draw {result.p_draw:6.1%}   Away win {result.p_away_win:6.1%}")
    print(f"Expected frames {result.expected_home:.1f} - {result.expected_away:.1f}   "
          f"confidence {result.confidence:.2f}   pick: {result.predicted_winner}")
    if result.baseline is not None and result.baseline.p_frame != result.p_frame:
        base = result.baseline
        print(f"Without squad changes: {base.p_home_win:.1%} / {base.p_draw:.1%} / {base.p_away_win:.1%}")
    print("Likely scores: " + ", ".join(f"{line.score} ({line.probability:.1%})" for line in result.top_scores))
    print()


def cmd_simulate(args: argparse.Namespace, ds: DataSources) -> None:
    season = simulate_season(
        args.division,
        ds,
        squad_overrides=_parse_overrides(args.squad_add, args.squad_remove),
        top_n=args.top_n,
        what_if_results=_parse_what_ifs(args.what_if),
        trials=args.trials,
        seed=args.seed,
        frames=args.frames,
        top_positions=args.top_positions,
        bottom_positions=args.bottom_positions,
        workers=args.workers,
    )
    if _emit(season.to_dict(), args.json):
        return
    df = pd.DataFrame(
        [
            {
                "Team": p.team,
                "Pts": p.current_points,
                "Avg Pts": round(p.avg_points, 1),
                "Title": f"{p.p_title:.1%}",
                "Top": f"{p.p_top:.1%}",
                "Bottom": f"{p.p_bottom:.1%}",
            }
            for p in season.teams
        ]
    )
    print_table(f"Season projection — {args.division} ({season.trials} trials, seed {season.seed})", df)


def cmd_importance(args: argparse.Namespace, ds: DataSources) -> None:
    items = calc_fixture_importance(
        args.division,
        args.team,
        _parse_overrides(args.squad_add, args.squad_remove),
        args.top_n,
        _parse_what_ifs(args.what_if),
        ds,
        seed=args.seed,
        trials=args.trials,
        frames=args.frames,
        top_positions=args.top_positions,
        bottom_positions=args.bottom_positions,
        metric=args.metric,
        scope=args.scope,
        workers=args.workers,
    )
    if _emit({"division": args.division, "team": args.team, "fixtures": [i.to_dict() for i in items]}, args.json):
        return
    df = pd.DataFrame(
        [
            {
                "Date": item.date.isoformat(),
                "Fixture": f"{item.home} v {item.away}",
                "Importance": round(item.importance, 3),
                "If home win": f"{item.p_if_home_win:.1%}",
                "If away win": f"{item.p_if_away_win:.1%}",
            }
            for item in items
        ]
    )
    print_table(f"Fixture importance for {args.team} ({args.metric})", df)


def cmd_accuracy(args: argparse.Namespace, ds: DataSources) -> None:
    raw = json.loads(Path(args.predictions).read_text())
    snapshots = [PredictionSnapshot.from_dict(item) for item in raw]
    if args.resolve:
        snapshots = resolve_predictions(snapshots, ds.results)
    stats = calculate_accuracy(snapshots)
    if _emit(stats.to_dict(), args.json):
        return
    print("Prediction accuracy"); hr()
    print(f"{stats.correct_predictions}/{stats.total_predictions} correct "
          f"({stats.accuracy_rate:.1%}), {stats.pending_predictions} pending")
    print()
    print_table("By confidence", pd.DataFrame([vars(band) for band in stats.by_confidence]))
    print_table("Calibration", pd.DataFrame([vars(bucket) for bucket in stats.calibration]))


def _add_scenario_args(parser: argparse.ArgumentParser, *, what_ifs: bool = True) -> None:
    parser.add_argument("--division", required=True, help="Division code.")
    parser.add_argument("--seed", type=int, help="Random seed; identical seeds give identical output.")
    parser.add_argument("--trials", type=int, help="Monte Carlo trials (defaults from config).")
    parser.add_argument("--frames", type=int, help="Frames per match (defaults from config).")
    parser.add_argument("--top-n", type=int, help="Players counted when rating a squad.")
    parser.add_argument("--squad-add", action="append", default=[], metavar="TEAM=PLAYER", help="Hypothetically add a player.")
    parser.add_argument("--squad-remove", action="append", default=[], metavar="TEAM=PLAYER", help="Hypothetically drop a player.")
    if what_ifs:
        parser.add_argument("--what-if", action="append", default=[], metavar="HOME:AWAY=H-A", help="Treat a fixture as played.")
        parser.add_argument("--top-positions", type=int, help="Positions counted as 'top'.")
        parser.add_argument("--bottom-positions", type=int, help="Positions counted as 'bottom'.")
        parser.add_argument("--workers", type=int, default=1, help="Threads used for simulation chunks.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pool league standings, predictions and season simulations.")
    parser.add_argument("--data-dir", default=str(DEFAULT_DATA_DIR), help="Directory holding the league CSV files.")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON instead of tables.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...).")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("standings", help="Show the current league table.")
    p.add_argument("--division", required=True)
    p.set_defaults(func=cmd_standings)

    p = sub.add_parser("strength", help="Show team strength ratings.")
    p.add_argument("--division", required=True)
    p.add_argument("--strict", action="store_true", help="Fail instead of defaulting teams without data.")
    p.set_defaults(func=cmd_strength)

    p = sub.add_parser("predict", help="Predict a single fixture.")
    _add_scenario_args(p, what_ifs=False)
    p.add_argument("--home", required=True)
    p.add_argument("--away", required=True)
    p.set_defaults(func=cmd_predict)

    p = sub.add_parser("simulate", help="Simulate the rest of the season.")
    _add_scenario_args(p)
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("importance", help="Rank remaining fixtures by importance to a team.")
    _add_scenario_args(p)
    p.add_argument("--team", required=True)
    p.add_argument("--metric", choices=METRICS, default="top")
    p.add_argument("--scope", choices=SCOPES, default="team")
    p.set_defaults(func=cmd_importance)

    p = sub.add_parser("accuracy", help="Report accuracy of stored prediction snapshots.")
    p.add_argument("--predictions", required=True, help="JSON file containing a list of prediction snapshots.")
    p.add_argument("--resolve", action="store_true", help="Resolve pending snapshots against loaded results first.")
    p.set_defaults(func=cmd_accuracy)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(levelname)s - %(message)s")

    try:
        ds = load_data_sources(args.data_dir)
        args.func(args, ds)
    except (EngineError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
