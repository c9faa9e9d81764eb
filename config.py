"""Runtime configuration knobs for the season prediction engine.

Model constants that never change at runtime (rating scale, probability
clipping) are plain module constants. Everything a league operator may want to
tune (scoring rule, trial counts, home advantage) lives in a thread-safe
:class:`SettingsManager`. Engine functions read ``settings.get(...)`` only when
the caller does not pass an explicit value, so a request can always override a
knob without mutating global state.
"""

from __future__ import annotations

from threading import RLock
from typing import Any, Dict


class SettingsManager:
    """Thread-safe accessor for mutable engine knobs.

    The manager stores a copy of the default settings and exposes ``get``/``set``
    helpers. ``snapshot`` returns a detached dictionary that can be embedded in
    API responses without risking mid-request mutation.
    """

    def __init__(self, defaults: Dict[str, Any]) -> None:
        self._defaults = dict(defaults)
        self._settings = dict(defaults)
        self._lock = RLock()

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._settings.keys())

    def get(self, name: str) -> Any:
        with self._lock:
            if name not in self._settings:
                raise KeyError(f"Unknown setting '{name}'")
            return self._settings[name]

    def set(self, name: str, value: Any) -> None:
        with self._lock:
            if name not in self._settings:
                raise KeyError(f"Unknown setting '{name}'")
            self._settings[name] = value

    def reset(self, name: str | None = None) -> None:
        with self._lock:
            if name is None:
                self._settings = dict(self._defaults)
                return
            if name not in self._defaults:
                raise KeyError(f"Unknown setting '{name}'")
            self._settings[name] = self._defaults[name]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._settings)


_DEFAULT_SETTINGS: Dict[str, Any] = {
    "points_home_win": 2,
    "points_away_win": 3,
    "points_draw": 1,
    "frames_per_match": 10,
    "home_advantage": 0.0,
    "season_trials": 1000,
    "prediction_trials": 5000,
    "squad_top_n": 5,
    "top_positions": 2,
    "bottom_positions": 2,
    "prior_blend_matches": 10,
    "simulation_chunk_size": 250,
}

SETTINGS_HELP: Dict[str, str] = {
    "points_home_win": "League points awarded to the home team for a win.",
    "points_away_win": "League points awarded to the away team for a win.",
    "points_draw": "League points awarded to each team for a drawn match.",
    "frames_per_match": "Frames played in every match (1 models single-frame fixtures).",
    "home_advantage": "Strength bonus added to the home side before computing frame odds.",
    "season_trials": "Monte Carlo seasons simulated per season projection.",
    "prediction_trials": "Monte Carlo matches simulated per single-fixture prediction.",
    "squad_top_n": "Players counted when rating a squad (only the strongest play).",
    "top_positions": "Finishing positions counted as 'top' (promotion / play-off places).",
    "bottom_positions": "Finishing positions counted as 'bottom' (relegation places).",
    "prior_blend_matches": "Matches after which a team's rating ignores its roster prior.",
    "simulation_chunk_size": "Trials per seeded chunk; chunks are the unit of parallel work.",
}

settings = SettingsManager(_DEFAULT_SETTINGS)


# Rating scale: a frame win rate of 1.0 maps to +2, 0.0 maps to -2.
STRENGTH_SCALE = 4.0
DEFAULT_STRENGTH = 0.0

# Bayesian shrinkage for player frame records (pull small samples to 50%).
BAYESIAN_PRIOR = 0.5
BAYESIAN_K = 6
# Below-average prior for rostered players with no frames yet.
UNKNOWN_PLAYER_PRIOR = 0.45

# Frame probabilities never reach exactly 0 or 1.
PROBABILITY_EPSILON = 1e-9
PROBABILITY_TOLERANCE = 1e-9

# A forced what-if win takes this share of the frames.
FORCED_WIN_SHARE = 0.7

TOP_SCORELINES = 5
