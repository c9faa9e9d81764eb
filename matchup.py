"""Frame and match outcome probabilities.

A match is a fixed number of independent frames, each won by the home side with
probability :func:`predict_frame`. Match outcome probabilities follow
analytically from the binomial distribution of frames won.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

from config import PROBABILITY_EPSILON, PROBABILITY_TOLERANCE
from errors import InvariantViolation

def _logistic_prob(diff: float) -> float:
    try:
        return 1.0 / (1.0 + math.exp(-diff))
    except OverflowError:
        return 1.0 if diff > 0 else 0.0


def predict_frame(strength_home: float, strength_away: float, home_advantage: float = 0.0) -> float:
    """Probability that the home side wins a single frame.

    Equal strengths with no home advantage give exactly 0.5. The result is
    clipped into ``[PROBABILITY_EPSILON, 1 - PROBABILITY_EPSILON]``.
    """

    p = _logistic_prob((strength_home + home_advantage) - strength_away)
    return min(max(p, PROBABILITY_EPSILON), 1.0 - PROBABILITY_EPSILON)


def draws_possible(frames: int) -> bool:
    return frames % 2 == 0


def match_outcome_probabilities(p_frame: float, frames: int) -> Tuple[float, float, float]:
    """``(p_home_win, p_draw, p_away_win)`` for a match of ``frames`` frames."""

    if frames < 1:
        raise ValueError(f"frames must be positive, got {frames}")
    q = 1.0 - p_frame
    p_home = 0.0
    p_draw = 0.0
    p_away = 0.0
    for k in range(frames + 1):
        mass = math.comb(frames, k) * (p_frame ** k) * (q ** (frames - k))
        if 2 * k > frames:
            p_home += mass
        elif 2 * k == frames:
            p_draw += mass
        else:
            p_away += mass
    total = p_home + p_draw + p_away
    probs = (p_home / total, p_draw / total, p_away / total)
    check_probabilities(probs)
    return probs


def check_probabilities(probs: Sequence[float]) -> None:
    """Raise :class:`InvariantViolation` unless ``probs`` is a distribution."""

    if any(p < -PROBABILITY_TOLERANCE or p > 1.0 + PROBABILITY_TOLERANCE for p in probs):
        raise InvariantViolation(f"Probability out of range: {list(probs)}")
    if abs(sum(probs) - 1.0) > PROBABILITY_TOLERANCE:
        raise InvariantViolation(f"Probabilities sum to {sum(probs)!r}, expected 1")


def confidence_from_probabilities(probs: Sequence[float], outcomes: int = 3) -> float:
    """How far the favourite stands above a uniform guess, scaled to [0, 1].

    ``outcomes`` is the number of possible results: 3 when draws can happen,
    2 otherwise.
    """

    if outcomes < 2:
        return 1.0
    floor = 1.0 / outcomes
    value = (max(probs) - floor) / (1.0 - floor)
    return min(1.0, max(0.0, value))


def predicted_winner(p_home: float, p_draw: float, p_away: float) -> str:
    if p_home > p_away and p_home >= p_draw:
        return "home"
    if p_away > p_home and p_away >= p_draw:
        return "away"
    return "draw"


__all__ = [
    "check_probabilities",
    "confidence_from_probabilities",
    "draws_possible",
    "match_outcome_probabilities",
    "predict_frame",
    "predicted_winner",
]
