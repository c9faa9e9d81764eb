"""Route registration helpers."""

from . import (  # noqa: F401
    accuracy,
    config,
    health,
    importance,
    jobs,
    league,
    predictions,
    simulations,
    standings,
)

__all__ = [
    "accuracy",
    "config",
    "health",
    "importance",
    "jobs",
    "league",
    "predictions",
    "simulations",
    "standings",
]
