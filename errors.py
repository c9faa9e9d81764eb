"""Typed failures raised by the prediction engine."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for caller-facing engine failures."""


class ConfigurationError(EngineError, LookupError):
    """The request names a division or team the data sources do not contain."""

    def __init__(self, message: str, *, division: str | None = None, team: str | None = None) -> None:
        super().__init__(message)
        self.division = division
        self.team = team


class InsufficientDataError(EngineError):
    """A team has no frames and no roster data to derive a rating from."""

    def __init__(self, team: str, division: str) -> None:
        super().__init__(f"No frame history or roster stats for '{team}' in division '{division}'")
        self.team = team
        self.division = division


class InvariantViolation(AssertionError):
    """An internal consistency check failed. Always a bug, never user input."""
