from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from api.main import app
from config import settings
from context import context_manager
from data import DataSources, Division, Fixture, PlayerStats, Result


def build_sample_sources() -> DataSources:
    """Four-team division two rounds into a double round robin, plus an empty D2."""

    d1 = ("Anchor", "Bell", "Crown", "Dragon")
    played = [
        Result("D1", date(2025, 9, 1), "Anchor", "Bell", 7, 3),
        Result("D1", date(2025, 9, 1), "Crown", "Dragon", 5, 5),
        Result("D1", date(2025, 9, 8), "Bell", "Crown", 6, 4),
        Result("D1", date(2025, 9, 8), "Dragon", "Anchor", 2, 8),
    ]
    fixtures = [Fixture(r.division, r.date, r.home, r.away) for r in played] + [
        Fixture("D1", date(2025, 9, 15), "Anchor", "Crown"),
        Fixture("D1", date(2025, 9, 15), "Bell", "Dragon"),
        Fixture("D1", date(2025, 9, 22), "Crown", "Anchor"),
        Fixture("D1", date(2025, 9, 22), "Dragon", "Bell"),
        Fixture("D2", date(2025, 9, 15), "Eagle", "Fox"),
    ]
    rosters = {
        "D1:Anchor": ("Amy", "Al"),
        "D1:Bell": ("Ben", "Bo"),
        "D1:Crown": ("Cat", "Cy"),
        "D1:Dragon": ("Dee", "Dan"),
    }
    players = {
        "Amy": PlayerStats(20, 30),
        "Al": PlayerStats(15, 30),
        "Ben": PlayerStats(12, 30),
        "Bo": PlayerStats(14, 30),
        "Cat": PlayerStats(16, 30),
        "Cy": PlayerStats(10, 30),
        "Dee": PlayerStats(9, 30),
        "Zed": PlayerStats(25, 30),
    }
    return DataSources(
        divisions={
            "D1": Division("D1", "Premier", d1),
            "D2": Division("D2", "First", ("Eagle", "Fox")),
        },
        fixtures=tuple(fixtures),
        results=tuple(played),
        rosters=rosters,
        players=players,
    )


@pytest.fixture
def sample_sources() -> DataSources:
    return build_sample_sources()


@pytest.fixture(autouse=True)
def _default_settings():
    settings.reset()
    yield
    settings.reset()


@pytest.fixture(scope="module")
def client() -> TestClient:
    context_manager.replace_sources(build_sample_sources(), source="tests")
    return TestClient(app)
