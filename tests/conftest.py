"""
Shared fixtures: a four team league playing a double round robin.
"""

import pytest

from league_simulator.season import Fixture, Season


# 0-based version of the twelve fixture schedule, (home, away)
SCHEDULE = [
    (0, 1), (2, 3),
    (0, 2), (1, 3),
    (0, 3), (1, 2),
    (1, 0), (3, 2),
    (2, 0), (3, 1),
    (3, 0), (2, 1),
]

RESULTS = [
    (2, 1), (3, 1),
    (1, 1), (2, 2),
    (0, 2), (1, 0),
    (1, 2), (2, 0),
    (2, 1), (1, 1),
    (3, 0), (0, 1),
]


def make_season(games_played: int = 0) -> Season:
    fixtures = []
    for i, (home, away) in enumerate(SCHEDULE):
        if i < games_played:
            fixtures.append(Fixture(home, away, *RESULTS[i]))
        else:
            fixtures.append(Fixture(home, away))
    return Season(tuple(fixtures), 4)


@pytest.fixture
def completed_season():
    return make_season(12)


@pytest.fixture
def half_season():
    return make_season(6)


@pytest.fixture
def open_season():
    return make_season(0)


@pytest.fixture
def empty_season():
    return Season((), 4)


@pytest.fixture
def elo_values():
    return [1500.0, 1450.0, 1550.0, 1400.0]


@pytest.fixture
def team_names():
    return ["Aachen", "Bremen", "Cottbus", "Dresden"]


@pytest.fixture
def season_factory():
    return make_season
