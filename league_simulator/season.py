from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from numbers import Integral, Real
from typing import Iterable, Optional, Sequence

import numpy as np

from .errors import ConfigurationError, ValidationError
from .models import EloMatchModel


@dataclass(frozen=True)
class Adjustments:
    """Per-team table corrections, applied only when standings are computed."""

    points: int = 0
    goals: int = 0
    goals_against: int = 0
    goal_diff: int = 0


@dataclass(frozen=True)
class Team:
    index: int
    name: str
    elo: float
    adjustments: Adjustments = field(default_factory=Adjustments)


def adjustment_vectors(teams: Sequence[Team]) -> dict[str, list[int]]:
    """Keyword arguments for simulate()/compute_standings() built from a team list."""
    return {
        "adj_points": [t.adjustments.points for t in teams],
        "adj_goals": [t.adjustments.goals for t in teams],
        "adj_goals_against": [t.adjustments.goals_against for t in teams],
        "adj_goal_diff": [t.adjustments.goal_diff for t in teams],
    }


def _as_goals(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"goals must be an integer, got {value!r}")
    if isinstance(value, Integral):
        goals = int(value)
    elif isinstance(value, Real) and math.isfinite(value) and float(value).is_integer():
        goals = int(value)
    else:
        raise ValidationError(f"goals must be an integer, got {value!r}")
    if goals < 0:
        raise ValidationError(f"goals must be non-negative, got {goals}")
    return goals


@dataclass(frozen=True)
class Fixture:
    """
    One scheduled match. Both goal fields set means the match is played,
    both None means it still has to be simulated.
    """

    home_team: int
    away_team: int
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    def __post_init__(self):
        hg = _as_goals(self.home_goals)
        ag = _as_goals(self.away_goals)
        if (hg is None) != (ag is None):
            raise ValidationError(
                f"fixture {self.home_team} v {self.away_team} has only one side's goals set"
            )
        object.__setattr__(self, "home_goals", hg)
        object.__setattr__(self, "away_goals", ag)

    @property
    def is_played(self) -> bool:
        return self.home_goals is not None

    def resolved(self, home_goals: int, away_goals: int) -> "Fixture":
        return replace(self, home_goals=int(home_goals), away_goals=int(away_goals))


@dataclass(frozen=True)
class Season:
    fixtures: tuple[Fixture, ...]
    n_teams: int

    def __post_init__(self):
        fixtures = tuple(self.fixtures)
        object.__setattr__(self, "fixtures", fixtures)

        if isinstance(self.n_teams, bool) or not isinstance(self.n_teams, Integral) or self.n_teams <= 0:
            raise ConfigurationError(f"n_teams must be a positive integer, got {self.n_teams!r}")

        for i, fx in enumerate(fixtures):
            for side in (fx.home_team, fx.away_team):
                if isinstance(side, bool) or not isinstance(side, Integral) or not 0 <= side < self.n_teams:
                    raise ConfigurationError(
                        f"fixture {i} references unknown team index {side!r} "
                        f"(league has {self.n_teams} teams)"
                    )
            if fx.home_team == fx.away_team:
                raise ConfigurationError(f"fixture {i} has team {fx.home_team} playing itself")

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Sequence],
        n_teams: int,
    ) -> "Season":
        """Build from (home, away) or (home, away, home_goals, away_goals) tuples."""
        fixtures = []
        for row in pairs:
            row = tuple(row)
            if len(row) == 2:
                fixtures.append(Fixture(int(row[0]), int(row[1])))
            elif len(row) == 4:
                fixtures.append(Fixture(int(row[0]), int(row[1]), row[2], row[3]))
            else:
                raise ConfigurationError(f"fixture rows need 2 or 4 fields, got {len(row)}")
        return cls(tuple(fixtures), n_teams)

    def __len__(self) -> int:
        return len(self.fixtures)

    @property
    def played(self) -> "Season":
        return Season(tuple(fx for fx in self.fixtures if fx.is_played), self.n_teams)

    @property
    def unplayed(self) -> "Season":
        return Season(tuple(fx for fx in self.fixtures if not fx.is_played), self.n_teams)

    @property
    def n_unplayed(self) -> int:
        return sum(1 for fx in self.fixtures if not fx.is_played)

    @property
    def is_complete(self) -> bool:
        return self.n_unplayed == 0

    @property
    def home_index(self) -> np.ndarray:
        return np.array([fx.home_team for fx in self.fixtures], dtype=np.int64)

    @property
    def away_index(self) -> np.ndarray:
        return np.array([fx.away_team for fx in self.fixtures], dtype=np.int64)

    def with_goals(self, home_goals: Sequence[int], away_goals: Sequence[int]) -> "Season":
        if len(home_goals) != len(self.fixtures) or len(away_goals) != len(self.fixtures):
            raise ConfigurationError("one scoreline per fixture is required")
        return Season(
            tuple(fx.resolved(h, a) for fx, h, a in zip(self.fixtures, home_goals, away_goals)),
            self.n_teams,
        )


def validate_elo(initial_elo: Sequence[float], n_teams: int) -> np.ndarray:
    elo = np.asarray(initial_elo, dtype=float)
    if elo.ndim != 1 or elo.shape[0] != n_teams:
        raise ConfigurationError(
            f"ELO vector has {elo.size} values but the league has {n_teams} teams"
        )
    if not np.all(np.isfinite(elo)):
        bad = np.flatnonzero(~np.isfinite(elo)).tolist()
        raise ValidationError(f"ELO values must be finite (bad team indices: {bad})")
    return elo


def evolve_batch(
    season: Season,
    initial_elo: Sequence[float],
    model: EloMatchModel,
    uniforms: Optional[np.ndarray] = None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Walk the fixtures in order for R replications at once.

    `uniforms` holds the (u_home, u_away) draws per replication and unplayed
    fixture, shaped (R, n_unplayed, 2). It may be omitted only when every
    fixture is played, in which case R == 1.

    Returns home goals and away goals shaped (R, F) and final ELO (R, N).
    """
    elo0 = validate_elo(initial_elo, season.n_teams)
    n_unplayed = season.n_unplayed

    if uniforms is None:
        if n_unplayed:
            raise ConfigurationError(
                f"{n_unplayed} unplayed fixtures need random draws to be simulated"
            )
        n_rep = 1
    else:
        uniforms = np.asarray(uniforms, dtype=float)
        if uniforms.ndim != 3 or uniforms.shape[1:] != (n_unplayed, 2):
            raise ConfigurationError(
                f"uniforms must be shaped (R, {n_unplayed}, 2), got {uniforms.shape}"
            )
        n_rep = uniforms.shape[0]

    n_fix = len(season.fixtures)

    elo = np.tile(elo0, (n_rep, 1))
    home_goals = np.zeros((n_rep, n_fix), dtype=np.int64)
    away_goals = np.zeros((n_rep, n_fix), dtype=np.int64)

    j = 0
    for i, fx in enumerate(season.fixtures):
        hi = fx.home_team
        ai = fx.away_team

        elo_h = elo[:, hi]
        elo_a = elo[:, ai]

        if fx.is_played:
            gh = np.full(n_rep, fx.home_goals, dtype=np.int64)
            ga_ = np.full(n_rep, fx.away_goals, dtype=np.int64)
        else:
            gh, ga_ = model.sample_goals(elo_h, elo_a, uniforms[:, j, 0], uniforms[:, j, 1])
            j += 1

        new_h, new_a, _ = model.update(elo_h, elo_a, gh, ga_)

        elo[:, hi] = new_h
        elo[:, ai] = new_a
        home_goals[:, i] = gh
        away_goals[:, i] = ga_

    return home_goals, away_goals, elo


def evolve_season(
    season: Season,
    initial_elo: Sequence[float],
    model: Optional[EloMatchModel] = None,
    rng: Optional[np.random.Generator] = None,
    uniforms: Optional[np.ndarray] = None,
) -> tuple[Season, np.ndarray]:
    """
    Replay one season: known results update ELO, missing ones are drawn.

    Random draws come from `uniforms` (shape (n_unplayed, 2)) when given,
    else from `rng`. Returns the fully resolved season and the final ELO
    vector; neither argument is modified.
    """
    if model is None:
        model = EloMatchModel()

    batch_uniforms = None
    if not season.is_complete:
        if uniforms is None:
            if rng is None:
                rng = np.random.default_rng()
            uniforms = rng.random((season.n_unplayed, 2))
        batch_uniforms = np.asarray(uniforms, dtype=float)[np.newaxis, ...]

    home_goals, away_goals, elo = evolve_batch(season, initial_elo, model, uniforms=batch_uniforms)

    return season.with_goals(home_goals[0].tolist(), away_goals[0].tolist()), elo[0]
