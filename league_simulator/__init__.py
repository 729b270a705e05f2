from __future__ import annotations

from .config import (
    DATA_DIR,
    DEFAULT_GOAL_INTERCEPT,
    DEFAULT_GOAL_SLOPE,
    DEFAULT_HOME_ADVANTAGE,
    DEFAULT_ITERATIONS,
    DEFAULT_MOD_FACTOR,
    ensure_data_dir_exists,
)
from .errors import (
    ConfigurationError,
    LeagueSimulatorError,
    SimulationCancelled,
    ValidationError,
)
from .models import (
    EloMatchModel,
    MatchOutcome,
    elo_probability,
    elo_update,
    expected_goals,
    poisson_quantile,
)
from .season import (
    Adjustments,
    Fixture,
    Season,
    Team,
    adjustment_vectors,
    evolve_batch,
    evolve_season,
)
from .table import (
    StandingsRow,
    compute_standings,
    rank_simulations,
    standings_frame,
)
from .monte_carlo import RankDistribution, format_probability, simulate
from .baseline import compute_baseline, initial_elo_for_new_team

__all__ = [
    "DATA_DIR",
    "DEFAULT_GOAL_INTERCEPT",
    "DEFAULT_GOAL_SLOPE",
    "DEFAULT_HOME_ADVANTAGE",
    "DEFAULT_ITERATIONS",
    "DEFAULT_MOD_FACTOR",
    "ensure_data_dir_exists",
    "ConfigurationError",
    "LeagueSimulatorError",
    "SimulationCancelled",
    "ValidationError",
    "EloMatchModel",
    "MatchOutcome",
    "elo_probability",
    "elo_update",
    "expected_goals",
    "poisson_quantile",
    "Adjustments",
    "Fixture",
    "Season",
    "Team",
    "adjustment_vectors",
    "evolve_batch",
    "evolve_season",
    "StandingsRow",
    "compute_standings",
    "rank_simulations",
    "standings_frame",
    "RankDistribution",
    "format_probability",
    "simulate",
    "compute_baseline",
    "initial_elo_for_new_team",
]
