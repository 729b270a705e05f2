from __future__ import annotations

import logging
from numbers import Integral
from typing import Optional, Sequence

import numpy as np

from .config import (
    DEFAULT_BASELINE_K,
    DEFAULT_HOME_ADVANTAGE,
    DEFAULT_MOD_FACTOR,
    NEW_TEAM_ELO,
    NEW_TEAM_ELO_FALLBACK,
)
from .errors import ConfigurationError
from .models import EloMatchModel
from .season import Season, evolve_season, validate_elo
from .table import compute_standings

logger = logging.getLogger(__name__)


def compute_baseline(
    season: Season,
    initial_elo: Sequence[float],
    k: int = DEFAULT_BASELINE_K,
    mod_factor: float = DEFAULT_MOD_FACTOR,
    home_advantage: float = DEFAULT_HOME_ADVANTAGE,
) -> float:
    """
    Mean final ELO of the `k` lowest-placed teams.

    Only played fixtures count: they are replayed in order to get final
    ratings and the table is built from them. Used to seed teams coming up
    into a league without a rating history.
    """
    n_teams = season.n_teams
    elo0 = validate_elo(initial_elo, n_teams)

    if isinstance(k, bool) or not isinstance(k, Integral) or not 1 <= k <= n_teams:
        raise ConfigurationError(f"k must be between 1 and {n_teams}, got {k!r}")

    played = season.played
    if len(played) == 0:
        raise ConfigurationError("no played fixtures to derive a baseline from")

    model = EloMatchModel(mod_factor=mod_factor, home_advantage=home_advantage)
    _, final_elo = evolve_season(played, elo0, model)

    rows = compute_standings(played)
    bottom = [r.team for r in rows[-k:]]

    baseline = float(np.mean(final_elo[bottom]))

    logger.info(
        "Baseline %.2f from teams %s with final ELO %s",
        baseline,
        bottom,
        np.round(final_elo[bottom], 2).tolist(),
    )

    return baseline


def initial_elo_for_new_team(league: str, baseline: Optional[float] = None) -> float:
    """
    Seed rating for a team without history.

    Third tier teams get the relegation baseline when one is known; every
    other league uses its fixed default.
    """
    key = league.strip().lower()
    if key == "3-liga" and baseline is not None:
        return float(baseline)
    return NEW_TEAM_ELO.get(key, NEW_TEAM_ELO_FALLBACK)
