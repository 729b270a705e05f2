from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np
import scipy.stats as st

from .config import (
    DEFAULT_GOAL_INTERCEPT,
    DEFAULT_GOAL_SLOPE,
    DEFAULT_HOME_ADVANTAGE,
    DEFAULT_MOD_FACTOR,
    ELO_DELTA_CAP,
    MIN_GOAL_EXPECTATION,
)


ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True)
class MatchOutcome:
    home_elo: float
    away_elo: float
    home_goals: int
    away_goals: int
    elo_prob: float


def poisson_quantile(p: ArrayLike, lam: ArrayLike) -> ArrayLike:
    """
    Smallest k with CDF(k; lam) >= p.

    scipy returns -1 for p == 0; the support starts at 0, so that case is
    clipped to 0 goals.
    """
    k = np.maximum(st.poisson.ppf(p, lam), 0.0).astype(np.int64)
    if np.ndim(k) == 0:
        return int(k)
    return k


def elo_probability(raw_delta: ArrayLike) -> ArrayLike:
    capped = np.clip(raw_delta, -ELO_DELTA_CAP, ELO_DELTA_CAP)
    return 1.0 / (1.0 + np.power(10.0, -capped / ELO_DELTA_CAP))


def expected_goals(
    raw_delta: ArrayLike,
    goal_slope: float = DEFAULT_GOAL_SLOPE,
    goal_intercept: float = DEFAULT_GOAL_INTERCEPT,
) -> tuple[ArrayLike, ArrayLike]:
    lam_h = np.maximum(raw_delta * goal_slope + goal_intercept, MIN_GOAL_EXPECTATION)
    lam_a = np.maximum(-raw_delta * goal_slope + goal_intercept, MIN_GOAL_EXPECTATION)
    return lam_h, lam_a


def elo_update(
    elo_home: ArrayLike,
    elo_away: ArrayLike,
    home_goals: ArrayLike,
    away_goals: ArrayLike,
    mod_factor: float = DEFAULT_MOD_FACTOR,
    home_advantage: float = DEFAULT_HOME_ADVANTAGE,
) -> tuple[ArrayLike, ArrayLike, ArrayLike]:
    """
    Rating change for a known scoreline.

    Works element-wise on arrays. Whatever the home side gains the away side
    loses, so the sum of the two ratings is unchanged.
    """
    raw_delta = elo_home + home_advantage - elo_away
    elo_prob = elo_probability(raw_delta)

    goal_diff = np.subtract(home_goals, away_goals)
    result = (np.sign(goal_diff) + 1) / 2.0
    goal_factor = np.sqrt(np.maximum(np.abs(goal_diff), 1))

    elo_mod = (result - elo_prob) * goal_factor * mod_factor

    return elo_home + elo_mod, elo_away - elo_mod, elo_prob


class EloMatchModel:
    def __init__(
        self,
        mod_factor: float = DEFAULT_MOD_FACTOR,
        home_advantage: float = DEFAULT_HOME_ADVANTAGE,
        goal_slope: float = DEFAULT_GOAL_SLOPE,
        goal_intercept: float = DEFAULT_GOAL_INTERCEPT,
    ):
        self.mod_factor = float(mod_factor)
        self.home_advantage = float(home_advantage)
        self.goal_slope = float(goal_slope)
        self.goal_intercept = float(goal_intercept)

    def __repr__(self) -> str:
        return (
            f"EloMatchModel(mod_factor={self.mod_factor}, home_advantage={self.home_advantage}, "
            f"goal_slope={self.goal_slope}, goal_intercept={self.goal_intercept})"
        )

    def raw_delta(self, elo_home: ArrayLike, elo_away: ArrayLike) -> ArrayLike:
        return elo_home + self.home_advantage - elo_away

    def goal_intensity(self, elo_home: ArrayLike, elo_away: ArrayLike) -> tuple[ArrayLike, ArrayLike]:
        return expected_goals(
            self.raw_delta(elo_home, elo_away),
            goal_slope=self.goal_slope,
            goal_intercept=self.goal_intercept,
        )

    def sample_goals(
        self,
        elo_home: ArrayLike,
        elo_away: ArrayLike,
        u_home: ArrayLike,
        u_away: ArrayLike,
    ) -> tuple[ArrayLike, ArrayLike]:
        lam_h, lam_a = self.goal_intensity(elo_home, elo_away)
        return poisson_quantile(u_home, lam_h), poisson_quantile(u_away, lam_a)

    def update(
        self,
        elo_home: ArrayLike,
        elo_away: ArrayLike,
        home_goals: ArrayLike,
        away_goals: ArrayLike,
    ) -> tuple[ArrayLike, ArrayLike, ArrayLike]:
        return elo_update(
            elo_home,
            elo_away,
            home_goals,
            away_goals,
            mod_factor=self.mod_factor,
            home_advantage=self.home_advantage,
        )

    def play(self, elo_home: float, elo_away: float, home_goals: int, away_goals: int) -> MatchOutcome:
        new_h, new_a, prob = self.update(float(elo_home), float(elo_away), int(home_goals), int(away_goals))
        return MatchOutcome(
            home_elo=float(new_h),
            away_elo=float(new_a),
            home_goals=int(home_goals),
            away_goals=int(away_goals),
            elo_prob=float(prob),
        )

    def simulate(self, elo_home: float, elo_away: float, u_home: float, u_away: float) -> MatchOutcome:
        gh, ga_ = self.sample_goals(float(elo_home), float(elo_away), float(u_home), float(u_away))
        return self.play(elo_home, elo_away, gh, ga_)

    @staticmethod
    def _poisson_pmf(k: np.ndarray, lam: float) -> np.ndarray:
        return st.poisson.pmf(np.asarray(k, dtype=int), float(lam))

    def predict_match(self, elo_home: float, elo_away: float, max_goals: int = 10) -> dict[str, float]:
        lam_h, lam_a = self.goal_intensity(float(elo_home), float(elo_away))
        lam_h = float(lam_h)
        lam_a = float(lam_a)

        k = np.arange(0, max_goals + 1)

        p_home_goals = self._poisson_pmf(k, lam_h)
        p_away_goals = self._poisson_pmf(k, lam_a)

        p_matrix = np.outer(p_home_goals, p_away_goals)

        p_home = float(np.tril(p_matrix, -1).sum())
        p_draw = float(np.trace(p_matrix))
        p_away = float(np.triu(p_matrix, 1).sum())

        s = p_home + p_draw + p_away
        if s > 0:
            p_home /= s
            p_draw /= s
            p_away /= s

        return {
            "p_home": p_home,
            "p_draw": p_draw,
            "p_away": p_away,
            "exp_home_goals": lam_h,
            "exp_away_goals": lam_a,
            "elo_prob": float(elo_probability(self.raw_delta(float(elo_home), float(elo_away)))),
        }
