"""Monte Carlo simulation of the remaining fixtures of a league season."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from numbers import Integral
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd

from .config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_GOAL_INTERCEPT,
    DEFAULT_GOAL_SLOPE,
    DEFAULT_HOME_ADVANTAGE,
    DEFAULT_ITERATIONS,
    DEFAULT_MOD_FACTOR,
    get_worker_count,
)
from .errors import ConfigurationError, SimulationCancelled
from .models import EloMatchModel
from .season import Season, evolve_batch, validate_elo
from .table import (
    accumulate_totals,
    adjustment_vector,
    check_goal_diff_adjustments,
    rank_simulations,
)

logger = logging.getLogger(__name__)


class RankDistribution:
    """
    Probability of every team finishing in every position.

    Rows are ordered by expected rank, best first; `team_indices` maps each
    row back to the team's index in the season.
    """

    def __init__(
        self,
        team_names: Sequence[str],
        team_indices: Sequence[int],
        probabilities: np.ndarray,
        n_sim: int,
    ):
        self.team_names = list(team_names)
        self.team_indices = [int(i) for i in team_indices]
        self.probabilities = np.asarray(probabilities, dtype=float)
        self.n_sim = int(n_sim)

    def __len__(self) -> int:
        return len(self.team_names)

    def __repr__(self) -> str:
        return f"RankDistribution(n_teams={len(self)}, n_sim={self.n_sim})"

    @property
    def n_teams(self) -> int:
        return self.probabilities.shape[1]

    @property
    def ranks(self) -> np.ndarray:
        return np.arange(1, self.n_teams + 1)

    @property
    def expected_rank(self) -> np.ndarray:
        return self.probabilities @ self.ranks

    @property
    def most_likely_rank(self) -> np.ndarray:
        return self.probabilities.argmax(axis=1) + 1

    def row(self, team: str | int) -> dict[int, float]:
        """Rank -> probability for a team, looked up by name or season index."""
        if isinstance(team, str):
            if team not in self.team_names:
                raise KeyError(team)
            pos = self.team_names.index(team)
        else:
            if int(team) not in self.team_indices:
                raise KeyError(team)
            pos = self.team_indices.index(int(team))
        return {int(r): float(p) for r, p in zip(self.ranks, self.probabilities[pos])}

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            self.probabilities,
            index=pd.Index(self.team_names, name="team"),
            columns=pd.Index(self.ranks, name="rank"),
        )
        return df

    def to_dict(self) -> dict:
        teams_out = []
        for pos, name in enumerate(self.team_names):
            teams_out.append(
                {
                    "team_id": name,
                    "team_index": self.team_indices[pos],
                    "expected_rank": float(self.expected_rank[pos]),
                    "most_likely_rank": int(self.most_likely_rank[pos]),
                    "probabilities": {
                        "rank": {str(r): p for r, p in self.row(self.team_indices[pos]).items()},
                    },
                }
            )
        return {"n_sim": self.n_sim, "teams": teams_out}


def format_probability(x):
    """
    Percent display for a probability: whole percents in between, and
    '<1' / '>99' for values that would round to a misleading 0 or 100.
    """
    if isinstance(x, bool) or not isinstance(x, (int, float, np.number)):
        return x
    if 0.01 <= x <= 0.99:
        return int(round(100 * x))
    if x == 1:
        return 100
    if x == 0:
        return 0
    if x > 0.99:
        return ">99"
    return "<1"


def replication_rng(seed: int, index: int) -> np.random.Generator:
    """Random stream of replication `index`, independent of scheduling order."""
    return np.random.default_rng(np.random.SeedSequence(seed, spawn_key=(index,)))


def _validate_iterations(iterations) -> int:
    if isinstance(iterations, bool) or not isinstance(iterations, Integral) or iterations <= 0:
        raise ConfigurationError(f"iterations must be a positive integer, got {iterations!r}")
    return int(iterations)


def _count_ranks(ranks: np.ndarray, n_teams: int) -> np.ndarray:
    counts = np.zeros((n_teams, n_teams), dtype=np.int64)
    for j in range(n_teams):
        counts[j] = np.bincount(ranks[:, j], minlength=n_teams + 1)[1:]
    return counts


def _run_chunk(
    season: Season,
    elo0: np.ndarray,
    model: EloMatchModel,
    adjust: tuple[np.ndarray, np.ndarray, np.ndarray],
    seed: int,
    start: int,
    stop: int,
) -> np.ndarray:
    n_unplayed = season.n_unplayed

    uniforms = np.empty((stop - start, n_unplayed, 2), dtype=float)
    for k, index in enumerate(range(start, stop)):
        uniforms[k] = replication_rng(seed, index).random((n_unplayed, 2))

    home_goals, away_goals, _ = evolve_batch(season, elo0, model, uniforms=uniforms)

    totals = accumulate_totals(season.home_index, season.away_index, home_goals, away_goals, season.n_teams)

    adj_p, adj_g, adj_ga = adjust
    ranks = rank_simulations(
        totals["points"] + adj_p,
        totals["goals_for"] + adj_g,
        totals["goals_against"] + adj_ga,
    )

    return _count_ranks(ranks, season.n_teams)


def simulate(
    season: Season,
    initial_elo: Sequence[float],
    team_names: Optional[Sequence[str]] = None,
    iterations: int = DEFAULT_ITERATIONS,
    mod_factor: float = DEFAULT_MOD_FACTOR,
    home_advantage: float = DEFAULT_HOME_ADVANTAGE,
    goal_slope: float = DEFAULT_GOAL_SLOPE,
    goal_intercept: float = DEFAULT_GOAL_INTERCEPT,
    adj_points: Optional[Sequence[int]] = None,
    adj_goals: Optional[Sequence[int]] = None,
    adj_goals_against: Optional[Sequence[int]] = None,
    adj_goal_diff: Optional[Sequence[int]] = None,
    *,
    seed: Optional[int] = None,
    n_workers: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[Callable[[float], None]] = None,
) -> RankDistribution:
    """
    Simulate the unplayed fixtures `iterations` times and return the
    distribution of final ranks.

    Played fixtures are replayed in order so ELO reaches the unplayed ones
    with every earlier result applied. A season without unplayed fixtures is
    evaluated once, without randomness.

    Replication i draws from a stream derived from (seed, i) only, so the
    result does not depend on `n_workers` or `chunk_size`.

    `cancel_event` is checked before each chunk starts, so cancellation
    takes effect at chunk granularity: chunks already running finish their
    `chunk_size` replications, the rest are dropped and SimulationCancelled
    is raised. Any other error, including one from `progress_callback`,
    drops the queued chunks the same way before it propagates.

    Raises:
        ConfigurationError: mismatched vector lengths, bad counts.
        ValidationError: non-finite ELO values.
    """
    n_teams = season.n_teams

    iterations = _validate_iterations(iterations)
    elo0 = validate_elo(initial_elo, n_teams)

    if team_names is None:
        team_names = [f"Team {i + 1}" for i in range(n_teams)]
    team_names = [str(t) for t in team_names]
    if len(team_names) != n_teams:
        raise ConfigurationError(
            f"{len(team_names)} team names given but the league has {n_teams} teams"
        )

    adj_p = adjustment_vector("adj_points", adj_points, n_teams)
    adj_g = adjustment_vector("adj_goals", adj_goals, n_teams)
    adj_ga = adjustment_vector("adj_goals_against", adj_goals_against, n_teams)
    if adj_goal_diff is not None:
        adj_gd = adjustment_vector("adj_goal_diff", adj_goal_diff, n_teams)
        check_goal_diff_adjustments(adj_g, adj_ga, adj_gd, team_names)

    if isinstance(chunk_size, bool) or not isinstance(chunk_size, Integral) or chunk_size <= 0:
        raise ConfigurationError(f"chunk_size must be a positive integer, got {chunk_size!r}")

    if n_workers is None:
        n_workers = get_worker_count()
    if isinstance(n_workers, bool) or not isinstance(n_workers, Integral) or n_workers <= 0:
        raise ConfigurationError(f"n_workers must be a positive integer, got {n_workers!r}")

    if seed is not None:
        if isinstance(seed, bool) or not isinstance(seed, Integral) or seed < 0:
            raise ConfigurationError(f"seed must be a non-negative integer, got {seed!r}")
        seed = int(seed)

    model = EloMatchModel(
        mod_factor=mod_factor,
        home_advantage=home_advantage,
        goal_slope=goal_slope,
        goal_intercept=goal_intercept,
    )
    adjust = (adj_p, adj_g, adj_ga)

    started = time.perf_counter()

    if season.is_complete:
        logger.info(
            "All %d fixtures played, computing the final table once instead of %d iterations",
            len(season),
            iterations,
        )
        home_goals, away_goals, _ = evolve_batch(season, elo0, model)
        totals = accumulate_totals(season.home_index, season.away_index, home_goals, away_goals, n_teams)
        ranks = rank_simulations(
            totals["points"] + adj_p,
            totals["goals_for"] + adj_g,
            totals["goals_against"] + adj_ga,
        )
        counts = _count_ranks(ranks, n_teams)
        n_sim = 1
    else:
        if seed is None:
            seed = int(np.random.SeedSequence().entropy)
            logger.info("No seed given, using %d", seed)

        chunks = [
            (start, min(start + chunk_size, iterations))
            for start in range(0, iterations, chunk_size)
        ]
        n_workers = min(n_workers, len(chunks))

        logger.info(
            "Simulating %d unplayed of %d fixtures, %d iterations, %d worker(s), seed %d",
            season.n_unplayed,
            len(season),
            iterations,
            n_workers,
            seed,
        )

        cancelled = threading.Event() if cancel_event is None else cancel_event

        def _worker(bounds: tuple[int, int]) -> np.ndarray:
            if cancelled.is_set():
                raise SimulationCancelled("simulation cancelled")
            start, stop = bounds
            chunk_counts = _run_chunk(season, elo0, model, adjust, seed, start, stop)
            logger.debug("Finished replications %d-%d", start, stop - 1)
            return chunk_counts

        counts = np.zeros((n_teams, n_teams), dtype=np.int64)
        done = 0

        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            futures = [ex.submit(_worker, bounds) for bounds in chunks]
            try:
                for fut, (start, stop) in zip(futures, chunks):
                    counts += fut.result()
                    done += stop - start
                    if progress_callback:
                        progress_callback(done / iterations * 100)
            except BaseException as exc:
                # queued chunks would otherwise still run on executor shutdown
                for fut in futures:
                    fut.cancel()
                if isinstance(exc, SimulationCancelled):
                    logger.info("Simulation cancelled after %d of %d iterations", done, iterations)
                else:
                    logger.warning("Simulation aborted after %d of %d iterations", done, iterations)
                raise

        n_sim = iterations

    probabilities = counts / n_sim

    expected = probabilities @ np.arange(1, n_teams + 1)
    order = np.argsort(expected, kind="stable")

    logger.info("Simulation finished in %.2fs", time.perf_counter() - started)

    return RankDistribution(
        team_names=[team_names[i] for i in order],
        team_indices=order.tolist(),
        probabilities=probabilities[order],
        n_sim=n_sim,
    )
