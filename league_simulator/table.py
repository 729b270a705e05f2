from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .errors import ConfigurationError
from .season import Season

logger = logging.getLogger(__name__)


TABLE_COLUMNS = [
    "position",
    "team",
    "played",
    "wins",
    "draws",
    "losses",
    "goals_for",
    "goals_against",
    "goal_diff",
    "points",
]


@dataclass(frozen=True)
class StandingsRow:
    team: int
    name: str
    rank: int
    played: int
    won: int
    drawn: int
    lost: int
    points: int
    goals_for: int
    goals_against: int
    goal_diff: int

    def to_dict(self) -> dict:
        return asdict(self)


def adjustment_vector(name: str, values: Optional[Sequence[int]], n_teams: int) -> np.ndarray:
    if values is None:
        return np.zeros(n_teams, dtype=np.int64)
    arr = np.asarray(values)
    if arr.ndim != 1 or arr.shape[0] != n_teams:
        raise ConfigurationError(
            f"{name} has {arr.size} values but the league has {n_teams} teams"
        )
    if arr.dtype.kind == "f":
        if not np.all(np.isfinite(arr)) or not np.all(arr == np.round(arr)):
            raise ConfigurationError(f"{name} must contain whole numbers")
    elif arr.dtype.kind not in "iu":
        raise ConfigurationError(f"{name} must be numeric")
    return arr.astype(np.int64)


def check_goal_diff_adjustments(
    adj_goals: np.ndarray,
    adj_goals_against: np.ndarray,
    adj_goal_diff: np.ndarray,
    team_names: Optional[Sequence[str]] = None,
) -> list[int]:
    """
    Flag teams whose goal difference adjustment disagrees with
    goals - goals_against. Goal difference is always derived from the
    adjusted goals, so the supplied value only produces a warning.
    """
    expected = adj_goals - adj_goals_against
    bad = np.flatnonzero(adj_goal_diff != expected).tolist()
    for idx in bad:
        label = team_names[idx] if team_names is not None else str(idx)
        logger.warning(
            "Goal difference adjustment for %s is %d but goals/goals against adjustments "
            "imply %d; using the derived value",
            label,
            int(adj_goal_diff[idx]),
            int(expected[idx]),
        )
    return bad


def accumulate_totals(
    home_index: np.ndarray,
    away_index: np.ndarray,
    home_goals: np.ndarray,
    away_goals: np.ndarray,
    n_teams: int,
) -> dict[str, np.ndarray]:
    """
    Fold scorelines into per-team totals.

    Goals are shaped (R, F) for R replications of the same F fixtures; every
    returned array is shaped (R, N).
    """
    home_goals = np.atleast_2d(np.asarray(home_goals, dtype=np.int64))
    away_goals = np.atleast_2d(np.asarray(away_goals, dtype=np.int64))
    n_fix = len(home_index)

    home_onehot = np.zeros((n_fix, n_teams), dtype=np.int64)
    away_onehot = np.zeros((n_fix, n_teams), dtype=np.int64)
    home_onehot[np.arange(n_fix), home_index] = 1
    away_onehot[np.arange(n_fix), away_index] = 1

    home_win = (home_goals > away_goals).astype(np.int64)
    away_win = (home_goals < away_goals).astype(np.int64)
    draw = (home_goals == away_goals).astype(np.int64)

    played = np.broadcast_to(
        home_onehot.sum(axis=0) + away_onehot.sum(axis=0),
        (home_goals.shape[0], n_teams),
    )

    return {
        "played": np.array(played),
        "wins": home_win @ home_onehot + away_win @ away_onehot,
        "draws": draw @ home_onehot + draw @ away_onehot,
        "losses": away_win @ home_onehot + home_win @ away_onehot,
        "points": (3 * home_win + draw) @ home_onehot + (3 * away_win + draw) @ away_onehot,
        "goals_for": home_goals @ home_onehot + away_goals @ away_onehot,
        "goals_against": away_goals @ home_onehot + home_goals @ away_onehot,
    }


def rank_simulations(points: np.ndarray, gf: np.ndarray, ga: np.ndarray) -> np.ndarray:
    n_sim, n_teams = points.shape
    ranks = np.empty_like(points, dtype=int)

    gd = gf - ga

    for s in range(n_sim):
        pts_s = points[s]
        gd_s = gd[s]
        gf_s = gf[s]

        # lexsort is stable, so teams level on all three keep index order
        order = np.lexsort((-gf_s, -gd_s, -pts_s))
        rank_s = np.empty(n_teams, dtype=int)
        rank_s[order] = np.arange(1, n_teams + 1)
        ranks[s] = rank_s

    return ranks


def compute_standings(
    season: Season,
    adj_points: Optional[Sequence[int]] = None,
    adj_goals: Optional[Sequence[int]] = None,
    adj_goals_against: Optional[Sequence[int]] = None,
    adj_goal_diff: Optional[Sequence[int]] = None,
    team_names: Optional[Sequence[str]] = None,
) -> list[StandingsRow]:
    """
    League table from the played fixtures of `season`, best team first.

    Unplayed fixtures are skipped, so a partial season gives the current
    table and an empty one gives every team zero with ranks by index.
    """
    n_teams = season.n_teams

    if team_names is not None and len(team_names) != n_teams:
        raise ConfigurationError(
            f"{len(team_names)} team names given but the league has {n_teams} teams"
        )

    adj_p = adjustment_vector("adj_points", adj_points, n_teams)
    adj_g = adjustment_vector("adj_goals", adj_goals, n_teams)
    adj_ga = adjustment_vector("adj_goals_against", adj_goals_against, n_teams)
    if adj_goal_diff is not None:
        adj_gd = adjustment_vector("adj_goal_diff", adj_goal_diff, n_teams)
        check_goal_diff_adjustments(adj_g, adj_ga, adj_gd, team_names)

    played = season.played
    home_goals = np.array([[fx.home_goals for fx in played.fixtures]], dtype=np.int64).reshape(1, -1)
    away_goals = np.array([[fx.away_goals for fx in played.fixtures]], dtype=np.int64).reshape(1, -1)

    totals = accumulate_totals(played.home_index, played.away_index, home_goals, away_goals, n_teams)

    points = totals["points"] + adj_p
    gf = totals["goals_for"] + adj_g
    ga = totals["goals_against"] + adj_ga

    ranks = rank_simulations(points, gf, ga)[0]

    rows = []
    for team in range(n_teams):
        rows.append(
            StandingsRow(
                team=team,
                name=str(team_names[team]) if team_names is not None else str(team),
                rank=int(ranks[team]),
                played=int(totals["played"][0, team]),
                won=int(totals["wins"][0, team]),
                drawn=int(totals["draws"][0, team]),
                lost=int(totals["losses"][0, team]),
                points=int(points[0, team]),
                goals_for=int(gf[0, team]),
                goals_against=int(ga[0, team]),
                goal_diff=int(gf[0, team] - ga[0, team]),
            )
        )

    rows.sort(key=lambda r: r.rank)
    return rows


def standings_frame(rows: Sequence[StandingsRow]) -> pd.DataFrame:
    table = pd.DataFrame(
        {
            "position": [r.rank for r in rows],
            "team": [r.name for r in rows],
            "played": [r.played for r in rows],
            "wins": [r.won for r in rows],
            "draws": [r.drawn for r in rows],
            "losses": [r.lost for r in rows],
            "goals_for": [r.goals_for for r in rows],
            "goals_against": [r.goals_against for r in rows],
            "goal_diff": [r.goal_diff for r in rows],
            "points": [r.points for r in rows],
        }
    )

    table = table.sort_values("position").reset_index(drop=True)

    return table[TABLE_COLUMNS]
