from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from league_simulator.baseline import compute_baseline
from league_simulator.config import (
    DATA_DIR,
    DEFAULT_BASELINE_K,
    DEFAULT_GOAL_INTERCEPT,
    DEFAULT_GOAL_SLOPE,
    DEFAULT_HOME_ADVANTAGE,
    DEFAULT_MOD_FACTOR,
    DEFAULT_SEASON_LABEL,
    MATCHDAY_PREDICTIONS_JSON,
    SECOND_TEAM_PENALTY,
    ensure_data_dir_exists,
    get_default_iterations,
    get_default_seed,
    get_log_level,
    get_worker_count,
)
from league_simulator.models import EloMatchModel
from league_simulator.monte_carlo import RankDistribution, format_probability, simulate
from league_simulator.season import Season, Team, adjustment_vectors, evolve_season
from league_simulator.table import compute_standings, standings_frame
from league_simulator.utils import (
    build_season,
    get_next_matchweek_fixtures,
    load_fixtures_csv,
    load_teams_csv,
    second_team_adjustments,
)

logger = logging.getLogger(__name__)


def build_outcomes_json(
    label: str,
    distribution: RankDistribution,
    params: dict,
    seed: Optional[int],
    promotion: Optional[RankDistribution] = None,
    baseline: Optional[float] = None,
) -> dict:
    def _teams(dist: RankDistribution) -> list[dict]:
        teams_out = dist.to_dict()["teams"]
        for t in teams_out:
            probs = t["probabilities"]["rank"]
            t["display"] = {pos: format_probability(p) for pos, p in probs.items()}
        return teams_out

    now_iso = datetime.now().isoformat(timespec="seconds")

    meta = {
        "season": label,
        "model": "elo",
        "n_sim": distribution.n_sim,
        "seed": seed,
        "last_update": now_iso,
        "params": params,
    }

    if baseline is not None:
        meta["relegation_baseline"] = baseline

    out = {
        "meta": meta,
        "teams": _teams(distribution),
    }

    if promotion is not None:
        out["promotion"] = _teams(promotion)

    return out


def current_elo(season: Season, teams: Sequence[Team], model: EloMatchModel) -> np.ndarray:
    _, elo = evolve_season(season.played, [t.elo for t in teams], model)
    return elo


def build_matchday_predictions_json(
    label: str,
    fixtures: pd.DataFrame,
    teams: Sequence[Team],
    elo: np.ndarray,
    model: EloMatchModel,
) -> dict:
    now_iso = datetime.now().isoformat(timespec="seconds")

    if fixtures.empty:
        return {
            "season": label,
            "model": "elo",
            "matchweek": None,
            "last_update": now_iso,
            "fixtures": [],
        }

    team_index = {t.name: i for i, t in enumerate(teams)}

    mw = int(fixtures["matchweek"].iloc[0])

    rows = []

    for _, row in fixtures.iterrows():
        home_team = str(row["home_team"])
        away_team = str(row["away_team"])

        pred = model.predict_match(elo[team_index[home_team]], elo[team_index[away_team]])

        rows.append(
            {
                "home_team": home_team,
                "away_team": away_team,
                "p_home": float(pred["p_home"]),
                "p_draw": float(pred["p_draw"]),
                "p_away": float(pred["p_away"]),
                "exp_home_goals": float(pred["exp_home_goals"]),
                "exp_away_goals": float(pred["exp_away_goals"]),
            }
        )

    return {
        "season": label,
        "model": "elo",
        "matchweek": mw,
        "last_update": now_iso,
        "fixtures": rows,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simulate the rest of a league season and write rank probabilities.",
    )

    parser.add_argument("--fixtures", type=Path, required=True)
    parser.add_argument("--teams", type=Path, required=True)
    parser.add_argument(
        "--label",
        type=str,
        default=DEFAULT_SEASON_LABEL,
    )
    parser.add_argument(
        "--n-sim",
        dest="n_sim",
        type=int,
        default=None,
    )
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument(
        "--mod-factor",
        dest="mod_factor",
        type=float,
        default=DEFAULT_MOD_FACTOR,
    )
    parser.add_argument(
        "--home-advantage",
        dest="home_advantage",
        type=float,
        default=DEFAULT_HOME_ADVANTAGE,
    )
    parser.add_argument(
        "--promotion",
        action="store_true",
        help=f"also simulate with a {SECOND_TEAM_PENALTY} point penalty for reserve sides",
    )
    parser.add_argument(
        "--baseline-k",
        dest="baseline_k",
        type=int,
        default=None,
        help=f"report the mean ELO of the bottom K teams (usually {DEFAULT_BASELINE_K})",
    )
    parser.add_argument("--output-dir", dest="output_dir", type=Path, default=DATA_DIR)
    parser.add_argument("--log-level", dest="log_level", type=str, default=None)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or get_log_level()).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    n_sim = args.n_sim if args.n_sim is not None else get_default_iterations()
    seed = args.seed if args.seed is not None else get_default_seed()
    if seed is None:
        # shared by both runs and recorded in the output so they can be replayed
        seed = int(np.random.SeedSequence().entropy)
    workers = args.workers if args.workers is not None else get_worker_count()
    label = args.label

    fixtures_df = load_fixtures_csv(args.fixtures)
    teams = load_teams_csv(args.teams)
    team_names = [t.name for t in teams]

    season = build_season(fixtures_df, team_names)
    adjustments = adjustment_vectors(teams)

    table = standings_frame(compute_standings(season, team_names=team_names, **adjustments))
    logger.info("Current table for %s:\n%s", label, table.to_string(index=False))

    model = EloMatchModel(mod_factor=args.mod_factor, home_advantage=args.home_advantage)

    params = {
        "mod_factor": args.mod_factor,
        "home_advantage": args.home_advantage,
        "goal_slope": DEFAULT_GOAL_SLOPE,
        "goal_intercept": DEFAULT_GOAL_INTERCEPT,
    }

    distribution = simulate(
        season,
        [t.elo for t in teams],
        team_names=team_names,
        iterations=n_sim,
        seed=seed,
        n_workers=workers,
        **params,
        **adjustments,
    )

    promotion = None
    if args.promotion:
        promotion_points = np.asarray(adjustments["adj_points"]) + np.asarray(
            second_team_adjustments(team_names)
        )
        promotion = simulate(
            season,
            [t.elo for t in teams],
            team_names=team_names,
            iterations=n_sim,
            seed=seed,
            n_workers=workers,
            **params,
            **{**adjustments, "adj_points": promotion_points.tolist()},
        )

    baseline = None
    if args.baseline_k is not None:
        baseline = compute_baseline(
            season,
            [t.elo for t in teams],
            k=args.baseline_k,
            mod_factor=args.mod_factor,
            home_advantage=args.home_advantage,
        )

    outcomes = build_outcomes_json(
        label=label,
        distribution=distribution,
        params=params,
        seed=seed,
        promotion=promotion,
        baseline=baseline,
    )

    output_dir = Path(args.output_dir)
    if output_dir == DATA_DIR:
        ensure_data_dir_exists()
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    outcomes_path = output_dir / f"outcomes_{label}_{distribution.n_sim}.json"
    outcomes_path.write_text(json.dumps(outcomes, indent=2), encoding="utf-8")
    logger.info("Wrote %s", outcomes_path)

    elo_now = current_elo(season, teams, model)
    matchday_predictions = build_matchday_predictions_json(
        label=label,
        fixtures=get_next_matchweek_fixtures(fixtures_df),
        teams=teams,
        elo=elo_now,
        model=model,
    )

    predictions_path = output_dir / MATCHDAY_PREDICTIONS_JSON.name
    predictions_path.write_text(
        json.dumps(matchday_predictions, indent=2),
        encoding="utf-8",
    )
    logger.info("Wrote %s", predictions_path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
