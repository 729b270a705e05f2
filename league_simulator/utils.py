from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .config import SECOND_TEAM_PENALTY
from .errors import ConfigurationError, ValidationError
from .season import Adjustments, Fixture, Season, Team


FIXTURE_COLS = [
    "home_team",
    "away_team",
    "home_goals",
    "away_goals",
]

ADJUSTMENT_COLS = {
    "adj_points": "points",
    "adj_goals": "goals",
    "adj_goals_against": "goals_against",
    "adj_goal_diff": "goal_diff",
}


def _read_csv(path: Path) -> pd.DataFrame:
    # the team lists handed over from the roster tooling are ';' separated
    return pd.read_csv(path, sep=None, engine="python")


def _whole_numbers(raw: pd.Series, col: str) -> pd.Series:
    """Blank cells become NA; anything else must be a whole number."""
    blank = raw.isna() | raw.astype(str).str.strip().eq("")
    values = pd.to_numeric(raw.where(~blank), errors="coerce")

    bad = ~blank & (values.isna() | (values % 1 != 0))
    if bad.any():
        rows = bad[bad].index.tolist()
        raise ValidationError(
            f"column {col!r} needs whole numbers, got {raw[bad].tolist()} in rows {rows}"
        )

    return values.astype("Int64")


def load_fixtures_csv(path: str | Path) -> pd.DataFrame:
    path = Path(path)

    if not path.is_file():
        raise FileNotFoundError(path)

    df = _read_csv(path)
    df = df.rename(columns={c: c.strip().lower() for c in df.columns})

    missing = [c for c in FIXTURE_COLS if c not in df.columns]
    if missing:
        raise ConfigurationError(f"Missing columns in fixtures file: {missing}")

    df["home_team"] = df["home_team"].astype(str).str.strip()
    df["away_team"] = df["away_team"].astype(str).str.strip()

    for col in ["home_goals", "away_goals", "matchweek"]:
        if col in df.columns:
            df[col] = _whole_numbers(df[col], col)

    is_played = df["home_goals"].notna() & df["away_goals"].notna()
    df["status"] = np.where(is_played, "played", "scheduled")

    return df.reset_index(drop=True)


def load_teams_csv(path: str | Path) -> list[Team]:
    path = Path(path)

    if not path.is_file():
        raise FileNotFoundError(path)

    df = _read_csv(path)
    cols = {c.strip().lower(): c for c in df.columns}

    team_col = None
    for candidate in ("team", "shorttext", "team_id"):
        if candidate in cols:
            team_col = cols[candidate]
            break

    elo_col = None
    for candidate in ("elo", "initialelo", "initial_elo"):
        if candidate in cols:
            elo_col = cols[candidate]
            break

    if not team_col or not elo_col:
        raise ConfigurationError("Teams file must contain a team and an elo column")

    teams = []
    for i, (_, row) in enumerate(df.iterrows()):
        name = str(row[team_col]).strip()
        elo = pd.to_numeric(row[elo_col], errors="coerce")
        if pd.isna(elo):
            raise ValidationError(f"team {name!r} has no usable ELO value")

        adjustments = {}
        for col, field_name in ADJUSTMENT_COLS.items():
            if col in cols and not pd.isna(row[cols[col]]):
                adjustments[field_name] = int(row[cols[col]])

        teams.append(Team(index=i, name=name, elo=float(elo), adjustments=Adjustments(**adjustments)))

    names = [t.name for t in teams]
    duplicated = sorted({n for n in names if names.count(n) > 1})
    if duplicated:
        raise ConfigurationError(f"duplicate team names in teams file: {duplicated}")

    return teams


def build_season(fixtures: pd.DataFrame, team_names: Sequence[str]) -> Season:
    team_index = {str(t): i for i, t in enumerate(team_names)}

    unknown = sorted(
        (set(fixtures["home_team"].astype(str)) | set(fixtures["away_team"].astype(str)))
        - set(team_index)
    )
    if unknown:
        raise ConfigurationError(f"fixtures reference unknown teams: {unknown}")

    rows = []
    for _, m in fixtures.iterrows():
        hg = m["home_goals"]
        ag = m["away_goals"]
        rows.append(
            Fixture(
                home_team=team_index[str(m["home_team"])],
                away_team=team_index[str(m["away_team"])],
                home_goals=None if pd.isna(hg) else int(hg),
                away_goals=None if pd.isna(ag) else int(ag),
            )
        )

    return Season(tuple(rows), len(team_index))


def second_team_adjustments(
    team_names: Sequence[str],
    penalty: int = SECOND_TEAM_PENALTY,
) -> list[int]:
    """
    Points adjustment that keeps reserve sides (names ending in '2') out of
    the promotion places without touching their results.
    """
    return [penalty if str(t).strip().endswith("2") else 0 for t in team_names]


def get_next_matchweek(fixtures: pd.DataFrame) -> Optional[int]:
    if "matchweek" not in fixtures.columns:
        return None

    mask = fixtures["status"] != "played"
    matchweeks = fixtures.loc[mask, "matchweek"].dropna()
    if matchweeks.empty:
        return None

    return int(matchweeks.min())


def get_next_matchweek_fixtures(fixtures: pd.DataFrame) -> pd.DataFrame:
    mw = get_next_matchweek(fixtures)
    if mw is None:
        return fixtures.iloc[0:0].copy()

    df = fixtures[(fixtures["matchweek"] == mw) & (fixtures["status"] != "played")].copy()
    return df.reset_index(drop=True)
