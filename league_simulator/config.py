from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError



PACKAGE_DIR: Path = Path(__file__).resolve().parent
PROJECT_ROOT: Path = PACKAGE_DIR.parent



DATA_DIR: Path = PROJECT_ROOT / "data"


MATCHDAY_PREDICTIONS_JSON: Path = DATA_DIR / "matchday_predictions.json"


DEFAULT_SEASON_LABEL: str = "2025-2026"


# ELO match model, values fitted on historical German league results
DEFAULT_MOD_FACTOR: float = 20.0
DEFAULT_HOME_ADVANTAGE: float = 65.0
DEFAULT_GOAL_SLOPE: float = 0.0017854953143549
DEFAULT_GOAL_INTERCEPT: float = 1.3218390804597700

ELO_DELTA_CAP: float = 400.0
MIN_GOAL_EXPECTATION: float = 0.001


DEFAULT_ITERATIONS: int = 10000
DEFAULT_CHUNK_SIZE: int = 250


DEFAULT_BASELINE_K: int = 4

SECOND_TEAM_PENALTY: int = -50


# seed ratings for teams entering a league without history, keyed by tier
NEW_TEAM_ELO: dict[str, float] = {
    "bundesliga": 1500.0,
    "2-bundesliga": 1350.0,
    "3-liga": 1046.0,
}
NEW_TEAM_ELO_FALLBACK: float = 1200.0



ITERATIONS_ENV_VAR: str = "LEAGUE_SIM_ITERATIONS"
SEED_ENV_VAR: str = "LEAGUE_SIM_SEED"
WORKERS_ENV_VAR: str = "LEAGUE_SIM_WORKERS"
LOG_LEVEL_ENV_VAR: str = "LEAGUE_SIM_LOG_LEVEL"


ENV_FILE: Path = PROJECT_ROOT / "league_simulator.env"


def _load_env_file(path: Optional[Path] = None) -> None:
    """
    Load environment variables from a .env style file, if it exists.

    Expected format for each line:
        VARIABLE_NAME=value

    Blank lines and lines starting with '#' are ignored.
    Variables already present in os.environ are not overwritten.
    """
    env_path = path or ENV_FILE
    if not env_path.is_file():
        return

    try:
        text = env_path.read_text(encoding="utf-8")
    except OSError:
        return

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if key and key not in os.environ:
            os.environ[key] = value


def get_env_str(env_var: str, default: Optional[str] = None) -> Optional[str]:
    """
    Return the value of `env_var`, consulting the project env file first.

    Empty values count as unset.
    """
    if env_var not in os.environ:
        _load_env_file()

    value = os.environ.get(env_var)
    if value is None or not value.strip():
        return default
    return value.strip()


def get_env_int(env_var: str, default: Optional[int] = None) -> Optional[int]:
    """
    Integer variant of get_env_str.

    Raises ConfigurationError when the variable is set but is not an integer.
    """
    raw = get_env_str(env_var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            f"Environment variable '{env_var}' must be an integer, got {raw!r}"
        ) from None


def get_default_iterations() -> int:
    return get_env_int(ITERATIONS_ENV_VAR, DEFAULT_ITERATIONS)


def get_default_seed() -> Optional[int]:
    return get_env_int(SEED_ENV_VAR)


def get_worker_count() -> int:
    """
    Number of simulation worker threads.

    LEAGUE_SIM_WORKERS wins; otherwise one worker per CPU, at most 8.
    """
    workers = get_env_int(WORKERS_ENV_VAR)
    if workers is None:
        workers = min(8, os.cpu_count() or 1)
    if workers <= 0:
        raise ConfigurationError(f"worker count must be positive, got {workers}")
    return workers


def get_log_level() -> str:
    return (get_env_str(LOG_LEVEL_ENV_VAR, "INFO") or "INFO").upper()


def ensure_data_dir_exists() -> None:
    """
    Create DATA_DIR if it does not exist yet.

    Does not fail if the directory already exists (exist_ok=True).
    """
    DATA_DIR.mkdir(parents=True, exist_ok=True)
