from pathlib import Path
import subprocess
import sys


SEASON = "2025"


N_SIM = 10000


# (label, reserve sides ineligible for promotion)
LEAGUES = [
    ("bundesliga", False),
    ("2-bundesliga", False),
    ("3-liga", True),
]


def run_league(label: str, promotion: bool) -> None:
    data_dir = Path("data")

    cmd = [
        sys.executable,
        "-m",
        "league_simulator.simulate_league",
        "--fixtures",
        str(data_dir / f"fixtures_{label}_{SEASON}.csv"),
        "--teams",
        str(data_dir / f"teams_{label}_{SEASON}.csv"),
        "--label",
        f"{label}_{SEASON}",
        "--n-sim",
        str(N_SIM),
    ]
    if promotion:
        cmd.append("--promotion")

    subprocess.run(cmd, check=True)

    src = data_dir / "matchday_predictions.json"
    dst = data_dir / f"matchday_predictions_{label}.json"

    if src.is_file():
        if dst.is_file():
            dst.unlink()
        src.replace(dst)


def main() -> None:
    for label, promotion in LEAGUES:
        print(f"Running league: {label}")
        run_league(label, promotion)


if __name__ == "__main__":
    main()
