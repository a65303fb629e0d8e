# Script to verify that identical backtests give identical output
from __future__ import annotations

import json
import sys
from pathlib import Path

import pandas as pd

from event_backtester.cli import main as cli_main


def read_json(p: Path) -> dict:
    return json.loads(p.read_text(encoding="utf-8"))


def main() -> None:
    # usage: python scripts/verify_determinism.py <config.yaml> <daily.csv>
    if len(sys.argv) != 3:
        raise SystemExit("usage: verify_determinism.py CONFIG DATA")
    config, data = sys.argv[1], sys.argv[2]
    out_dir = "outputs/determinism"

    for run_id in ("run_a", "run_b"):
        cli_main(
            [
                "backtest",
                "--config",
                config,
                "--data",
                data,
                "--entry",
                "5 sessions before",
                "--exit",
                "20 sessions after",
                "--out-dir",
                out_dir,
                "--run-id",
                run_id,
            ]
        )

    p1 = Path(out_dir) / "run_a"
    p2 = Path(out_dir) / "run_b"

    if read_json(p1 / "summary.json") != read_json(p2 / "summary.json"):
        raise SystemExit("FAIL: summary.json differs across identical runs")

    m1, m2 = read_json(p1 / "run_meta.json"), read_json(p2 / "run_meta.json")
    if m1["observations_sha256"] != m2["observations_sha256"]:
        raise SystemExit("FAIL: observation fingerprints differ across identical runs")

    r1 = pd.read_parquet(p1 / "returns.parquet")
    r2 = pd.read_parquet(p2 / "returns.parquet")
    if not r1.equals(r2):
        raise SystemExit("FAIL: returns.parquet content differs across identical runs")

    print("PASS: backtest determinism verified (summary + returns match).")


if __name__ == "__main__":
    main()
