"""
Script: Synthetic Daily Prices
Purpose: Writes a deterministic daily close series so the CLI can run offline.

Description:
    Geometric random walk on business days (weekends excluded, holidays not).
    Output columns: date, close. Feed it to `event-backtester backtest --data`.

Usage:
    python scripts/make_synth_prices.py --out data/sample/aapl_daily.csv
"""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
import pandas as pd


def make_synth_daily(start: str, end: str, seed: int, start_price: float = 100.0) -> pd.DataFrame:
    days = pd.bdate_range(start, end)
    rng = np.random.default_rng(seed)
    log_ret = rng.normal(0.0004, 0.015, size=len(days))
    close = start_price * np.exp(np.cumsum(log_ret))
    return pd.DataFrame({"date": days.strftime("%Y-%m-%d"), "close": close.round(4)})


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", required=True, help="Output CSV/Parquet path")
    ap.add_argument("--start", default="2019-01-01")
    ap.add_argument("--end", default="2024-12-31")
    ap.add_argument("--seed", type=int, default=123)
    args = ap.parse_args()

    out = Path(args.out).expanduser().resolve()
    out.parent.mkdir(parents=True, exist_ok=True)

    df = make_synth_daily(args.start, args.end, args.seed)
    if out.suffix.lower() == ".parquet":
        df.to_parquet(out, index=False)
    else:
        df.to_csv(out, index=False)
    print(str(out))


if __name__ == "__main__":
    main()
