"""
Data IO Layer
-------------
Loading and normalization of daily close series.
Every series handed to the core is a float Series named 'close' on a sorted,
duplicate-free UTC DatetimeIndex; missing closes stay as NaN.
"""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import DatetimeTZDtype

from .errors import MalformedData, TransportError

REQ_COLS = ("close",)
DATE_COLS = ("date", "datetime", "timestamp", "time", "ts_event")


def utc_day(value: Any) -> pd.Timestamp:
    """Coerces a date, ISO string or Timestamp to midnight UTC of its calendar day."""
    if isinstance(value, dt.datetime):
        ts = pd.Timestamp(value)
    elif isinstance(value, dt.date):
        ts = pd.Timestamp(value.isoformat())
    else:
        ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return ts.normalize()


def to_price_series(
    timestamps: Sequence[Any],
    closes: Sequence[Any],
    *,
    unit: str | None = None,
) -> pd.Series:
    """
    Builds a normalized close series from parallel timestamp/close arrays.
    `unit` is forwarded to pd.to_datetime for epoch inputs (e.g. "s").
    """
    if len(timestamps) != len(closes):
        raise MalformedData(
            f"timestamps/closes length mismatch: {len(timestamps)} != {len(closes)}"
        )

    try:
        idx = pd.DatetimeIndex(pd.to_datetime(list(timestamps), unit=unit, utc=True))
    except (ValueError, TypeError) as exc:
        raise MalformedData(f"unparseable session timestamps: {exc}") from exc

    values = pd.to_numeric(pd.Series(list(closes), dtype=object), errors="coerce")
    s = pd.Series(values.to_numpy(dtype=float), index=idx, name="close")
    # one bar per UTC day; a later stamp on the same day replaces an earlier one
    s = s.sort_index(kind="stable")
    s = s[~s.index.normalize().duplicated(keep="last")]
    return s


def load_daily_df(path: str | Path) -> pd.DataFrame:
    """Loads a daily OHLC/close file (CSV or Parquet) onto a UTC DatetimeIndex."""
    p = Path(path)
    if not p.exists():
        raise TransportError(f"Price file not found: {str(p)!r}")

    try:
        if p.suffix.lower() == ".parquet":
            df = pd.read_parquet(p)
        else:
            df = pd.read_csv(p)
    except (ValueError, OSError) as exc:
        raise MalformedData(f"load_daily_df: cannot read {str(p)!r}: {exc}") from exc

    df.columns = [str(c).strip().lower() for c in df.columns]

    if isinstance(df.index, pd.DatetimeIndex):
        idx = df.index
    else:
        dt_col = next((c for c in DATE_COLS if c in df.columns), None)
        if dt_col is None:
            raise MalformedData(
                f"load_daily_df: could not find date column in {str(p)!r}; "
                f"got columns={list(df.columns)}"
            )
        s = df[dt_col]
        if isinstance(s.dtype, DatetimeTZDtype):
            idx = pd.DatetimeIndex(s)
        else:
            idx = pd.DatetimeIndex(pd.to_datetime(s, errors="coerce", utc=True))
        if bool(pd.isna(idx).any()):
            raise MalformedData(
                f"load_daily_df: date parse failed for {dt_col!r} in {str(p)!r}"
            )
        df = df.drop(columns=[dt_col])

    if idx.tz is None:
        idx = idx.tz_localize("UTC")
    else:
        idx = idx.tz_convert("UTC")
    df.index = idx

    missing = set(REQ_COLS) - set(df.columns)
    if missing:
        raise MalformedData(
            f"load_daily_df: missing required columns {sorted(missing)} in {str(p)!r}; "
            f"got columns={list(df.columns)}"
        )

    # multi-symbol files repeat dates; a duplicate is the same (date, symbol)
    if "symbol" in df.columns:
        dup = pd.Series(list(zip(df.index, df["symbol"]))).duplicated(keep="last")
        df = df[~dup.to_numpy()]
    else:
        df = df[~df.index.duplicated(keep="last")]
    return df.sort_index(kind="stable")


def close_series(df: pd.DataFrame) -> pd.Series:
    """Extracts the normalized close series from a loaded daily frame."""
    if "close" not in df.columns:
        raise MalformedData(f"missing 'close' column; got columns={list(df.columns)}")
    return to_price_series(df.index, df["close"].tolist())


def slice_dates(series: pd.Series, start: Any, end: Any) -> pd.Series:
    """Keeps sessions whose UTC calendar day lies in [start, end] inclusive."""
    if series.empty:
        return series
    days = series.index.tz_convert("UTC").normalize()
    mask = np.asarray((days >= utc_day(start)) & (days <= utc_day(end)))
    return series[mask]
