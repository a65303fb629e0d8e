"""
Session Resolution
------------------
Maps calendar dates onto positions in an irregular trading-session sequence
and walks signed session offsets from there.
Matching is by UTC calendar day; there is no roll to a neighbouring session.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from .data_io import utc_day
from .errors import DateNotInSeries, InvalidPrice, OffsetOutOfRange


def session_days(series: pd.Series) -> pd.DatetimeIndex:
    """UTC calendar day of every session in the series."""
    if not isinstance(series.index, pd.DatetimeIndex):
        raise TypeError("session resolution requires a DatetimeIndex")
    idx = series.index
    if idx.tz is None:
        idx = idx.tz_localize("UTC")
    return idx.tz_convert("UTC").normalize()


def locate_session(series: pd.Series, target_date: Any) -> int:
    """Returns the position of the session falling on `target_date`."""
    target = utc_day(target_date)
    hits = np.flatnonzero(session_days(series) == target)
    if hits.size == 0:
        raise DateNotInSeries(
            f"No trading session on {target.date().isoformat()} "
            f"({len(series)} sessions in window)"
        )
    return int(hits[0])


def resolve_offset(series: pd.Series, anchor_idx: int, offset: int) -> int:
    """anchor_idx + offset, or OffsetOutOfRange when it leaves [0, len)."""
    target = int(anchor_idx) + int(offset)
    if target < 0 or target >= len(series):
        raise OffsetOutOfRange(
            f"Offset outside range: session {anchor_idx} {int(offset):+d} -> {target}, "
            f"window holds {len(series)} sessions"
        )
    return target


def close_at(series: pd.Series, idx: int) -> float:
    price = series.iloc[idx]
    if pd.isna(price):
        day = session_days(series)[idx].date().isoformat()
        raise InvalidPrice(f"Close price missing on {day}")
    return float(price)
