"""
Return Metrics
--------------
Per-event percentage returns and their aggregate statistics
(mean, population stdev, win rate), plus the summary table layout.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd

from .errors import EmptyInput, InvalidPrice
from .models import ReturnObservation, SummaryRow, SummaryStats

AGGREGATE_LABELS = ("Avg", "StDev", "WinRate")


def round_half_up(x: float, places: int) -> float:
    """
    Rounds the exact binary value of x half away from zero.
    Matches fixed-point display rounding (1.005 -> 1.0, 0.125 -> 0.13).
    """
    q = Decimal(1).scaleb(-places)
    out = float(Decimal(float(x)).quantize(q, rounding=ROUND_HALF_UP))
    return out + 0.0  # -0.0 -> 0.0


def _is_valid_price(p: Any) -> bool:
    if p is None:
        return False
    try:
        f = float(p)
    except (TypeError, ValueError):
        return False
    return bool(np.isfinite(f)) and f > 0.0


def percent_return(entry_price: float, exit_price: float) -> float:
    """(exit - entry) / entry * 100, rounded to 2 decimals."""
    if not _is_valid_price(entry_price):
        raise InvalidPrice(f"Invalid entry price: {entry_price!r}")
    if not _is_valid_price(exit_price):
        raise InvalidPrice(f"Invalid exit price: {exit_price!r}")
    entry = float(entry_price)
    return round_half_up((float(exit_price) - entry) / entry * 100.0, 2)


def _returns(observations: Iterable[ReturnObservation]) -> pd.Series:
    return pd.Series([float(o.ret) for o in observations], dtype=float)


def summarize(observations: Sequence[ReturnObservation]) -> SummaryStats:
    """Mean, population stdev (ddof=0) and win rate of the per-event returns."""
    r = _returns(observations)
    if r.empty:
        raise EmptyInput("Cannot summarize zero observations")

    mean = float(r.mean())
    stdev = float(r.std(ddof=0))
    wr = float((r > 0).mean())

    return SummaryStats(
        mean=round_half_up(mean, 2),
        stdev=round_half_up(stdev, 2),
        win_rate=round_half_up(wr * 100.0, 0),
    )


def summary_rows(
    observations: Sequence[ReturnObservation], stats: SummaryStats | None = None
) -> list[SummaryRow]:
    """Event rows in input order followed by Avg, StDev, WinRate."""
    if stats is None:
        stats = summarize(observations)
    rows = [SummaryRow(label=o.label, value=o.ret) for o in observations]
    for label, value in zip(AGGREGATE_LABELS, (stats.mean, stats.stdev, stats.win_rate)):
        rows.append(SummaryRow(label=label, value=value, kind="aggregate"))
    return rows


def rows_frame(rows: Sequence[SummaryRow]) -> pd.DataFrame:
    """Tabular view of summary rows (label, ret, kind)."""
    return pd.DataFrame(
        {
            "label": [str(r.label) for r in rows],
            "ret": [float(r.value) for r in rows],
            "kind": [r.kind for r in rows],
        }
    )
