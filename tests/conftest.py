"""
Pytest Fixtures
---------------
Shared resources for testing.
- daily_series: deterministic business-day closes covering 2019-2020, with
  the WWDC 2019/2020 scenario prices pinned.
- StaticProvider: in-memory PriceSeriesProvider with optional delays/failures.
- daily_csv: the same series written to disk for file-provider and CLI tests.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from event_backtester.data_io import slice_dates, to_price_series
from event_backtester.errors import TransportError
from event_backtester.models import Event

CONFIG_DIR = Path(__file__).resolve().parents[1] / "configs"

SCENARIO_PRICES = {
    "2019-05-31": 100.0,
    "2019-06-03": 102.0,
    "2020-06-19": 200.0,
    "2020-06-22": 198.0,
}


def make_series(days, closes) -> pd.Series:
    """Close series stamped at 13:30 UTC, the way the chart API stamps daily bars."""
    idx = pd.DatetimeIndex(pd.to_datetime(list(days))) + pd.Timedelta(hours=13, minutes=30)
    return to_price_series(idx.tz_localize("UTC"), list(closes))


class StaticProvider:
    """Serves slices of a fixed series; records every request."""

    def __init__(self, series: pd.Series, *, delays=None, fail_on=None):
        self.series = series
        self.delays = delays or {}
        self.fail_on = fail_on or {}
        self.calls: list[tuple[str, object, object]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    def _center(self, start, end) -> str:
        mid = pd.Timestamp(start) + (pd.Timestamp(end) - pd.Timestamp(start)) / 2
        return mid.date().isoformat()

    async def fetch_daily_series(self, symbol, start, end):
        self.calls.append((symbol, start, end))
        center = self._center(start, end)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(center, 0.0))
            if center in self.fail_on:
                raise self.fail_on[center]
            return slice_dates(self.series, start, end)
        finally:
            self.in_flight -= 1

    async def aclose(self):
        self.closed = True


@pytest.fixture
def daily_series() -> pd.Series:
    days = pd.bdate_range("2019-01-01", "2020-12-31")
    rng = np.random.default_rng(7)
    closes = 150 + rng.standard_normal(len(days)).cumsum()
    s = make_series(days, closes)
    for day, px in SCENARIO_PRICES.items():
        s[s.index.normalize() == pd.Timestamp(day, tz="UTC")] = px
    return s


@pytest.fixture
def scenario_events() -> list[Event]:
    return [Event(2019, "2019-06-03"), Event(2020, "2020-06-22")]


@pytest.fixture
def provider_cls():
    return StaticProvider


@pytest.fixture
def transport_error():
    return TransportError("Network error 503")


@pytest.fixture
def daily_csv(tmp_path: Path, daily_series: pd.Series) -> Path:
    df = pd.DataFrame(
        {
            "date": daily_series.index.strftime("%Y-%m-%d"),
            "close": daily_series.to_numpy(),
        }
    )
    p = tmp_path / "aapl_daily.csv"
    df.to_csv(p, index=False)
    return p


@pytest.fixture
def scenario_config(tmp_path: Path, daily_csv: Path) -> Path:
    p = tmp_path / "scenario.yaml"
    p.write_text(
        f"""
symbol: AAPL
events:
  - {{label: 2019, date: "2019-06-03"}}
  - {{label: 2020, date: "2020-06-22"}}
provider:
  kind: file
  data_path: {daily_csv.as_posix()}
""",
        encoding="utf-8",
    )
    return p
