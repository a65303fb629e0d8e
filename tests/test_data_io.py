"""
Tests for event_backtester.data_io
----------------------------------
Coverage:
- Series normalization (UTC, sort, de-dup, null closes).
- Daily file loading (CSV/Parquet) and window slicing.
"""

import datetime as dt

import numpy as np
import pandas as pd
import pytest

from event_backtester.data_io import (
    close_series,
    load_daily_df,
    slice_dates,
    to_price_series,
    utc_day,
)
from event_backtester.errors import MalformedData, TransportError


def test_utc_day_inputs():
    want = pd.Timestamp("2019-06-03", tz="UTC")
    assert utc_day("2019-06-03") == want
    assert utc_day(dt.date(2019, 6, 3)) == want
    assert utc_day(dt.datetime(2019, 6, 3, 15, 0)) == want
    assert utc_day(pd.Timestamp("2019-06-03 13:30", tz="UTC")) == want


def test_to_price_series_sorts_and_dedups():
    s = to_price_series(
        [1559655000, 1559568600, 1559568600],
        [3.0, "bad", 2.0],
        unit="s",
    )
    assert list(s.index.strftime("%Y-%m-%d")) == ["2019-06-03", "2019-06-04"]
    assert s.tolist() == [2.0, 3.0]
    assert s.name == "close"


def test_to_price_series_nulls_become_nan():
    s = to_price_series(["2019-06-03", "2019-06-04"], [None, 1.5])
    assert np.isnan(s.iloc[0])


def test_to_price_series_rejects_bad_timestamps():
    with pytest.raises(MalformedData):
        to_price_series(["not a date"], [1.0])


def test_load_daily_csv(daily_csv):
    df = load_daily_df(daily_csv)
    assert str(df.index.tz) == "UTC"
    assert df.index.is_monotonic_increasing
    s = close_series(df)
    assert s.loc["2019-06-03"].item() == 102.0


def test_load_daily_parquet_with_index(tmp_path, daily_series):
    p = tmp_path / "px.parquet"
    daily_series.to_frame().to_parquet(p)
    df = load_daily_df(p)
    assert len(df) == len(daily_series)
    assert df.index.equals(daily_series.index)


def test_load_daily_missing_close(tmp_path):
    p = tmp_path / "bad.csv"
    pd.DataFrame({"date": ["2019-06-03"], "open": [1.0]}).to_csv(p, index=False)
    with pytest.raises(MalformedData, match="close"):
        load_daily_df(p)


def test_load_daily_missing_date_column(tmp_path):
    p = tmp_path / "nodate.csv"
    pd.DataFrame({"close": [1.0]}).to_csv(p, index=False)
    with pytest.raises(MalformedData, match="date column"):
        load_daily_df(p)


def test_load_daily_missing_file(tmp_path):
    with pytest.raises(TransportError):
        load_daily_df(tmp_path / "missing.csv")


def test_slice_dates_inclusive(daily_series):
    s = slice_dates(daily_series, "2019-05-31", dt.date(2019, 6, 4))
    assert list(s.index.strftime("%Y-%m-%d")) == ["2019-05-31", "2019-06-03", "2019-06-04"]


def test_to_price_series_one_bar_per_day():
    # a live intraday stamp next to the daily bar must not add a session
    s = to_price_series(
        ["2019-06-03 13:30", "2019-06-04 13:30", "2019-06-04 19:55"],
        [1.0, 2.0, 2.5],
    )
    assert list(s.index.strftime("%Y-%m-%d")) == ["2019-06-03", "2019-06-04"]
    assert s.tolist() == [1.0, 2.5]


def test_load_daily_empty_file(tmp_path):
    p = tmp_path / "empty.csv"
    p.write_text("", encoding="utf-8")
    with pytest.raises(MalformedData, match="cannot read"):
        load_daily_df(p)


def test_load_daily_corrupt_parquet(tmp_path):
    p = tmp_path / "corrupt.parquet"
    p.write_bytes(b"not a parquet file")
    with pytest.raises(MalformedData, match="cannot read"):
        load_daily_df(p)
