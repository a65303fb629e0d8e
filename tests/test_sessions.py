"""
Tests for event_backtester.sessions
-----------------------------------
Coverage:
- Exact calendar-day location (no nearest-session roll).
- Bounded offset resolution.
- Missing close detection.
"""

import datetime as dt

import numpy as np
import pandas as pd
import pytest

from event_backtester.errors import DateNotInSeries, InvalidPrice, OffsetOutOfRange
from event_backtester.sessions import close_at, locate_session, resolve_offset

from conftest import make_series


@pytest.fixture
def week():
    # Mon 2019-06-03 .. Fri 2019-06-07, then Mon 2019-06-10
    days = ["2019-06-03", "2019-06-04", "2019-06-05", "2019-06-06", "2019-06-07", "2019-06-10"]
    return make_series(days, [100.0, 101.0, 102.0, 103.0, 104.0, 105.0])


@pytest.mark.parametrize(
    "target",
    ["2019-06-05", dt.date(2019, 6, 5), pd.Timestamp("2019-06-05"), pd.Timestamp("2019-06-05", tz="UTC")],
)
def test_locate_matches_utc_day_not_instant(week, target):
    # sessions are stamped 13:30 UTC; the target is a bare day
    assert locate_session(week, target) == 2


def test_locate_every_session(week):
    for i, ts in enumerate(week.index):
        assert locate_session(week, ts.date()) == i


def test_locate_weekend_fails_fast(week):
    with pytest.raises(DateNotInSeries, match="2019-06-08"):
        locate_session(week, "2019-06-08")


def test_locate_empty_series():
    with pytest.raises(DateNotInSeries):
        locate_session(make_series([], []), "2019-06-03")


@pytest.mark.parametrize("anchor,offset", [(0, 0), (1, -1), (2, 3), (5, 0), (3, -3)])
def test_resolve_in_bounds(week, anchor, offset):
    assert resolve_offset(week, anchor, offset) == anchor + offset


@pytest.mark.parametrize("anchor,offset", [(0, -1), (5, 1), (2, 20), (2, -5)])
def test_resolve_out_of_bounds_never_clamps(week, anchor, offset):
    with pytest.raises(OffsetOutOfRange, match="Offset outside range"):
        resolve_offset(week, anchor, offset)


def test_close_at_reads_price(week):
    assert close_at(week, 4) == 104.0


def test_close_at_missing_price():
    s = make_series(["2019-06-03", "2019-06-04"], [100.0, None])
    assert np.isnan(s.iloc[1])
    with pytest.raises(InvalidPrice, match="2019-06-04"):
        close_at(s, 1)
