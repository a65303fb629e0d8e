"""
Error Taxonomy
--------------
Every failure that can abort a backtest run. Messages are meant to be shown
to the user verbatim.
"""

from __future__ import annotations


class BacktestError(RuntimeError):
    """Base class for errors that abort a backtest run."""


class TransportError(BacktestError):
    """Price source unreachable or returned a non-success status."""


class MalformedData(BacktestError):
    """Payload parsed but the expected fields are missing or inconsistent."""


class DateNotInSeries(BacktestError):
    """No trading session falls on the requested calendar day."""


class OffsetOutOfRange(BacktestError):
    """anchor + offset lands outside the fetched series."""


class InvalidPrice(BacktestError):
    """Resolved close is missing, non-finite or non-positive."""


class EmptyInput(BacktestError):
    """Aggregation (or a run) requested over zero events."""
