"""
Backtest Engine
---------------
Per event: fetch a window of daily closes around the event date, locate the
event session, walk to the entry and exit sessions, and record the return.

Fetches run concurrently but every result lands in its event's slot, so the
output order always equals the input order. The first failure aborts the
whole run; no partial observation list is ever returned.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Sequence

import pandas as pd

from .errors import EmptyInput
from .metrics import percent_return, summarize, summary_rows
from .models import Event, ReturnObservation, SessionOffset, SummaryRow, SummaryStats
from .providers import PriceSeriesProvider
from .sessions import close_at, locate_session, resolve_offset

logger = logging.getLogger(__name__)

# Calendar-day cushion on top of the session span: weekends plus a few holidays
WINDOW_SLACK_DAYS = 10

OffsetLike = SessionOffset | int


def _sessions(offset: OffsetLike) -> int:
    return offset.sessions if isinstance(offset, SessionOffset) else int(offset)


def _as_offset(offset: OffsetLike) -> SessionOffset:
    if isinstance(offset, SessionOffset):
        return offset
    return SessionOffset(f"{int(offset):+d} sessions", int(offset))


def window_days_for(entry: int, exit_: int, minimum: int) -> int:
    """Calendar days either side of the event needed to hold the offset sessions."""
    reach = max(abs(entry), abs(exit_))
    return max(int(minimum), math.ceil(reach * 7 / 5) + WINDOW_SLACK_DAYS)


@dataclass(frozen=True)
class BacktestResult:
    entry: SessionOffset
    exit: SessionOffset
    observations: tuple[ReturnObservation, ...]
    stats: SummaryStats
    rows: tuple[SummaryRow, ...]


class BacktestEngine:
    """
    Event-relative return backtester.

    Usage:
        engine = BacktestEngine(YahooChartProvider(), "AAPL")
        observations = engine.run_sync(events, entry_offset=-1, exit_offset=0)
    """

    def __init__(
        self,
        provider: PriceSeriesProvider,
        symbol: str,
        *,
        window_days: int = 40,
        max_concurrency: int = 4,
    ):
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        self.provider = provider
        self.symbol = symbol
        self.window_days = window_days
        self.max_concurrency = max_concurrency

    async def _fetch_window(self, event: Event, days: int) -> pd.Series:
        center = pd.Timestamp(event.date.isoformat())
        start = (center - pd.Timedelta(days=days)).date()
        end = (center + pd.Timedelta(days=days)).date()
        return await self.provider.fetch_daily_series(self.symbol, start, end)

    async def observe(
        self, event: Event, entry_offset: OffsetLike, exit_offset: OffsetLike
    ) -> ReturnObservation:
        """Return observation for a single event."""
        entry, exit_ = _sessions(entry_offset), _sessions(exit_offset)
        days = window_days_for(entry, exit_, self.window_days)

        series = await self._fetch_window(event, days)
        anchor = locate_session(series, event.date)
        entry_price = close_at(series, resolve_offset(series, anchor, entry))
        exit_price = close_at(series, resolve_offset(series, anchor, exit_))

        return ReturnObservation(label=event.label, ret=percent_return(entry_price, exit_price))

    async def run(
        self,
        events: Sequence[Event],
        entry_offset: OffsetLike,
        exit_offset: OffsetLike,
    ) -> list[ReturnObservation]:
        """Observations for all events, in input order, or the first error."""
        events = list(events)
        if not events:
            raise EmptyInput("No events to backtest")

        logger.info(
            "backtest %s: %d events, entry %+d, exit %+d",
            self.symbol,
            len(events),
            _sessions(entry_offset),
            _sessions(exit_offset),
        )

        sem = asyncio.Semaphore(self.max_concurrency)

        async def _one(ev: Event) -> ReturnObservation:
            async with sem:
                return await self.observe(ev, entry_offset, exit_offset)

        tasks = [asyncio.ensure_future(_one(ev)) for ev in events]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for t in tasks:
                if not t.done():
                    t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        # Earliest failing event wins so the reported error does not depend on timing
        for ev, t in zip(events, tasks):
            if t.cancelled():
                continue
            exc = t.exception()
            if exc is not None:
                logger.warning("event %s (%s) failed: %s", ev.label, ev.date, exc)
                raise exc

        out = [t.result() for t in tasks]
        logger.info("backtest %s: %d observations", self.symbol, len(out))
        return out

    async def run_summary(
        self,
        events: Sequence[Event],
        entry_offset: OffsetLike,
        exit_offset: OffsetLike,
    ) -> BacktestResult:
        """run() plus aggregate statistics and the Avg/StDev/WinRate table."""
        observations = await self.run(events, entry_offset, exit_offset)
        stats = summarize(observations)
        return BacktestResult(
            entry=_as_offset(entry_offset),
            exit=_as_offset(exit_offset),
            observations=tuple(observations),
            stats=stats,
            rows=tuple(summary_rows(observations, stats)),
        )

    async def _close_provider(self) -> None:
        aclose = getattr(self.provider, "aclose", None)
        if aclose is not None:
            await aclose()

    def run_sync(
        self,
        events: Sequence[Event],
        entry_offset: OffsetLike,
        exit_offset: OffsetLike,
    ) -> list[ReturnObservation]:
        """Blocking wrapper around run() for scripts and the CLI."""

        async def _main() -> list[ReturnObservation]:
            try:
                return await self.run(events, entry_offset, exit_offset)
            finally:
                await self._close_provider()

        return asyncio.run(_main())

    def run_summary_sync(
        self,
        events: Sequence[Event],
        entry_offset: OffsetLike,
        exit_offset: OffsetLike,
    ) -> BacktestResult:
        async def _main() -> BacktestResult:
            try:
                return await self.run_summary(events, entry_offset, exit_offset)
            finally:
                await self._close_provider()

        return asyncio.run(_main())
