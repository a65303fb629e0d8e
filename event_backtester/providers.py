"""
Price Series Providers
----------------------
Sources of daily close series for a date window.
- YahooChartProvider: Yahoo Finance v8 chart endpoint over httpx.
- FilePriceProvider: a local daily CSV/Parquet file.

Transport problems surface as TransportError, unusable payloads as
MalformedData. Timeouts and connection retries live here, never in the engine.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

import httpx
import pandas as pd

from .config import ProviderCfg
from .data_io import close_series, load_daily_df, slice_dates, to_price_series, utc_day
from .errors import MalformedData, TransportError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; event-backtester)",
    "Accept": "application/json",
}


class PriceSeriesProvider(Protocol):
    async def fetch_daily_series(
        self, symbol: str, start: Any, end: Any
    ) -> pd.Series: ...


def parse_chart_payload(payload: Any) -> pd.Series:
    """Extracts (timestamp, close) pairs from a Yahoo chart JSON document."""
    chart = payload.get("chart") if isinstance(payload, dict) else None
    results = chart.get("result") if isinstance(chart, dict) else None
    result = results[0] if isinstance(results, list) and results else None
    if not isinstance(result, dict):
        detail = ""
        if isinstance(chart, dict) and chart.get("error"):
            detail = f": {chart['error']}"
        raise MalformedData(f"Malformed Yahoo payload{detail}")

    timestamps = result.get("timestamp")
    indicators = result.get("indicators") or {}
    quotes = indicators.get("quote") if isinstance(indicators, dict) else None
    closes = quotes[0].get("close") if isinstance(quotes, list) and quotes else None

    if not isinstance(timestamps, list):
        raise MalformedData("Malformed Yahoo payload: missing timestamps")
    if not isinstance(closes, list):
        raise MalformedData("Malformed Yahoo payload: missing close prices")

    return to_price_series(timestamps, closes, unit="s")


class YahooChartProvider:
    """
    Daily closes from the Yahoo chart API.

    Usage:
        provider = YahooChartProvider(timeout=10.0)
        series = await provider.fetch_daily_series("AAPL", "2019-04-24", "2019-07-13")
        await provider.aclose()
    """

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com/v8/finance/chart",
        timeout: float = 30.0,
        retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            transport = self._transport or httpx.AsyncHTTPTransport(retries=self.retries)
            self._client = httpx.AsyncClient(
                timeout=self.timeout, transport=transport, headers=DEFAULT_HEADERS
            )
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def request_params(self, start: Any, end: Any) -> dict[str, str | int]:
        """Epoch-second bounds covering [start, end] as whole UTC days."""
        period1 = int(utc_day(start).timestamp())
        period2 = int((utc_day(end) + pd.Timedelta(days=1)).timestamp())
        return {"period1": period1, "period2": period2, "interval": "1d"}

    async def fetch_daily_series(self, symbol: str, start: Any, end: Any) -> pd.Series:
        url = f"{self.base_url}/{symbol}"
        params = self.request_params(start, end)
        logger.debug("GET %s %s", url, params)

        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"Network error: {exc}") from exc

        if not response.is_success:
            raise TransportError(f"Network error {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedData(f"Malformed Yahoo payload: {exc}") from exc

        series = parse_chart_payload(payload)
        return slice_dates(series, start, end)


class FilePriceProvider:
    """
    Daily closes from a local CSV/Parquet file.
    The file is read once; an optional 'symbol' column selects the instrument.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._frame: pd.DataFrame | None = None

    def _load(self) -> pd.DataFrame:
        if self._frame is None:
            self._frame = load_daily_df(self.path)
            logger.debug("loaded %d rows from %s", len(self._frame), self.path)
        return self._frame

    async def fetch_daily_series(self, symbol: str, start: Any, end: Any) -> pd.Series:
        df = self._load()
        if "symbol" in df.columns:
            df = df[df["symbol"].astype(str).str.upper() == symbol.upper()]
            if df.empty:
                raise MalformedData(f"No rows for symbol {symbol!r} in {str(self.path)!r}")
        return slice_dates(close_series(df), start, end)


def make_provider(cfg: ProviderCfg, data_path: str | None = None) -> PriceSeriesProvider:
    """Builds the provider named by cfg.kind; an explicit data_path forces the file source."""
    path = data_path or cfg.data_path
    if data_path or cfg.kind == "file":
        if not path:
            raise ValueError("Configuration Error: provider.kind 'file' requires data_path")
        return FilePriceProvider(path)
    return YahooChartProvider(
        base_url=cfg.base_url, timeout=cfg.timeout_s, retries=cfg.retries
    )
