"""Yahoo Finance history provider -- fetches daily closes via httpx (no yfinance dependency).

Used by the backfill service to seed chart history with real closes.
Example tickers: MSFT, AAPL, SPY, QQQ
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import httpx

from core.models.market import MarketData

logger = logging.getLogger(__name__)

# Yahoo Finance chart API endpoint
_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{ticker}"

# Calendar days requested per trading day wanted (weekends and holidays)
_CALENDAR_SPAN = 1.6


class YahooFinanceProvider:
    """Fetches daily closes from Yahoo Finance via their public chart API.

    Implements the HistoryProvider protocol. Non-200 responses and chart
    errors yield an empty list; transport errors propagate to the caller.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "nowmarket/0.1",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )

    @property
    def name(self) -> str:
        return "yahoo_finance"

    async def fetch_closes(self, ticker: str, days: int) -> list[float]:
        """Up to `days` daily closes, oldest first."""
        records = await self.fetch_history(ticker, days)
        return [r.close for r in records]

    async def fetch_history(self, ticker: str, days: int) -> list[MarketData]:
        """Fetch the trailing `days` daily bars for one ticker."""
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=int(days * _CALENDAR_SPAN) + 1)
        params = {
            "period1": int(start.timestamp()),
            "period2": int(end.timestamp()),
            "interval": "1d",
            "includePrePost": "false",
        }

        query_ticker = ticker.upper()
        url = _CHART_URL.format(ticker=query_ticker)
        response = await self._client.get(url, params=params)

        if response.status_code != 200:
            logger.warning(
                "Yahoo Finance returned %d for %s", response.status_code, query_ticker
            )
            return []

        data = response.json()
        chart = data.get("chart", {})
        result = chart.get("result")

        if not result:
            error = chart.get("error", {})
            logger.warning("Yahoo Finance error for %s: %s", query_ticker, error)
            return []

        records = self._parse_chart_result(query_ticker, result[0])
        return records[-days:]

    def _parse_chart_result(self, ticker: str, result: dict) -> list[MarketData]:
        """Parse a chart API result into MarketData rows."""
        timestamps = result.get("timestamp", [])
        quote = result.get("indicators", {}).get("quote", [{}])[0]
        closes = quote.get("close", [])

        records: list[MarketData] = []
        for i, ts in enumerate(timestamps):
            close = closes[i] if i < len(closes) else None
            if close is None:
                continue  # skip days with no data

            records.append(MarketData(
                ticker=ticker,
                timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
                close=close,
                source="yahoo_finance",
            ))

        return records

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
