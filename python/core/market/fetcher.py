"""
Market Data Fetcher

Normalizes (symbol, timeframe, range) into one Polygon aggregates request.

Query window policy: the 1-minute timeframe honors the caller's range.
Coarser timeframes query a single fixed historical day unless
`fixed_coarse_window` is disabled.
"""
import logging
from typing import Any, Optional

from core.config.constants import CONSTANTS
from core.errors import InvalidSymbolError
from core.market.models import DateRange, SeriesResponse, Timeframe
from core.market.polygon_client import PolygonClient

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: Optional[str]) -> str:
    """Strip and uppercase a ticker; empty tickers are rejected."""
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise InvalidSymbolError("Symbol must not be empty")
    return cleaned


class MarketDataFetcher:
    """
    Fetches bar series for the chart.

    No deduplication, queueing or retry: every call is exactly one request.
    Concurrent calls race; ordering of their results is the caller's concern
    (see ChartSession).
    """

    def __init__(
        self,
        client: PolygonClient,
        fixed_coarse_window: bool = True,
    ):
        self.client = client
        self.fixed_coarse_window = fixed_coarse_window

    def query_window(self, timeframe: Timeframe, date_range: DateRange) -> DateRange:
        """Date window actually sent upstream for this timeframe."""
        if timeframe.is_coarse and self.fixed_coarse_window:
            day = CONSTANTS.market.FIXED_WINDOW_DATE
            return DateRange(start=day, end=day)
        return date_range

    async def fetch(
        self,
        symbol: str,
        timeframe: Any,
        date_range: DateRange,
    ) -> SeriesResponse:
        """
        Fetch bars for a validated range.

        Raises:
            InvalidSymbolError / InvalidTimeframeError: bad input, nothing sent
            ConfigurationError: Polygon key missing, nothing sent
            FetchError: network failure or non-2xx response
        """
        ticker = normalize_symbol(symbol)
        tf = Timeframe.parse(timeframe)
        window = self.query_window(tf, date_range)

        logger.info(
            f"[MARKET] Fetching {ticker} {tf.minutes}m {window.start}..{window.end}",
            extra={"symbol": ticker, "timeframe": tf.minutes},
        )
        response = await self.client.get_aggregates(ticker, tf, window)
        logger.info(
            f"[MARKET] {ticker}: {len(response.bars)} bars",
            extra={"symbol": ticker, "request_id": response.request_id},
        )
        return response
