"""
Polygon.io Client

Thin async wrapper over the two Polygon endpoints the dashboard uses:
aggregate bars and current market status.
"""
import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from core.config.constants import CONSTANTS
from core.errors import ConfigurationError, FetchError
from core.market.models import (
    DateRange,
    MarketStatusSnapshot,
    SeriesResponse,
    Timeframe,
    bars_from_payload,
)

logger = logging.getLogger(__name__)


class PolygonClient:
    """
    Polygon market data client.

    Supports:
    - Minute aggregates for a symbol over a date range
    - Current market / exchange status

    Each call is a single request; retries are the caller's business.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = CONSTANTS.transport.POLYGON_BASE_URL,
        timeout: float = CONSTANTS.transport.HTTP_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Polygon API key
            base_url: API root, overridable for tests and proxies
            timeout: Per-request timeout in seconds
            http_client: Pre-built client (tests inject a MockTransport here)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize the HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError(
                "Polygon API key is not configured", setting="polygon_api_key"
            )
        return self.api_key

    @staticmethod
    def aggregates_path(
        symbol: str,
        timeframe: Timeframe,
        start: date,
        end: date,
    ) -> str:
        return (
            f"/v2/aggs/ticker/{quote(symbol, safe='')}/range/"
            f"{timeframe.minutes}/minute/{start.isoformat()}/{end.isoformat()}"
        )

    def build_aggregates_request(
        self,
        symbol: str,
        timeframe: Timeframe,
        date_range: DateRange,
    ) -> Tuple[str, Dict[str, str]]:
        """Return (url, query params) for an aggregates query."""
        url = self.base_url + self.aggregates_path(
            symbol, timeframe, date_range.start, date_range.end
        )
        params = {"adjusted": "true", "sort": "asc", "apiKey": self._require_key()}
        return url, params

    async def _get_json(self, url: str, params: Dict[str, str], what: str) -> Dict[str, Any]:
        client = self._get_client()
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"[MARKET] {what} request failed: {e}")
            raise FetchError(f"Failed to fetch {what}: {e}") from e

        if not response.is_success:
            logger.warning(f"[MARKET] {what} request -> HTTP {response.status_code}")
            raise FetchError(
                f"Failed to fetch {what} (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(f"Failed to decode {what} response") from e
        if not isinstance(payload, dict):
            raise FetchError(f"Unexpected {what} response shape")
        return payload

    async def get_aggregates(
        self,
        symbol: str,
        timeframe: Timeframe,
        date_range: DateRange,
    ) -> SeriesResponse:
        """
        Fetch minute aggregates.

        Bars come back in the order Polygon sends them (sort=asc is
        requested); they are not re-sorted here.
        """
        url, params = self.build_aggregates_request(symbol, timeframe, date_range)
        payload = await self._get_json(url, params, "data")

        try:
            bars = bars_from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(f"Malformed bar in response: {e}") from e

        return SeriesResponse(
            symbol=payload.get("ticker", symbol),
            bars=tuple(bars),
            request_id=payload.get("request_id", ""),
            result_count=int(payload.get("resultsCount", len(bars))),
            query_count=int(payload.get("queryCount", 0)),
            adjusted=bool(payload.get("adjusted", True)),
            status=payload.get("status", ""),
            raw=payload,
        )

    async def get_market_status(self) -> MarketStatusSnapshot:
        """Fetch the current market status snapshot."""
        url = f"{self.base_url}/v1/marketstatus/now"
        params = {"apiKey": self._require_key()}
        payload = await self._get_json(url, params, "market status")

        try:
            return MarketStatusSnapshot.from_polygon(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(f"Malformed market status response: {e}") from e
