"""
Unit Tests for MarketDataFetcher

Tests for:
- Query window policy (fixed coarse-timeframe window)
- Symbol and timeframe normalization
- Error propagation from the client
"""
import asyncio
import pytest
from datetime import date
from pathlib import Path

import httpx

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import FetchError, InvalidSymbolError, InvalidTimeframeError
from core.market.fetcher import MarketDataFetcher, normalize_symbol
from core.market.models import DateRange, Timeframe
from core.market.polygon_client import PolygonClient


def run(coro):
    return asyncio.run(coro)


BARS = [
    {"o": 10.0, "h": 11.0, "l": 9.0, "c": 10.5, "v": 100, "t": 1685626320000},
    {"o": 10.5, "h": 11.5, "l": 10.0, "c": 11.0, "v": 120, "t": 1685626200000},
]


@pytest.fixture
def seen():
    return []


@pytest.fixture
def fetcher_factory(seen):
    def factory(status_code=200, fixed_coarse_window=True):
        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            ticker = request.url.path.split("/")[4]
            return httpx.Response(status_code, json={"ticker": ticker, "results": BARS})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = PolygonClient("key", http_client=http)
        return MarketDataFetcher(client, fixed_coarse_window=fixed_coarse_window)

    return factory


JUNE = DateRange(date(2023, 6, 1), date(2023, 6, 30))


class TestQueryWindow:
    """Tests for the timeframe-dependent query window."""

    def test_one_minute_uses_caller_range(self, fetcher_factory, seen):
        run(fetcher_factory().fetch("AAPL", 1, JUNE))
        assert seen[0].url.path.endswith("/range/1/minute/2023-06-01/2023-06-30")

    @pytest.mark.parametrize("minutes", [5, 15, 30, 60])
    def test_coarse_uses_fixed_day(self, fetcher_factory, seen, minutes):
        run(fetcher_factory().fetch("AAPL", minutes, JUNE))
        assert seen[0].url.path.endswith(f"/range/{minutes}/minute/2023-02-18/2023-02-18")

    def test_fixed_window_can_be_disabled(self, fetcher_factory, seen):
        run(fetcher_factory(fixed_coarse_window=False).fetch("AAPL", 15, JUNE))
        assert seen[0].url.path.endswith("/range/15/minute/2023-06-01/2023-06-30")

    def test_query_window_helper(self, fetcher_factory):
        fetcher = fetcher_factory()
        assert fetcher.query_window(Timeframe.MINUTE_1, JUNE) == JUNE
        fixed = fetcher.query_window(Timeframe.MINUTE_60, JUNE)
        assert fixed.start == fixed.end == date(2023, 2, 18)


class TestFetch:
    """Tests for MarketDataFetcher.fetch."""

    def test_symbol_uppercased(self, fetcher_factory, seen):
        response = run(fetcher_factory().fetch("  aapl ", "1", JUNE))
        assert "/ticker/AAPL/" in seen[0].url.path
        assert response.symbol == "AAPL"

    def test_bar_order_not_changed(self, fetcher_factory):
        response = run(fetcher_factory().fetch("AAPL", 1, JUNE))
        assert [bar.close for bar in response.bars] == [10.5, 11.0]

    def test_one_request_per_call(self, fetcher_factory, seen):
        fetcher = fetcher_factory()
        run(fetcher.fetch("AAPL", 1, JUNE))
        run(fetcher.fetch("AAPL", 1, JUNE))
        assert len(seen) == 2

    def test_empty_symbol(self, fetcher_factory, seen):
        with pytest.raises(InvalidSymbolError):
            run(fetcher_factory().fetch("   ", 1, JUNE))
        assert seen == []

    def test_bad_timeframe(self, fetcher_factory, seen):
        with pytest.raises(InvalidTimeframeError):
            run(fetcher_factory().fetch("AAPL", 7, JUNE))
        assert seen == []

    def test_upstream_error(self, fetcher_factory):
        with pytest.raises(FetchError):
            run(fetcher_factory(status_code=500).fetch("AAPL", 1, JUNE))


class TestNormalizeSymbol:
    def test_normalize(self):
        assert normalize_symbol("msft") == "MSFT"

    def test_none(self):
        with pytest.raises(InvalidSymbolError):
            normalize_symbol(None)
