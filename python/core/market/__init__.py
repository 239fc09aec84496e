"""
Market data pipeline: range validation, Polygon fetches, chart shaping and
market status polling.
"""

from core.market.models import (
    Bar,
    ChartLine,
    ChartSeries,
    DateRange,
    MarketState,
    MarketStatusSnapshot,
    SeriesResponse,
    Timeframe,
)
from core.market.validator import DateRangeCheck, DateRangeValidator, RangeViolation, parse_date
from core.market.polygon_client import PolygonClient
from core.market.fetcher import MarketDataFetcher, normalize_symbol
from core.market.transformer import ChartSeriesTransformer, axis_tick_labels, transform
from core.market.poller import MarketStatusPoller, PollerHandle, PollerState
from core.market.session import ChartSession, ChartView

__all__ = [
    # Models
    "Bar",
    "ChartLine",
    "ChartSeries",
    "DateRange",
    "MarketState",
    "MarketStatusSnapshot",
    "SeriesResponse",
    "Timeframe",
    # Validation
    "DateRangeCheck",
    "DateRangeValidator",
    "RangeViolation",
    "parse_date",
    # Fetching
    "PolygonClient",
    "MarketDataFetcher",
    "normalize_symbol",
    # Chart
    "ChartSeriesTransformer",
    "axis_tick_labels",
    "transform",
    # Status
    "MarketStatusPoller",
    "PollerHandle",
    "PollerState",
    # Session
    "ChartSession",
    "ChartView",
]
