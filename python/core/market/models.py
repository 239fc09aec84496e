"""
Market data models.

Immutable value types produced by the fetcher and poller. Each fetch or poll
builds new instances; nothing here is merged or mutated after construction.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple

from core.errors import InvalidTimeframeError


class Timeframe(IntEnum):
    """Bar granularity in minutes."""
    MINUTE_1 = 1
    MINUTE_5 = 5
    MINUTE_15 = 15
    MINUTE_30 = 30
    MINUTE_60 = 60

    @property
    def minutes(self) -> int:
        return int(self.value)

    @property
    def is_coarse(self) -> bool:
        return self is not Timeframe.MINUTE_1

    @classmethod
    def parse(cls, value: Any) -> "Timeframe":
        """Accept 5, "5" or a Timeframe."""
        if isinstance(value, Timeframe):
            return value
        try:
            return cls(int(str(value).strip()))
        except ValueError:
            allowed = ", ".join(str(t.value) for t in cls)
            raise InvalidTimeframeError(
                f"Unsupported timeframe: {value!r} (allowed: {allowed})"
            ) from None


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive calendar date range.

    Construct through `DateRangeValidator.require` (or `DateRange.checked`)
    to guarantee the bounds invariant; `with_start` / `with_end` return a new
    range revalidated against the same rules.
    """
    start: date
    end: date

    @classmethod
    def checked(cls, start: date, end: date) -> "DateRange":
        from core.market.validator import DateRangeValidator
        return DateRangeValidator().require(start, end)

    def with_start(self, start: date) -> "DateRange":
        return DateRange.checked(start, self.end)

    def with_end(self, end: date) -> "DateRange":
        return DateRange.checked(self.start, end)


@dataclass(frozen=True)
class Bar:
    """Single OHLCV bar."""
    timestamp: datetime  # UTC, start of bucket
    open: float
    high: float
    low: float
    close: float
    volume: float
    vwap: Optional[float] = None
    transactions: Optional[int] = None

    @classmethod
    def from_polygon(cls, item: Dict[str, Any]) -> "Bar":
        """Build from a Polygon aggregate result ({t, o, h, l, c, v, vw, n})."""
        return cls(
            timestamp=datetime.fromtimestamp(item["t"] / 1000, tz=timezone.utc),
            open=float(item["o"]),
            high=float(item["h"]),
            low=float(item["l"]),
            close=float(item["c"]),
            volume=float(item.get("v", 0.0)),
            vwap=float(item["vw"]) if item.get("vw") is not None else None,
            transactions=int(item["n"]) if item.get("n") is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "vwap": self.vwap,
            "transactions": self.transactions,
        }


@dataclass(frozen=True)
class SeriesResponse:
    """One aggregate query result. Superseded wholesale by the next fetch."""
    symbol: str
    bars: Tuple[Bar, ...]
    request_id: str = ""
    result_count: int = 0
    query_count: int = 0
    adjusted: bool = True
    status: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.bars


@dataclass(frozen=True)
class SeriesStyle:
    """Rendering hints for one chart line."""
    color: str
    dash: Tuple[int, ...] = ()
    width: int = 1
    tension: float = 0.4
    fill: bool = False
    point_radius: int = 0
    axis: str = "price"

    def to_dict(self) -> dict:
        return {
            "color": self.color,
            "dash": list(self.dash),
            "width": self.width,
            "tension": self.tension,
            "fill": self.fill,
            "pointRadius": self.point_radius,
            "axis": self.axis,
        }


@dataclass(frozen=True)
class ChartLine:
    name: str
    values: Tuple[float, ...]
    style: SeriesStyle


@dataclass(frozen=True)
class ChartSeries:
    """Labeled numeric series ready for a line chart."""
    labels: Tuple[str, ...]
    series: Tuple[ChartLine, ...]
    tick_labels: Tuple[str, ...] = ()

    def line(self, name: str) -> ChartLine:
        for line in self.series:
            if line.name == name:
                return line
        raise KeyError(name)

    def to_dict(self) -> dict:
        return {
            "labels": list(self.labels),
            "tickLabels": list(self.tick_labels),
            "series": [
                {
                    "name": line.name,
                    "values": list(line.values),
                    "style": line.style.to_dict(),
                }
                for line in self.series
            ],
        }


class MarketState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    EXTENDED = "extended"

    @classmethod
    def parse(cls, value: str) -> "MarketState":
        # Polygon reports "extended-hours"
        normalized = (value or "").strip().lower()
        if normalized.startswith("extended"):
            return cls.EXTENDED
        return cls(normalized)


@dataclass(frozen=True)
class MarketStatusSnapshot:
    """Full-replace read of current market status."""
    market: MarketState
    exchanges: Dict[str, str]
    currencies: Dict[str, str]
    after_hours: bool
    early_hours: bool
    server_time: datetime

    @classmethod
    def from_polygon(cls, payload: Dict[str, Any]) -> "MarketStatusSnapshot":
        return cls(
            market=MarketState.parse(payload["market"]),
            exchanges=dict(payload.get("exchanges") or {}),
            currencies=dict(payload.get("currencies") or {}),
            after_hours=bool(payload.get("afterHours", False)),
            early_hours=bool(payload.get("earlyHours", False)),
            server_time=datetime.fromisoformat(payload["serverTime"]),
        )

    def to_dict(self) -> dict:
        return {
            "market": self.market.value,
            "exchanges": dict(self.exchanges),
            "currencies": dict(self.currencies),
            "afterHours": self.after_hours,
            "earlyHours": self.early_hours,
            "serverTime": self.server_time.isoformat(),
        }


def bars_from_payload(payload: Dict[str, Any]) -> List[Bar]:
    """Polygon omits `results` entirely when no bars match."""
    return [Bar.from_polygon(item) for item in payload.get("results") or []]


__all__ = [
    "Timeframe",
    "DateRange",
    "Bar",
    "SeriesResponse",
    "SeriesStyle",
    "ChartLine",
    "ChartSeries",
    "MarketState",
    "MarketStatusSnapshot",
    "bars_from_payload",
]
