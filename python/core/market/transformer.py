"""
Chart Series Transformer

Maps a SeriesResponse onto the three price lines the dashboard draws
(close, high, low) plus the subsampled x-axis tick labels.
"""
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

from core.config.constants import CONSTANTS
from core.market.models import ChartLine, ChartSeries, SeriesResponse, SeriesStyle


CLOSE_STYLE = SeriesStyle(color="#2196f3")
HIGH_STYLE = SeriesStyle(color="#4caf50", dash=(5, 5))
LOW_STYLE = SeriesStyle(color="#f44336", dash=(5, 5))


def format_timestamp(ts: datetime, tz: str = "UTC") -> str:
    """Render a bar timestamp as 'YYYY-MM-DD HH:MM' in the given zone."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    zone = timezone.utc if tz.upper() == "UTC" else ZoneInfo(tz)
    return ts.astimezone(zone).strftime(CONSTANTS.market.LABEL_FORMAT)


def axis_tick_labels(
    labels: Sequence[str],
    max_ticks: int = CONSTANTS.market.MAX_AXIS_TICKS,
) -> List[str]:
    """
    Subsample axis labels to at most `max_ticks` visible entries.

    Every position whose index is a multiple of ceil(N / max_ticks) keeps its
    label; all other positions become "". The result has the same length as
    `labels` so it lines up index-for-index with the data.
    """
    total = len(labels)
    if total == 0:
        return []
    step = math.ceil(total / max_ticks)
    return [label if i % step == 0 else "" for i, label in enumerate(labels)]


class ChartSeriesTransformer:
    """Pure, deterministic SeriesResponse -> ChartSeries mapping."""

    def __init__(
        self,
        tz: str = "UTC",
        max_ticks: int = CONSTANTS.market.MAX_AXIS_TICKS,
    ):
        self.tz = tz
        self.max_ticks = max_ticks

    def transform(self, response: SeriesResponse) -> Optional[ChartSeries]:
        """
        Returns None when there is nothing to render.

        Bar order is preserved: label i, and value i of every line, come from
        bar i.
        """
        if response.is_empty:
            return None

        bars = response.bars
        labels = tuple(format_timestamp(bar.timestamp, self.tz) for bar in bars)

        return ChartSeries(
            labels=labels,
            series=(
                ChartLine("Close Price", tuple(bar.close for bar in bars), CLOSE_STYLE),
                ChartLine("High Price", tuple(bar.high for bar in bars), HIGH_STYLE),
                ChartLine("Low Price", tuple(bar.low for bar in bars), LOW_STYLE),
            ),
            tick_labels=tuple(axis_tick_labels(labels, self.max_ticks)),
        )


def transform(response: SeriesResponse, tz: str = "UTC") -> Optional[ChartSeries]:
    """Module-level shortcut for the default transformer."""
    return ChartSeriesTransformer(tz=tz).transform(response)
