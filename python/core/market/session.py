"""
Chart Session

Explicit state holder for one chart view: the user's (symbol, timeframe,
range) selection and the last committed result.

Refreshes may overlap. Each refresh takes a ticket from a monotonically
increasing generation counter, and only the newest ticket may commit, so a
slow early response can never overwrite a faster later one.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from core.errors import TradingLabError
from core.market.fetcher import MarketDataFetcher, normalize_symbol
from core.market.models import ChartSeries, DateRange, SeriesResponse, Timeframe
from core.market.transformer import ChartSeriesTransformer
from core.market.validator import DateRangeValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChartView:
    """Committed result of the latest refresh."""
    response: Optional[SeriesResponse] = None
    chart: Optional[ChartSeries] = None
    error: Optional[str] = None
    generation: int = 0


class ChartSession:
    """
    Owns chart selection and result state.

    Events: set_symbol, set_timeframe, set_range, refresh.
    """

    def __init__(
        self,
        fetcher: MarketDataFetcher,
        symbol: str,
        date_range: DateRange,
        timeframe: Timeframe = Timeframe.MINUTE_1,
        transformer: Optional[ChartSeriesTransformer] = None,
        validator: Optional[DateRangeValidator] = None,
    ):
        self.fetcher = fetcher
        self.transformer = transformer or ChartSeriesTransformer()
        self.validator = validator or DateRangeValidator()
        self.symbol = normalize_symbol(symbol)
        self.timeframe = timeframe
        self.date_range = date_range

        self._generation = 0
        self._in_flight = 0
        self.view = ChartView()

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def set_symbol(self, symbol: str) -> None:
        self.symbol = normalize_symbol(symbol)

    def set_timeframe(self, timeframe) -> None:
        self.timeframe = Timeframe.parse(timeframe)

    def set_range(self, start: date, end: date) -> None:
        """Revalidates; the previous range is kept when the new one is rejected."""
        self.date_range = self.validator.require(start, end)

    def _commit(self, ticket: int, view: ChartView) -> bool:
        if ticket != self._generation:
            logger.debug(
                f"[MARKET] Discarding stale result (gen {ticket}, current {self._generation})"
            )
            return False
        self.view = view
        return True

    async def refresh(self) -> ChartView:
        """
        Validate, fetch and transform the current selection.

        Failures are recorded on the view rather than raised. Returns the
        committed view, which is the previous one if this refresh was
        superseded while in flight.
        """
        self._generation += 1
        ticket = self._generation

        check = self.validator.validate(self.date_range.start, self.date_range.end)
        if not check:
            self._commit(
                ticket,
                ChartView(response=self.view.response, chart=self.view.chart,
                          error=check.message, generation=ticket),
            )
            return self.view

        self._in_flight += 1
        try:
            response = await self.fetcher.fetch(self.symbol, self.timeframe, self.date_range)
        except TradingLabError as e:
            self._commit(
                ticket,
                ChartView(response=self.view.response, chart=self.view.chart,
                          error=str(e), generation=ticket),
            )
            return self.view
        finally:
            self._in_flight -= 1

        chart = self.transformer.transform(response)
        self._commit(ticket, ChartView(response=response, chart=chart, generation=ticket))
        return self.view
