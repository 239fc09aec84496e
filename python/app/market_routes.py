"""
Market Data API Routes.

Chart-ready aggregate bars for one symbol and the poller's latest market
status snapshot.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.config import Settings, get_settings
from app.logging_config import market_log
from app.schemas import AggregatesResponse, MarketStatusResponse, error_response
from core.errors import (
    ConfigurationError,
    DateRangeError,
    FetchError,
    InputValidationError,
)
from core.market import (
    ChartSeriesTransformer,
    DateRangeValidator,
    MarketDataFetcher,
    MarketStatusPoller,
    PolygonClient,
    PollerState,
    Timeframe,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/market", tags=["market"])


def get_polygon_client(request: Request) -> PolygonClient:
    """Shared client created by the app lifespan."""
    return request.app.state.polygon_client


def get_market_fetcher(
    client: PolygonClient = Depends(get_polygon_client),
    settings: Settings = Depends(get_settings),
) -> MarketDataFetcher:
    return MarketDataFetcher(client, fixed_coarse_window=settings.market_fixed_coarse_window)


def get_chart_transformer(settings: Settings = Depends(get_settings)) -> ChartSeriesTransformer:
    return ChartSeriesTransformer(tz=settings.chart_timezone)


def get_range_validator() -> DateRangeValidator:
    return DateRangeValidator()


def get_status_poller(request: Request) -> Optional[MarketStatusPoller]:
    return getattr(request.app.state, "poller", None)


@router.get("/aggregates/{symbol}")
async def get_aggregates(
    symbol: str,
    timeframe: str = Query("1", description="Bar size in minutes: 1, 5, 15, 30 or 60"),
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    include_raw: bool = Query(False),
    fetcher: MarketDataFetcher = Depends(get_market_fetcher),
    transformer: ChartSeriesTransformer = Depends(get_chart_transformer),
    validator: DateRangeValidator = Depends(get_range_validator),
):
    """
    Fetch minute aggregates and shape them for the price chart.

    `chart` is null when the range holds no bars. Validation failures return
    400 before anything is sent upstream.
    """
    try:
        tf = Timeframe.parse(timeframe)
        date_range = validator.require_strings(start, end)
        response = await fetcher.fetch(symbol, tf, date_range)
        chart = transformer.transform(response)
    except DateRangeError as e:
        return error_response(400, str(e), reason=e.reason.value)
    except InputValidationError as e:
        return error_response(400, str(e))
    except ConfigurationError as e:
        market_log(str(e), logging.ERROR)
        return error_response(500, str(e))
    except FetchError as e:
        return error_response(502, str(e))
    except Exception:
        logger.exception(f"[MARKET] Unexpected error fetching {symbol}")
        return error_response(500, "Failed to fetch data")

    body = AggregatesResponse(
        symbol=response.symbol,
        timeframe=tf.minutes,
        request_id=response.request_id,
        result_count=response.result_count,
        bars=[bar.to_dict() for bar in response.bars],
        chart=chart.to_dict() if chart else None,
        raw=response.raw if include_raw else None,
    )
    return body.model_dump(
        mode="json",
        by_alias=True,
        exclude=None if include_raw else {"raw"},
    )


@router.get("/status", response_model=MarketStatusResponse)
async def get_market_status(poller: Optional[MarketStatusPoller] = Depends(get_status_poller)):
    """Latest poller state; never triggers an upstream call."""
    state = poller.state if poller is not None else PollerState()
    return state.to_dict()
