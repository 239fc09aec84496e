from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


# Chat schemas
class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessageIn] = Field(default_factory=list)


class StreamChunk(BaseModel):
    """A single chunk in the SSE stream."""
    type: Literal["text", "error", "complete"]
    content: Any = None
    metadata: dict = Field(default_factory=dict)


class TranscriptionResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    error: str
    reason: Optional[str] = None


def error_response(status_code: int, message: str, reason: Optional[str] = None) -> JSONResponse:
    """JSON error body: {error} plus {reason} for range violations."""
    body = ErrorResponse(error=message, reason=reason)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# Market data schemas
class BarResponse(BaseModel):
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float
    vwap: Optional[float] = None
    transactions: Optional[int] = None


class SeriesStyleResponse(BaseModel):
    color: str
    dash: List[int] = Field(default_factory=list)
    width: int = 1
    tension: float = 0.4
    fill: bool = False
    point_radius: int = Field(0, alias="pointRadius")
    axis: str = "price"

    model_config = {"populate_by_name": True}


class ChartLineResponse(BaseModel):
    name: str
    values: List[float]
    style: SeriesStyleResponse


class ChartSeriesResponse(BaseModel):
    labels: List[str]
    tick_labels: List[str] = Field(alias="tickLabels")
    series: List[ChartLineResponse]

    model_config = {"populate_by_name": True}


class AggregatesResponse(BaseModel):
    symbol: str
    timeframe: int
    request_id: str = Field(alias="requestId")
    result_count: int = Field(alias="resultCount")
    bars: List[BarResponse]
    chart: Optional[ChartSeriesResponse] = None
    raw: Optional[Dict[str, Any]] = None

    model_config = {"populate_by_name": True}


class MarketStatusSnapshotResponse(BaseModel):
    market: Literal["open", "closed", "extended"]
    exchanges: Dict[str, str] = Field(default_factory=dict)
    currencies: Dict[str, str] = Field(default_factory=dict)
    after_hours: bool = Field(alias="afterHours")
    early_hours: bool = Field(alias="earlyHours")
    server_time: datetime = Field(alias="serverTime")

    model_config = {"populate_by_name": True}


class MarketStatusResponse(BaseModel):
    snapshot: Optional[MarketStatusSnapshotResponse] = None
    error: Optional[str] = None
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True}
