"""
Centralized constants for the market data and chat services.
Domain bounds live here; transport tolerances can be overridden via env.

Usage:
    from core.config.constants import CONSTANTS

    if start < CONSTANTS.market.MIN_DATE:
        reject()

For tests: set env vars BEFORE importing, or mock this module.
"""
import os
from dataclasses import dataclass
from datetime import date
from typing import Tuple


def _env_float(key: str, default: float) -> float:
    """Read float from environment, fall back to default."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    """Read int from environment, fall back to default."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


@dataclass(frozen=True)
class MarketConstants:
    """Chart query bounds. Fixed, not runtime-configurable."""
    MIN_DATE: date = date(2023, 1, 1)
    MAX_DATE: date = date(2025, 12, 31)
    # Bar granularities in minutes
    TIMEFRAMES: Tuple[int, ...] = (1, 5, 15, 30, 60)
    # Coarse timeframes query this single day instead of the user range
    FIXED_WINDOW_DATE: date = date(2023, 2, 18)
    # Maximum visible x-axis tick labels
    MAX_AXIS_TICKS: int = 8
    LABEL_FORMAT: str = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class PollingConstants:
    """Market status poller cadence."""
    INTERVAL_SECONDS: float = 60.0


@dataclass(frozen=True)
class TransportConstants:
    """Outbound HTTP tolerances."""
    POLYGON_BASE_URL: str = "https://api.polygon.io"
    # Seconds before an outbound market data call is abandoned
    HTTP_TIMEOUT_SECONDS: float = _env_float("HTTP_TIMEOUT_SECONDS", 15.0)


@dataclass(frozen=True)
class ChatConstants:
    """Chat streaming parameters."""
    DEFAULT_TEMPERATURE: float = 0.7
    # Chunks buffered between the provider reader and the consumer
    STREAM_QUEUE_SIZE: int = _env_int("CHAT_STREAM_QUEUE_SIZE", 64)
    PERPLEXITY_BASE_URL: str = "https://api.perplexity.ai"
    TRANSCRIPTION_MODEL: str = "whisper-1"


@dataclass(frozen=True)
class Constants:
    """
    Master constants container - constructed once at import.

    Transport values are read from environment variables at import time.
    To override for tests, set env vars before importing this module.
    """
    market: MarketConstants = MarketConstants()
    polling: PollingConstants = PollingConstants()
    transport: TransportConstants = TransportConstants()
    chat: ChatConstants = ChatConstants()


# Single instance, but values read from env at import time
CONSTANTS = Constants()
