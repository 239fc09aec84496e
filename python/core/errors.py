"""
Error taxonomy shared by the market data pipeline and the chat proxy.

Every component recovers failures at its own boundary and re-raises them as
one of these types, so callers (routes, sessions, the poller) can tell a bad
request from a broken upstream from a missing deployment secret.
"""
from typing import Optional


class TradingLabError(Exception):
    """Base class for all service errors."""


# -----------------------------------------------------------------------------
# Input validation
# -----------------------------------------------------------------------------

class InputValidationError(TradingLabError):
    """Caller supplied input that can never succeed. No network call is made."""


class DateParseError(InputValidationError):
    """A date string could not be parsed as an ISO calendar date."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


class DateRangeError(InputValidationError):
    """A parsed (start, end) pair violates the allowed range."""

    def __init__(self, reason, message: str):
        self.reason = reason
        super().__init__(message)


class InvalidSymbolError(InputValidationError):
    pass


class InvalidTimeframeError(InputValidationError):
    pass


class MissingAudioError(InputValidationError):
    def __init__(self, message: str = "No audio file provided"):
        super().__init__(message)


# -----------------------------------------------------------------------------
# Upstream failures
# -----------------------------------------------------------------------------

class TransportError(TradingLabError):
    """Non-2xx response or network failure on an outbound call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class FetchError(TransportError):
    """Market data request failed."""


class TranscriptionError(TransportError):
    """Audio transcription request failed."""


class StreamError(TradingLabError):
    """A chat stream failed after it was opened."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


# -----------------------------------------------------------------------------
# Deployment problems
# -----------------------------------------------------------------------------

class ConfigurationError(TradingLabError):
    """A required credential or setting is absent."""

    def __init__(self, message: str, setting: Optional[str] = None):
        self.setting = setting
        super().__init__(message)
