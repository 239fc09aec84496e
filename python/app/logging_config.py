"""
Centralized logging configuration for Sonar Trading Lab.

Features:
- Colored console output for development
- Structured JSON output for production
- Log levels configurable via environment
- Component prefixes for API, chat, market data and polling
"""

import logging
import os
import sys
from typing import Optional


# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"

    # Log levels
    DEBUG = "\033[36m"      # Cyan
    INFO = "\033[32m"       # Green
    WARNING = "\033[33m"    # Yellow
    ERROR = "\033[31m"      # Red
    CRITICAL = "\033[35m"   # Magenta

    # Component prefixes
    CHAT = "\033[94m"       # Light blue
    MARKET = "\033[96m"     # Light cyan
    POLL = "\033[93m"       # Light yellow
    API = "\033[97m"        # White


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DEBUG,
        logging.INFO: Colors.INFO,
        logging.WARNING: Colors.WARNING,
        logging.ERROR: Colors.ERROR,
        logging.CRITICAL: Colors.CRITICAL,
    }

    PREFIX_COLORS = {
        "[CHAT]": Colors.CHAT,
        "[MARKET]": Colors.MARKET,
        "[POLL]": Colors.POLL,
        "[API]": Colors.API,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = f"{color}{record.levelname:8}{Colors.RESET}"

        message = record.getMessage()
        for prefix, prefix_color in self.PREFIX_COLORS.items():
            if message.startswith(prefix):
                message = f"{prefix_color}{Colors.BOLD}{prefix}{Colors.RESET}" + \
                          message[len(prefix):]
                break

        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        # Format: TIME LEVEL MODULE MESSAGE
        module = record.name.split(".")[-1][:15]
        return f"{timestamp} {level} {module:15} {message}"


class JsonFormatter(logging.Formatter):
    """JSON formatter for production logging."""

    EXTRA_KEYS = ("symbol", "timeframe", "provider", "request_id")

    def format(self, record: logging.LogRecord) -> str:
        import json
        from datetime import datetime, timezone

        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_KEYS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data)


def setup_logging(
    level: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var.
        json_format: Use JSON format (for production). Defaults to LOG_FORMAT env var.
    """
    log_level = level or os.getenv("LOG_LEVEL", "INFO")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    use_json = json_format or os.getenv("LOG_FORMAT", "").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ColoredFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []
    root_logger.addHandler(handler)

    # Set levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured: level={log_level}, format={'json' if use_json else 'colored'}")


# Convenience loggers for common components
def chat_log(message: str, level: int = logging.INFO, **kwargs) -> None:
    """Log a chat-related message."""
    logging.getLogger("chat").log(level, f"[CHAT] {message}", **kwargs)


def market_log(message: str, level: int = logging.INFO, **kwargs) -> None:
    """Log a market-data-related message."""
    logging.getLogger("market").log(level, f"[MARKET] {message}", **kwargs)


def api_log(message: str, level: int = logging.INFO, **kwargs) -> None:
    """Log an API-related message."""
    logging.getLogger("api").log(level, f"[API] {message}", **kwargs)
