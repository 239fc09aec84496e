"""
Market Status Poller

Refreshes the market status snapshot on a fixed cadence:

    Idle -> Polling (one request in flight) -> Idle -> ... every interval

The first poll runs immediately on start. A failed poll keeps the last good
snapshot and records the error next to it; the next attempt simply waits for
the next scheduled tick (no backoff, no retry).
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from core.config.constants import CONSTANTS
from core.errors import TradingLabError
from core.market.models import MarketStatusSnapshot

logger = logging.getLogger(__name__)

StatusSource = Callable[[], Awaitable[MarketStatusSnapshot]]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollerState:
    """
    Everything a reader needs, swapped in one assignment per poll.

    `snapshot` and `error` may both be set: last-known-good data plus the
    failure of the most recent attempt.
    """
    snapshot: Optional[MarketStatusSnapshot] = None
    error: Optional[str] = None
    updated_at: Optional[datetime] = None
    attempts: int = 0

    def to_dict(self) -> dict:
        return {
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "error": self.error,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class PollerHandle:
    """Owns the background task of one start() call."""

    def __init__(self, task: "asyncio.Task[None]"):
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        self._task.cancel()

    async def wait_closed(self) -> None:
        """Await the task after cancel(); swallows only its own cancellation."""
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class MarketStatusPoller:
    """
    Periodic market status refresh with an explicit start/stop lifecycle.

    Usage:
        poller = MarketStatusPoller(client.get_market_status)
        handle = poller.start()
        ...
        poller.stop(handle)
    """

    def __init__(
        self,
        source: StatusSource,
        interval: float = CONSTANTS.polling.INTERVAL_SECONDS,
        sleep: Sleeper = asyncio.sleep,
    ):
        """
        Args:
            source: Coroutine function returning a fresh snapshot
            interval: Seconds between polls
            sleep: Sleep implementation (tests inject a fake clock)
        """
        self._source = source
        self.interval = interval
        self._sleep = sleep
        self._state = PollerState()
        self._in_flight = False
        self._handle: Optional[PollerHandle] = None

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._in_flight

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    async def poll_once(self) -> PollerState:
        """Run one tick. Never raises except for cancellation."""
        self._in_flight = True
        attempts = self._state.attempts + 1
        try:
            snapshot = await self._source()
        except asyncio.CancelledError:
            raise
        except TradingLabError as e:
            logger.warning(f"[POLL] Market status refresh failed: {e}")
            self._state = replace(self._state, error=str(e), attempts=attempts)
        except Exception:
            logger.exception("[POLL] Unexpected error refreshing market status")
            self._state = replace(
                self._state, error="Failed to fetch market status", attempts=attempts
            )
        else:
            self._state = PollerState(
                snapshot=snapshot,
                error=None,
                updated_at=datetime.now(timezone.utc),
                attempts=attempts,
            )
            logger.debug(f"[POLL] Market {snapshot.market.value}")
        finally:
            self._in_flight = False
        return self._state

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await self._sleep(self.interval)

    def start(self) -> PollerHandle:
        """Schedule polling on the running loop. Idempotent while running."""
        if self.running:
            return self._handle
        task = asyncio.get_running_loop().create_task(self._run())
        self._handle = PollerHandle(task)
        logger.info(f"[POLL] Market status polling every {self.interval:.0f}s")
        return self._handle

    def stop(self, handle: Optional[PollerHandle] = None) -> None:
        """
        Cancel the timer task synchronously.

        After this returns the task can only wake up to finish cancelling;
        no further request is issued.
        """
        handle = handle or self._handle
        if handle is None:
            return
        handle.cancel()
        if handle is self._handle:
            self._handle = None
        logger.info("[POLL] Market status polling stopped")
