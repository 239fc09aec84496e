"""
Text Stream

Cancellable async sequence of text chunks produced by a chat provider.

A background producer task reads the provider's stream into a bounded
queue; the consumer iterates the TextStream. Terminal states are explicit:

    PENDING -> STREAMING -> COMPLETED | FAILED | CANCELLED

A provider failure is delivered to the consumer as StreamError *after*
every chunk produced before it, so partial output is never lost.
"""
import asyncio
import logging
import weakref
from enum import Enum
from typing import AsyncIterator, Optional

from core.config.constants import CONSTANTS
from core.errors import StreamError

logger = logging.getLogger(__name__)


class StreamState(Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_END = object()


class _Failure:
    __slots__ = ("exc",)

    def __init__(self, exc: BaseException):
        self.exc = exc


async def _produce(source: AsyncIterator[str], queue: asyncio.Queue, provider: Optional[str]) -> None:
    """Pump provider chunks into the queue. Holds no reference to the TextStream."""
    try:
        async for chunk in source:
            if chunk:
                await queue.put(chunk)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.warning(f"[CHAT] {provider or 'provider'} stream failed: {exc}")
        await queue.put(_Failure(exc))
    else:
        await queue.put(_END)
    finally:
        aclose = getattr(source, "aclose", None)
        if aclose is not None:
            await aclose()


class TextStream:
    """
    Producer/consumer channel over a provider chunk iterator.

    Usage:
        async with proxy.send(history) as stream:
            async for chunk in stream:
                buffer += chunk

    Leaving the `async with` block (or calling cancel()) stops the producer
    right away. A stream that is simply dropped mid-iteration is cancelled
    when it is garbage collected.
    """

    def __init__(
        self,
        source: AsyncIterator[str],
        provider: Optional[str] = None,
        queue_size: int = CONSTANTS.chat.STREAM_QUEUE_SIZE,
    ):
        self._source = source
        self.provider = provider
        self._queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self.state = StreamState.PENDING
        self.error: Optional[StreamError] = None
        self.chunks_delivered = 0

    @property
    def done(self) -> bool:
        return self.state in (StreamState.COMPLETED, StreamState.FAILED, StreamState.CANCELLED)

    def _ensure_started(self) -> None:
        if self._task is not None:
            return
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._task = asyncio.get_running_loop().create_task(
            _produce(self._source, self._queue, self.provider)
        )
        # An abandoned stream must not leave the producer parked on a full queue
        weakref.finalize(self, self._task.cancel).atexit = False
        self.state = StreamState.STREAMING

    def __aiter__(self) -> "TextStream":
        return self

    async def __anext__(self) -> str:
        if self.done:
            raise StopAsyncIteration
        self._ensure_started()

        item = await self._queue.get()
        if self.state is StreamState.CANCELLED or item is _END:
            if self.state is StreamState.STREAMING:
                self.state = StreamState.COMPLETED
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self.state = StreamState.FAILED
            self.error = StreamError(str(item.exc) or type(item.exc).__name__, self.provider)
            raise self.error from item.exc

        self.chunks_delivered += 1
        return item

    def cancel(self) -> None:
        """
        Stop delivery. Chunks already handed out stay with the consumer;
        a consumer blocked on the next chunk wakes up to a clean end.
        """
        if self.done:
            return
        self.state = StreamState.CANCELLED
        if self._task is not None:
            self._task.cancel()
        if self._queue is not None:
            while not self._queue.empty():
                self._queue.get_nowait()
            self._queue.put_nowait(_END)

    async def collect(self) -> str:
        """Consume the whole stream into one string."""
        return "".join([chunk async for chunk in self])

    async def __aenter__(self) -> "TextStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cancel()
