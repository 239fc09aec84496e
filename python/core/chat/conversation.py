"""
Conversation State

Append-only message log driven through a ChatStreamProxy.

A send appends the user message, then grows one assistant message chunk by
chunk. If the provider fails before the first chunk only the user message
remains; if it fails mid-stream the partial reply stays and `error` is set
afterward.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from core.chat.models import ChatMessage, Role
from core.chat.proxy import ChatStreamProxy
from core.chat.stream import TextStream
from core.errors import TradingLabError

logger = logging.getLogger(__name__)


class ConversationBusyError(TradingLabError):
    """A send was attempted while the previous one is still streaming."""


@dataclass
class ConversationState:
    messages: List[ChatMessage] = field(default_factory=list)
    pending: bool = False
    error: Optional[str] = None
    _stream: Optional[TextStream] = field(default=None, repr=False)

    @property
    def last_reply(self) -> Optional[ChatMessage]:
        if self.messages and self.messages[-1].role is Role.ASSISTANT:
            return self.messages[-1]
        return None

    async def send(
        self,
        proxy: ChatStreamProxy,
        text: str,
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> Optional[ChatMessage]:
        """
        Send `text` and stream the reply into the log.

        Returns the assistant message, or None if no chunk arrived.
        Provider and configuration failures land in `error`, not raised.
        """
        if self.pending:
            raise ConversationBusyError("A reply is still streaming")

        self.error = None
        self.messages.append(ChatMessage(role=Role.USER, content=text))
        history = list(self.messages)
        self.pending = True
        reply: Optional[ChatMessage] = None

        try:
            self._stream = proxy.send(history)
            async for chunk in self._stream:
                if reply is None:
                    reply = ChatMessage(role=Role.ASSISTANT, content="")
                    self.messages.append(reply)
                reply.content += chunk
                if on_chunk is not None:
                    on_chunk(chunk)
        except TradingLabError as e:
            logger.warning(f"[CHAT] Send failed: {e}")
            self.error = str(e)
        finally:
            if self._stream is not None:
                self._stream.cancel()
            self._stream = None
            self.pending = False

        return reply

    def cancel(self) -> None:
        """Stop the active reply; what has been appended stays."""
        if self._stream is not None:
            self._stream.cancel()
