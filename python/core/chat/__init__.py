"""
Chat streaming module.

Provides:
- Provider personas and configuration (Anthropic, OpenAI, Perplexity)
- A common streaming proxy returning cancellable TextStreams
- Conversation state driven through a proxy
- Audio transcription
"""

from core.chat.models import ChatMessage, Role
from core.chat.personas import ChatProvider, ProviderSpec, PROVIDER_SPECS, get_provider_spec
from core.chat.stream import StreamState, TextStream
from core.chat.proxy import (
    AnthropicChatProxy,
    ChatStreamProxy,
    OpenAIChatProxy,
    create_chat_proxies,
    create_chat_proxy,
)
from core.chat.conversation import ConversationBusyError, ConversationState
from core.chat.transcription import AudioPayload, AudioTranscriber

__all__ = [
    # Models
    "ChatMessage",
    "Role",
    # Providers
    "ChatProvider",
    "ProviderSpec",
    "PROVIDER_SPECS",
    "get_provider_spec",
    # Streaming
    "StreamState",
    "TextStream",
    "ChatStreamProxy",
    "AnthropicChatProxy",
    "OpenAIChatProxy",
    "create_chat_proxy",
    "create_chat_proxies",
    # Conversation
    "ConversationBusyError",
    "ConversationState",
    # Transcription
    "AudioPayload",
    "AudioTranscriber",
]
