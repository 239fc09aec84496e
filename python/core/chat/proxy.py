"""
Chat Stream Proxy

One streaming-chat capability over three upstream providers:
- anthropic: Messages API streaming (system prompt is a separate field)
- openai: Chat Completions streaming
- perplexity: OpenAI-compatible Chat Completions at its own base URL

Every variant prepends its persona to the caller's history and returns a
TextStream. The credential check happens in send(), before a client is
built or any request is made.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Type

from core.chat.models import ChatMessage, Role, to_messages
from core.chat.personas import ChatProvider, ProviderSpec, get_provider_spec
from core.chat.stream import TextStream
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ChatStreamProxy(ABC):
    """
    Base class for provider adapters.

    Subclasses supply the SDK client and translate its stream into plain
    text chunks; persona handling and credential checks live here.
    """

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: Optional[str],
        client: Any = None,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Args:
            spec: Provider configuration (model, persona, limits)
            api_key: Provider credential; empty means not configured
            client: Pre-built SDK client
            client_factory: Called once to build the client lazily
        """
        self.spec = spec
        self.api_key = api_key or ""
        self._client = client
        self._client_factory = client_factory

    @property
    def provider(self) -> ChatProvider:
        return self.spec.provider

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> Any:
        """Lazily initialize the SDK client"""
        if self._client is None:
            factory = self._client_factory or self._create_client
            self._client = factory()
        return self._client

    async def aclose(self) -> None:
        """Close the SDK client (and its connection pool) if one was built."""
        client, self._client = self._client, None
        close = getattr(client, "close", None)
        if close is not None:
            await close()

    @abstractmethod
    def _create_client(self) -> Any:
        ...

    @abstractmethod
    def _stream(self, client: Any, messages: List[ChatMessage]) -> AsyncIterator[str]:
        """Async generator of text deltas from the provider."""
        ...

    def build_messages(self, history: Iterable[Any]) -> List[ChatMessage]:
        """Persona first, then the caller's history in order."""
        persona = ChatMessage(role=Role.SYSTEM, content=self.spec.persona)
        return [persona] + to_messages(history)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError(
                self.spec.missing_key_message, setting=self.spec.credential_setting
            )

    def send(self, history: Iterable[Any]) -> TextStream:
        """
        Start a streamed completion for `history`.

        Raises:
            ConfigurationError: credential missing (raised immediately,
                nothing is sent)
        """
        self.ensure_configured()
        messages = self.build_messages(history)
        client = self._get_client()
        logger.info(
            f"[CHAT] {self.spec.display_name} stream: {len(messages) - 1} messages "
            f"(model={self.spec.model})",
            extra={"provider": self.provider.value},
        )
        return TextStream(self._stream(client, messages), provider=self.provider.value)


class AnthropicChatProxy(ChatStreamProxy):
    """Claude via the Anthropic Messages API."""

    def _create_client(self) -> Any:
        from anthropic import AsyncAnthropic
        return AsyncAnthropic(api_key=self.api_key)

    async def _stream(self, client: Any, messages: List[ChatMessage]) -> AsyncIterator[str]:
        # Anthropic takes system text out of band
        system = "\n\n".join(m.content for m in messages if m.role is Role.SYSTEM)
        turns = [m.to_provider() for m in messages if m.role is not Role.SYSTEM]

        async with client.messages.stream(
            model=self.spec.model,
            system=system,
            messages=turns,
            max_tokens=self.spec.max_tokens or 1000,
            temperature=self.spec.temperature,
        ) as stream:
            async for text in stream.text_stream:
                yield text


class OpenAIChatProxy(ChatStreamProxy):
    """OpenAI Chat Completions, also used for OpenAI-compatible providers."""

    def _create_client(self) -> Any:
        from openai import AsyncOpenAI
        if self.spec.base_url:
            return AsyncOpenAI(api_key=self.api_key, base_url=self.spec.base_url)
        return AsyncOpenAI(api_key=self.api_key)

    def _request_params(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": self.spec.model,
            "messages": [m.to_provider() for m in messages],
            "temperature": self.spec.temperature,
            "stream": True,
        }
        if self.spec.max_tokens:
            params["max_tokens"] = self.spec.max_tokens
        return params

    async def _stream(self, client: Any, messages: List[ChatMessage]) -> AsyncIterator[str]:
        response = await client.chat.completions.create(**self._request_params(messages))
        async for chunk in response:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content


PROXY_CLASSES: Dict[ChatProvider, Type[ChatStreamProxy]] = {
    ChatProvider.ANTHROPIC: AnthropicChatProxy,
    ChatProvider.OPENAI: OpenAIChatProxy,
    ChatProvider.PERPLEXITY: OpenAIChatProxy,
}


def create_chat_proxy(
    provider,
    api_key: Optional[str],
    client: Any = None,
    client_factory: Optional[Callable[[], Any]] = None,
) -> ChatStreamProxy:
    """Build the adapter for `provider` ("anthropic", "openai", "perplexity")."""
    spec = get_provider_spec(provider)
    proxy_cls = PROXY_CLASSES[spec.provider]
    return proxy_cls(spec, api_key, client=client, client_factory=client_factory)


def create_chat_proxies(settings) -> Dict[ChatProvider, ChatStreamProxy]:
    """One proxy per provider, keyed by ChatProvider, credentials from settings."""
    proxies = {}
    for provider in ChatProvider:
        spec = get_provider_spec(provider)
        proxies[provider] = create_chat_proxy(provider, getattr(settings, spec.credential_setting, ""))
    return proxies
