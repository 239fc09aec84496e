"""
Unit Tests for Chat Streaming

Tests for:
- TextStream delivery, failure and cancellation
- ChatStreamProxy persona handling and credential checks
- Provider request shapes (Anthropic, OpenAI, Perplexity)
"""
import asyncio
import gc
import pytest
from pathlib import Path

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.chat.models import ChatMessage, Role
from core.chat.personas import (
    ANTHROPIC_PERSONA,
    OPENAI_PERSONA,
    PERPLEXITY_PERSONA,
    ChatProvider,
)
from core.chat.proxy import (
    AnthropicChatProxy,
    OpenAIChatProxy,
    create_chat_proxies,
    create_chat_proxy,
)
from core.chat.stream import StreamState, TextStream
from core.errors import ConfigurationError, StreamError


def run(coro):
    return asyncio.run(coro)


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


HISTORY = [
    {"role": "user", "content": "What is RSI?"},
    {"role": "assistant", "content": "A momentum oscillator."},
    {"role": "user", "content": "And MACD?"},
]


async def from_list(items, error=None):
    for item in items:
        yield item
    if error is not None:
        raise error


# =============================================================================
# TextStream Tests
# =============================================================================

class TestTextStream:
    """Tests for TextStream."""

    def test_collect(self):
        stream = TextStream(from_list(["Hel", "lo", " world"]))
        assert run(stream.collect()) == "Hello world"
        assert stream.state is StreamState.COMPLETED
        assert stream.chunks_delivered == 3

    def test_empty_chunks_dropped(self):
        async def scenario():
            return [c async for c in TextStream(from_list(["", "a", "", "b"]))]

        assert run(scenario()) == ["a", "b"]

    def test_lazy_start(self):
        stream = TextStream(from_list(["x"]))
        assert stream.state is StreamState.PENDING

    def test_failure_after_partial_output(self):
        async def scenario():
            stream = TextStream(from_list(["par", "tial"], RuntimeError("upstream reset")), provider="openai")
            received = []
            with pytest.raises(StreamError) as exc_info:
                async for chunk in stream:
                    received.append(chunk)
            return stream, received, exc_info.value

        stream, received, error = run(scenario())
        assert received == ["par", "tial"]
        assert stream.state is StreamState.FAILED
        assert "upstream reset" in str(error)
        assert error.provider == "openai"

    def test_iteration_after_failure_ends(self):
        async def scenario():
            stream = TextStream(from_list([], RuntimeError("boom")))
            with pytest.raises(StreamError):
                await stream.collect()
            return [c async for c in stream]

        assert run(scenario()) == []

    def test_cancel_mid_stream(self):
        async def scenario():
            release = asyncio.Event()
            closed = []

            async def source():
                try:
                    yield "first"
                    await release.wait()
                    yield "never"
                finally:
                    closed.append(True)

            stream = TextStream(source(), provider="test")
            first = await anext(stream)
            stream.cancel()
            rest = [c async for c in stream]
            await settle()
            return first, rest, stream.state, closed

        first, rest, state, closed = run(scenario())
        assert first == "first"
        assert rest == []
        assert state is StreamState.CANCELLED
        assert closed == [True]

    def test_cancel_wakes_blocked_consumer(self):
        async def scenario():
            async def source():
                yield "a"
                await asyncio.Event().wait()

            stream = TextStream(source())
            await anext(stream)
            waiter = asyncio.create_task(stream.collect())
            await settle()
            stream.cancel()
            return await waiter

        assert run(scenario()) == ""

    def test_cancel_after_completion_is_noop(self):
        async def scenario():
            stream = TextStream(from_list(["a"]))
            await stream.collect()
            stream.cancel()
            return stream.state

        assert run(scenario()) is StreamState.COMPLETED

    def test_context_manager_cancels(self):
        async def scenario():
            async def source():
                yield "a"
                await asyncio.Event().wait()

            async with TextStream(source()) as stream:
                await anext(stream)
            await settle()
            return stream.state

        assert run(scenario()) is StreamState.CANCELLED

    def test_dropped_stream_stops_producer(self):
        """Breaking out without cancel() still releases the provider stream."""
        closed = []

        async def scenario():
            async def source():
                try:
                    for i in range(100):
                        yield f"chunk-{i}"
                finally:
                    closed.append(True)

            stream = TextStream(source(), queue_size=1)
            async for _ in stream:
                break
            del stream
            gc.collect()
            await settle()
            return list(closed)

        assert run(scenario()) == [True]


# =============================================================================
# Proxy Tests
# =============================================================================

class TestChatStreamProxy:
    """Tests for persona handling and credential checks."""

    def test_openai_stream(self, make_openai_client):
        client, completions = make_openai_client(["Hel", "lo", " world"])
        proxy = create_chat_proxy("openai", "sk-test", client=client)

        assert run(proxy.send(HISTORY).collect()) == "Hello world"

        params = completions.calls[0]
        assert params["model"] == "gpt-3.5-turbo"
        assert params["stream"] is True
        assert params["temperature"] == 0.7
        assert params["max_tokens"] == 500
        assert params["messages"][0] == {"role": "system", "content": OPENAI_PERSONA}
        assert params["messages"][1:] == HISTORY

    def test_persona_prepended_once(self):
        proxy = create_chat_proxy(ChatProvider.OPENAI, "sk-test")
        messages = proxy.build_messages(HISTORY)

        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER]
        assert messages[0].content == OPENAI_PERSONA
        assert [m.content for m in messages[1:]] == [h["content"] for h in HISTORY]

    def test_accepts_chat_messages(self):
        proxy = create_chat_proxy("openai", "sk-test")
        messages = proxy.build_messages([ChatMessage(role=Role.USER, content="hi")])
        assert messages[1].content == "hi"

    def test_missing_key_builds_no_client(self):
        calls = []
        proxy = create_chat_proxy("anthropic", "", client_factory=lambda: calls.append(1))

        with pytest.raises(ConfigurationError) as exc_info:
            proxy.send(HISTORY)

        assert str(exc_info.value) == "Anthropic API key is not configured"
        assert exc_info.value.setting == "anthropic_api_key"
        assert calls == []

    @pytest.mark.parametrize("provider,name", [
        ("openai", "OpenAI"),
        ("perplexity", "Perplexity"),
    ])
    def test_missing_key_messages(self, provider, name):
        with pytest.raises(ConfigurationError, match=f"{name} API key is not configured"):
            create_chat_proxy(provider, None).send(HISTORY)

    def test_failure_before_first_chunk(self, make_openai_client):
        client, _ = make_openai_client(create_error=RuntimeError("401 unauthorized"))
        proxy = create_chat_proxy("openai", "sk-test", client=client)

        async def scenario():
            stream = proxy.send(HISTORY)
            with pytest.raises(StreamError):
                await anext(stream)
            return stream.chunks_delivered

        assert run(scenario()) == 0

    def test_mid_stream_failure_keeps_partial(self, make_openai_client):
        client, _ = make_openai_client(["Hel", "lo"], error=RuntimeError("connection reset"))
        proxy = create_chat_proxy("openai", "sk-test", client=client)

        async def scenario():
            received = []
            with pytest.raises(StreamError):
                async for chunk in proxy.send(HISTORY):
                    received.append(chunk)
            return received

        assert run(scenario()) == ["Hel", "lo"]

    def test_openai_skips_empty_deltas(self, make_openai_client):
        client, _ = make_openai_client([None, "a", "", "b"])
        proxy = create_chat_proxy("openai", "sk-test", client=client)
        assert run(proxy.send(HISTORY).collect()) == "ab"


class TestProviders:
    """Tests for provider-specific request shapes."""

    def test_anthropic_request(self, make_anthropic_client):
        client, messages = make_anthropic_client(["Hi", " there"])
        proxy = create_chat_proxy("anthropic", "sk-ant", client=client)

        assert isinstance(proxy, AnthropicChatProxy)
        assert run(proxy.send(HISTORY).collect()) == "Hi there"

        params = messages.calls[0]
        assert params["model"] == "claude-3-5-sonnet-20241022"
        assert params["system"] == ANTHROPIC_PERSONA
        assert params["messages"] == HISTORY
        assert params["max_tokens"] == 1000
        assert params["temperature"] == 0.7

    def test_perplexity_request(self, make_openai_client):
        client, completions = make_openai_client(["ok"])
        proxy = create_chat_proxy("perplexity", "pplx-test", client=client)

        assert isinstance(proxy, OpenAIChatProxy)
        run(proxy.send(HISTORY).collect())

        params = completions.calls[0]
        assert params["model"] == "sonar-pro"
        assert "max_tokens" not in params
        assert params["messages"][0]["content"] == PERPLEXITY_PERSONA

    def test_perplexity_client_base_url(self):
        proxy = create_chat_proxy("perplexity", "pplx-test")
        client = proxy._create_client()
        assert str(client.base_url).rstrip("/") == "https://api.perplexity.ai"

    def test_client_factory_called_once(self, make_openai_client):
        client, _ = make_openai_client(["a"])
        calls = []

        def factory():
            calls.append(1)
            return client

        proxy = create_chat_proxy("openai", "sk-test", client_factory=factory)
        run(proxy.send(HISTORY).collect())
        run(proxy.send(HISTORY).collect())
        assert calls == [1]

    def test_create_chat_proxies(self):
        settings = type("S", (), {
            "anthropic_api_key": "a", "openai_api_key": "", "perplexity_api_key": "p",
        })()
        proxies = create_chat_proxies(settings)

        assert set(proxies) == set(ChatProvider)
        assert proxies[ChatProvider.ANTHROPIC].configured
        assert not proxies[ChatProvider.OPENAI].configured
        assert proxies[ChatProvider.PERPLEXITY].api_key == "p"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_chat_proxy("gemini", "key")
