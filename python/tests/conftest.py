"""
Shared fixtures: in-memory stand-ins for the OpenAI and Anthropic SDK
clients, shaped like the parts of the SDKs the chat proxies touch.
"""
import asyncio
from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional

import pytest

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))


def openai_chunk(content: Optional[str]):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeCompletions:
    """chat.completions: create(stream=True) returns an async chunk iterator."""

    def __init__(self, chunks: List[Optional[str]], error: Optional[Exception] = None,
                 create_error: Optional[Exception] = None, gate: Optional[asyncio.Event] = None):
        self.chunks = chunks
        self.error = error
        self.create_error = create_error
        self.gate = gate
        self.calls = []
        self.closed = False

    async def create(self, **params):
        self.calls.append(params)
        if self.create_error is not None:
            raise self.create_error
        return self._iterate()

    async def _iterate(self):
        for i, content in enumerate(self.chunks):
            if self.gate is not None and i > 0:
                await self.gate.wait()
            yield openai_chunk(content)
        if self.error is not None:
            raise self.error


class FakeAnthropicStream:
    def __init__(self, chunks: List[str], error: Optional[Exception] = None):
        self.chunks = chunks
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    @property
    def text_stream(self):
        return self._iterate()

    async def _iterate(self):
        for text in self.chunks:
            yield text
        if self.error is not None:
            raise self.error


class FakeMessages:
    """messages.stream(...) returns an async context manager with text_stream."""

    def __init__(self, chunks: List[str], error: Optional[Exception] = None):
        self.chunks = chunks
        self.error = error
        self.calls = []

    def stream(self, **params):
        self.calls.append(params)
        return FakeAnthropicStream(self.chunks, self.error)


class FakeTranscriptions:
    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls = []
        self.closed = False

    async def create(self, **params):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


@pytest.fixture
def make_openai_client():
    """Returns (client, completions) for scripted chunks."""
    def factory(chunks=(), error=None, create_error=None, gate=None):
        completions = FakeCompletions(list(chunks), error, create_error, gate)

        async def close():
            completions.closed = True

        client = SimpleNamespace(chat=SimpleNamespace(completions=completions), close=close)
        return client, completions
    return factory


@pytest.fixture
def make_anthropic_client():
    """Returns (client, messages) for scripted text deltas."""
    def factory(chunks=(), error=None):
        messages = FakeMessages(list(chunks), error)
        return SimpleNamespace(messages=messages), messages
    return factory


@pytest.fixture
def make_transcription_client():
    """Returns (client, transcriptions)."""
    def factory(text="", error=None):
        transcriptions = FakeTranscriptions(text, error)

        async def close():
            transcriptions.closed = True

        client = SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions), close=close)
        return client, transcriptions
    return factory
