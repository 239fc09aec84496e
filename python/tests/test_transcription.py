"""
Unit Tests for AudioTranscriber
"""
import asyncio
import pytest
from pathlib import Path

import httpx
from openai import APIConnectionError

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.chat.transcription import AudioPayload, AudioTranscriber
from core.errors import ConfigurationError, MissingAudioError, TranscriptionError


def run(coro):
    return asyncio.run(coro)


PAYLOAD = AudioPayload(filename="audio.webm", content=b"\x1a\x45\xdf\xa3audio")


class TestAudioTranscriber:
    """Tests for AudioTranscriber.transcribe."""

    def test_transcribe(self, make_transcription_client):
        client, transcriptions = make_transcription_client(text="Show me AAPL")
        transcriber = AudioTranscriber("sk-test", client=client)

        assert run(transcriber.transcribe(PAYLOAD)) == "Show me AAPL"

        params = transcriptions.calls[0]
        assert params["model"] == "whisper-1"
        assert params["file"] == ("audio.webm", PAYLOAD.content, "audio/webm")

    def test_missing_payload(self, make_transcription_client):
        client, transcriptions = make_transcription_client()
        transcriber = AudioTranscriber("sk-test", client=client)

        with pytest.raises(MissingAudioError, match="No audio file provided"):
            run(transcriber.transcribe(None))
        assert transcriptions.calls == []

    def test_empty_payload(self, make_transcription_client):
        client, _ = make_transcription_client()
        transcriber = AudioTranscriber("sk-test", client=client)

        with pytest.raises(MissingAudioError):
            run(transcriber.transcribe(AudioPayload(filename="a.webm", content=b"")))

    def test_key_checked_before_payload(self):
        calls = []
        transcriber = AudioTranscriber("", client_factory=lambda: calls.append(1))

        with pytest.raises(ConfigurationError, match="OpenAI API key is not configured"):
            run(transcriber.transcribe(None))
        assert calls == []

    def test_provider_failure(self, make_transcription_client):
        request = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")
        client, _ = make_transcription_client(error=APIConnectionError(request=request))
        transcriber = AudioTranscriber("sk-test", client=client)

        with pytest.raises(TranscriptionError, match="Failed to transcribe audio"):
            run(transcriber.transcribe(PAYLOAD))
