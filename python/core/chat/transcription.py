"""
Audio Transcription

Single-shot speech-to-text through the OpenAI transcription API.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from openai import OpenAIError

from core.config.constants import CONSTANTS
from core.errors import ConfigurationError, MissingAudioError, TranscriptionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioPayload:
    """One uploaded audio file."""
    filename: str
    content: bytes
    content_type: str = "audio/webm"


class AudioTranscriber:
    """Turns one audio payload into one complete text result."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = CONSTANTS.chat.TRANSCRIPTION_MODEL,
        client: Any = None,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        self.api_key = api_key or ""
        self.model = model
        self._client = client
        self._client_factory = client_factory

    def _get_client(self) -> Any:
        if self._client is None:
            if self._client_factory is not None:
                self._client = self._client_factory()
            else:
                from openai import AsyncOpenAI
                self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def aclose(self) -> None:
        client, self._client = self._client, None
        close = getattr(client, "close", None)
        if close is not None:
            await close()

    async def transcribe(self, payload: Optional[AudioPayload]) -> str:
        """
        Raises:
            ConfigurationError: OpenAI key missing
            MissingAudioError: no payload, or an empty one
            TranscriptionError: provider call failed
        """
        if not self.api_key:
            raise ConfigurationError("OpenAI API key is not configured", setting="openai_api_key")
        if payload is None or not payload.content:
            raise MissingAudioError()

        client = self._get_client()
        try:
            result = await client.audio.transcriptions.create(
                file=(payload.filename, payload.content, payload.content_type),
                model=self.model,
            )
        except OpenAIError as e:
            logger.error(f"[CHAT] Transcription failed: {e}")
            raise TranscriptionError("Failed to transcribe audio") from e

        logger.info(f"[CHAT] Transcribed {len(payload.content)} bytes of audio")
        return result.text
