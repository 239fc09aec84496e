"""
Chat API Routes.

Streaming chat against the three providers plus audio transcription.
Responses stream as plain text by default, or as SSE events when the client
asks for `text/event-stream`.
"""

import json
import logging
from typing import AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import StreamingResponse

from app.logging_config import chat_log
from app.schemas import ChatRequest, StreamChunk, TranscriptionResponse, error_response
from core.chat import (
    AudioPayload,
    AudioTranscriber,
    ChatProvider,
    ChatStreamProxy,
    TextStream,
)
from core.errors import ConfigurationError, MissingAudioError, StreamError, TranscriptionError

router = APIRouter(prefix="/api", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}

# Appended to a plain-text body when the provider fails after output began
TEXT_ERROR_TRAILER = "\n\n[error] {message}"


def get_chat_proxies(request: Request) -> Dict[ChatProvider, ChatStreamProxy]:
    return request.app.state.chat_proxies


def get_transcriber(request: Request) -> AudioTranscriber:
    return request.app.state.transcriber


def _sse(chunk: StreamChunk) -> str:
    return f"data: {json.dumps(chunk.model_dump())}\n\n"


async def _text_events(stream: TextStream, first: Optional[str]) -> AsyncIterator[str]:
    """Plain text body. A mid-stream failure ends it with TEXT_ERROR_TRAILER."""
    try:
        if first is not None:
            yield first
        async for chunk in stream:
            yield chunk
    except StreamError as e:
        chat_log(f"Stream ended with error: {e}", logging.WARNING, extra={"provider": e.provider})
        yield TEXT_ERROR_TRAILER.format(message=e)
    finally:
        stream.cancel()


async def _sse_events(stream: TextStream, first: Optional[str]) -> AsyncIterator[str]:
    """SSE body: text events, then exactly one complete or error event."""
    metadata = {"provider": stream.provider}
    try:
        if first is not None:
            yield _sse(StreamChunk(type="text", content=first))
        async for chunk in stream:
            yield _sse(StreamChunk(type="text", content=chunk))
        yield _sse(StreamChunk(
            type="complete",
            metadata={**metadata, "chunks": stream.chunks_delivered},
        ))
    except StreamError as e:
        chat_log(f"Stream ended with error: {e}", logging.WARNING, extra={"provider": e.provider})
        yield _sse(StreamChunk(type="error", content={"message": str(e)}, metadata=metadata))
    finally:
        stream.cancel()


@router.post("/{provider}/chat")
async def chat(
    provider: ChatProvider,
    body: ChatRequest,
    request: Request,
    proxies: Dict[ChatProvider, ChatStreamProxy] = Depends(get_chat_proxies),
):
    """
    Stream a persona-prefixed completion of `messages`.

    The first chunk is pulled before the response starts so that a missing
    credential or an immediate provider failure still gets a 500 body.
    """
    proxy = proxies[provider]
    history: List[dict] = [m.model_dump() for m in body.messages]

    try:
        stream = proxy.send(history)
    except ConfigurationError as e:
        chat_log(str(e), logging.WARNING, extra={"provider": provider.value})
        return error_response(500, str(e))

    try:
        first: Optional[str] = await anext(stream)
    except StopAsyncIteration:
        first = None
    except StreamError as e:
        chat_log(f"{provider.value} failed before first chunk: {e}", logging.ERROR,
                 extra={"provider": provider.value})
        return error_response(500, str(e))

    if "text/event-stream" in request.headers.get("accept", ""):
        return StreamingResponse(
            _sse_events(stream, first),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
    return StreamingResponse(_text_events(stream, first), media_type="text/plain")


@router.post("/openai/transcribe", response_model=TranscriptionResponse)
async def transcribe(
    audio: Optional[UploadFile] = File(None),
    transcriber: AudioTranscriber = Depends(get_transcriber),
):
    """Transcribe one uploaded audio file (multipart field `audio`)."""
    payload = None
    if audio is not None:
        payload = AudioPayload(
            filename=audio.filename or "audio.webm",
            content=await audio.read(),
            content_type=audio.content_type or "audio/webm",
        )

    try:
        text = await transcriber.transcribe(payload)
    except MissingAudioError as e:
        return error_response(400, str(e))
    except (ConfigurationError, TranscriptionError) as e:
        chat_log(f"Transcription failed: {e}", logging.ERROR)
        return error_response(500, str(e))

    return TranscriptionResponse(text=text)
