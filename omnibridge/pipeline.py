"""Glue between an upstream SSE body and the client-facing response.

``stream_translated`` re-frames a provider's native SSE stream in the
client's wire format, chunk by chunk. ``collect_translated`` runs the same
translation and aggregates the result into one JSON object, so streaming and
non-streaming clients see the same content.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterable, AsyncIterator, Optional

from fastapi.responses import JSONResponse, StreamingResponse

from .core.sse import (
    STREAM_ERROR_CHECK_BUFFER_SIZE,
    detect_sse_stream_error,
    done_sentinel,
    encode,
    iter_sse_json,
)
from .translator import Format, aggregate, init_state, translate

logger = logging.getLogger("omnibridge")

STREAMING_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
}


async def peek_stream_error(
    upstream: AsyncIterable[bytes],
) -> tuple[Optional[str], AsyncIterator[bytes]]:
    """Buffer the head of an SSE stream and look for an upstream error event.

    Returns the error message (or None) and an iterator that replays the
    buffered bytes before the rest of the stream.
    """
    iterator = upstream.__aiter__()
    buffered: list[bytes] = []
    size = 0
    exhausted = False
    while size < STREAM_ERROR_CHECK_BUFFER_SIZE:
        try:
            chunk = await iterator.__anext__()
        except StopAsyncIteration:
            exhausted = True
            break
        if chunk:
            buffered.append(chunk)
            size += len(chunk)

    error = detect_sse_stream_error(b"".join(buffered))

    async def replay() -> AsyncIterator[bytes]:
        for chunk in buffered:
            yield chunk
        if not exhausted:
            async for chunk in iterator:
                yield chunk

    return error, replay()


async def stream_translated(
    upstream: AsyncIterable[bytes],
    source_format: Any,
    target_format: Any,
    model: str = "",
    strict: bool = False,
) -> AsyncIterator[bytes]:
    """Yield client-framed SSE bytes for an upstream SSE byte stream.

    The stream is flushed once the upstream ends and, where the client's
    protocol has one, closed with its sentinel line.
    """
    source = Format.coerce(source_format)
    target = Format.coerce(target_format)
    state = init_state(target, model=model, strict=strict)

    error, replay = await peek_stream_error(upstream)
    if error:
        logger.warning("Upstream %s stream reported an error: %s", source.value, error)

    async for payload in iter_sse_json(replay):
        for event in translate(source, target, payload, state):
            yield encode(event, target)

    for event in translate(source, target, None, state):
        yield encode(event, target)

    if state.malformed_deltas:
        logger.debug(
            "Stream %s -> %s skipped %d malformed chunks",
            source.value, target.value, state.malformed_deltas,
        )
    sentinel = done_sentinel(target)
    if sentinel:
        yield sentinel


async def collect_translated(
    upstream: AsyncIterable[bytes],
    source_format: Any,
    target_format: Any,
    model: str = "",
) -> dict[str, Any]:
    """Translate an upstream SSE stream and aggregate it into one response."""
    source = Format.coerce(source_format)
    target = Format.coerce(target_format)
    state = init_state(target, model=model)
    events: list[Any] = []
    async for payload in iter_sse_json(upstream):
        events.extend(translate(source, target, payload, state))
    events.extend(translate(source, target, None, state))
    return aggregate(events, target)


def build_streaming_response(
    body: AsyncIterable[bytes], status_code: int = 200
) -> StreamingResponse:
    return StreamingResponse(
        body,
        status_code=status_code,
        media_type="text/event-stream",
        headers=dict(STREAMING_HEADERS),
    )


def build_json_response(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content, status_code=status_code, headers=dict(JSON_HEADERS))
