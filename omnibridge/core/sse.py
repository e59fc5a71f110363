"""SSE (Server-Sent Events) framing, decoding and error detection."""

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterable, Mapping, Optional

from ..translator.formats import EVENT_STREAM_FORMATS, Format

logger = logging.getLogger("omnibridge")

DONE_LINE = b"data: [DONE]\n\n"

# Max bytes to buffer when checking for streaming errors before committing to client
STREAM_ERROR_CHECK_BUFFER_SIZE = 4096

# Formats whose clients expect a literal [DONE] line after the last event.
_SENTINEL_FORMATS = frozenset({Format.OPENAI})


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def encode(event: Mapping[str, Any], target_format: Any) -> bytes:
    """Frame one target-protocol event for the wire.

    Event-stream protocols get an ``event:`` line naming the event type;
    everything else is a bare ``data:`` line. The terminating sentinel is
    never written here, see :func:`done_sentinel`.
    """
    fmt = Format.coerce(target_format)
    payload = _dumps(event)
    event_type = event.get("type") if isinstance(event, Mapping) else None
    if fmt in EVENT_STREAM_FORMATS and isinstance(event_type, str) and event_type:
        return f"event: {event_type}\ndata: {payload}\n\n".encode("utf-8")
    return f"data: {payload}\n\n".encode("utf-8")


def encode_all(events: Iterable[Mapping[str, Any]], target_format: Any) -> bytes:
    return b"".join(encode(event, target_format) for event in events)


def done_sentinel(target_format: Any) -> bytes:
    """Return the end-of-stream sentinel line for a format (may be empty)."""
    if Format.coerce(target_format) in _SENTINEL_FORMATS:
        return DONE_LINE
    return b""


@dataclass
class SSEEvent:
    data: Optional[str]
    event: Optional[str] = None
    other_lines: list[str] = field(default_factory=list)

    def json(self) -> Any:
        """Decode the data payload, returning None for [DONE] or invalid JSON."""
        if self.data is None:
            return None
        text = self.data.strip()
        if not text or text == "[DONE]":
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.debug("SSE: failed to parse data payload: %s", text[:100])
            return None

    @property
    def is_done(self) -> bool:
        return self.data is not None and self.data.strip() == "[DONE]"


class SSEDecoder:
    """Incremental decoder splitting a byte stream into SSE events.

    Multibyte characters and CRLF pairs may straddle chunk boundaries.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._pending_cr = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        if not chunk:
            return []
        return self._push(self._decoder.decode(chunk))

    def flush(self) -> list[SSEEvent]:
        """Parse whatever is left in the buffer as a final event."""
        events = self._push(self._decoder.decode(b"", final=True), final=True)
        if not self._buffer.strip():
            self._buffer = ""
            return events
        leftover = self._buffer
        self._buffer = ""
        events.append(self._parse_event(leftover.strip("\n")))
        return events

    def _push(self, text: str, final: bool = False) -> list[SSEEvent]:
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        if text.endswith("\r") and not final:
            # The matching \n may arrive with the next chunk
            text = text[:-1]
            self._pending_cr = True
        self._buffer += text.replace("\r\n", "\n").replace("\r", "\n")
        events: list[SSEEvent] = []

        while True:
            sep_index = self._buffer.find("\n\n")
            if sep_index == -1:
                break
            raw_event = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + 2:]
            if not raw_event.strip():
                continue
            events.append(self._parse_event(raw_event))

        return events

    @staticmethod
    def _parse_event(raw: str) -> SSEEvent:
        data_lines: list[str] = []
        other_lines: list[str] = []
        event_name: Optional[str] = None
        for line in raw.split("\n"):
            if line.startswith("data:"):
                data_lines.append(line[5:].lstrip())
            elif line.startswith("event:"):
                event_name = line[6:].strip()
            else:
                other_lines.append(line)
        data = "\n".join(data_lines) if data_lines else None
        return SSEEvent(data=data, event=event_name, other_lines=other_lines)


async def iter_sse_json(stream: AsyncIterator[bytes]) -> AsyncIterator[Any]:
    """Yield decoded JSON payloads from an SSE byte stream, skipping [DONE]."""
    decoder = SSEDecoder()
    async for chunk in stream:
        for event in decoder.feed(chunk):
            payload = event.json()
            if payload is not None:
                yield payload
    for event in decoder.flush():
        payload = event.json()
        if payload is not None:
            yield payload


def detect_sse_stream_error(data: bytes) -> Optional[str]:
    """
    Check if buffered SSE data contains an error event.

    Returns an error message if an error is detected, None otherwise.

    Detects patterns like:
    - Anthropic: data: {"type":"error","error":{...}}
    - Generic: data: {"error":{...}}
    """
    text = data.decode("utf-8", errors="replace")

    for line in text.split("\n"):
        line = line.strip()
        if not line.startswith("data:"):
            continue

        json_part = line[5:].strip()
        if not json_part or json_part == "[DONE]":
            continue

        try:
            parsed = json.loads(json_part)
        except json.JSONDecodeError:
            continue

        if not isinstance(parsed, dict):
            continue

        if parsed.get("type") == "error":
            error_obj = parsed.get("error") or {}
            if isinstance(error_obj, dict):
                error_msg = error_obj.get("message") or str(error_obj)
                error_type = error_obj.get("type", "unknown")
            else:
                error_msg = str(error_obj)
                error_type = "unknown"
            return f"SSE stream error: {error_msg} (type={error_type})"

        # Gemini and OpenAI put the error object at the top level
        error_obj = parsed.get("error")
        if isinstance(error_obj, dict):
            error_msg = error_obj.get("message") or str(error_obj)
            error_type = error_obj.get("type") or error_obj.get("status") or "unknown"
            return f"SSE stream error: {error_msg} (type={error_type})"

    return None
