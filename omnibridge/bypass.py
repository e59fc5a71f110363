"""Local answers for requests that never need a provider.

Warmup probes and messages matching a configured skip phrase get a canned
completion. The canned completion is streamed through the translation engine
exactly like a provider response, so clients of every protocol receive
correctly framed output.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterable, Mapping, Optional, Union

from fastapi.responses import Response

from .core.sse import done_sentinel, encode
from .pipeline import build_json_response, build_streaming_response
from .translator import CANONICAL, Format, aggregate, detect_format, init_state, translate
from .translator.canonical import generate_completion_id

logger = logging.getLogger("omnibridge")

WARMUP_TEXT = "Warmup"
BYPASS_TEXT = "CLI Command Execution: Clear Terminal"
BYPASS_USAGE = {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}


@dataclass
class BypassResult:
    """A synthesized answer in the client's own wire format."""

    format: Format
    stream: bool
    chunks: list[bytes] = field(default_factory=list)
    body: Optional[dict[str, Any]] = None

    def to_response(self) -> Response:
        if self.stream:
            return build_streaming_response(_iterate(self.chunks))
        return build_json_response(self.body)


async def _iterate(chunks: list[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            str(part.get("text", ""))
            for part in content
            if isinstance(part, Mapping) and part.get("type") == "text"
        )
    return ""


def should_bypass(body: Mapping[str, Any], skip_patterns: Iterable[str] = ()) -> bool:
    """True for warmup probes and user turns containing a skip phrase.

    Only user messages are searched, so system prompts never match.
    """
    messages = body.get("messages") if isinstance(body, Mapping) else None
    if not isinstance(messages, list) or not messages:
        return False

    first = messages[0] if isinstance(messages[0], Mapping) else {}
    if message_text(first.get("content")) == WARMUP_TEXT:
        return True

    patterns = [p for p in skip_patterns if p]
    if not patterns:
        return False
    user_text = " ".join(
        message_text(m.get("content"))
        for m in messages
        if isinstance(m, Mapping) and m.get("role") == "user"
    )
    return any(pattern in user_text for pattern in patterns)


def synthesize_completion(model: str) -> dict[str, Any]:
    """The canned OpenAI chat completion returned for bypassed requests."""
    return {
        "id": generate_completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": BYPASS_TEXT},
            "finish_reason": "stop",
        }],
        "usage": dict(BYPASS_USAGE),
    }


def completion_to_chunks(completion: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Split a complete chat completion into a content chunk and a finish chunk."""
    choice = completion["choices"][0]
    common = {
        "id": completion["id"],
        "object": "chat.completion.chunk",
        "created": completion["created"],
        "model": completion["model"],
    }
    return [
        {
            **common,
            "choices": [{
                "index": 0,
                "delta": {"role": "assistant", "content": choice["message"]["content"]},
                "finish_reason": None,
            }],
        },
        {
            **common,
            "choices": [{"index": 0, "delta": {}, "finish_reason": choice["finish_reason"]}],
            "usage": completion.get("usage"),
        },
    ]


def translated_events(completion: Mapping[str, Any], target_format: Any) -> list[Any]:
    """Run a complete canonical completion through the engine, flush included."""
    target = Format.coerce(target_format)
    state = init_state(target, model=str(completion.get("model") or ""))
    events: list[Any] = []
    for chunk in completion_to_chunks(completion):
        events.extend(translate(CANONICAL, target, chunk, state))
    events.extend(translate(CANONICAL, target, None, state))
    return events


def handle_bypass_request(
    body: Mapping[str, Any],
    model: str,
    skip_patterns: Iterable[str] = (),
    source_format: Union[Format, str, None] = None,
) -> Optional[BypassResult]:
    """Answer ``body`` locally when it is a bypass case, else return None.

    The reply uses the request's own format (detected when not given) and
    streams unless the body sets ``"stream": false``.
    """
    if not should_bypass(body, skip_patterns):
        return None

    fmt = Format.coerce(source_format) if source_format is not None else detect_format(body)
    stream = body.get("stream") is not False
    completion = synthesize_completion(model)
    logger.info(f"Bypassing provider for {fmt.value} request (model={model}, stream={stream})")

    if not stream and fmt == CANONICAL:
        return BypassResult(format=fmt, stream=False, body=completion)

    events = translated_events(completion, fmt)
    if not stream:
        return BypassResult(format=fmt, stream=False, body=aggregate(events, fmt))

    chunks = [encode(event, fmt) for event in events]
    sentinel = done_sentinel(fmt)
    if sentinel:
        chunks.append(sentinel)
    return BypassResult(format=fmt, stream=True, chunks=chunks)
