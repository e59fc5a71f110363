"""Wire-protocol identifiers and format detection.

The canonical pivot is the OpenAI chat completion chunk: every translation
either starts from it (emit direction) or ends in it (ingest direction).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from ..core.exceptions import UnsupportedFormatError


class Format(str, Enum):
    """Supported chat-completion wire protocols."""

    OPENAI = "openai"
    OPENAI_RESPONSES = "openai-responses"
    CLAUDE = "claude"
    GEMINI = "gemini"
    GEMINI_CLI = "gemini-cli"
    ANTIGRAVITY = "antigravity"

    @classmethod
    def coerce(cls, value: Any) -> "Format":
        """Return the Format for an enum member or its string value."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnsupportedFormatError(value)

    def __str__(self) -> str:
        return self.value


CANONICAL = Format.OPENAI

# Block/turn oriented protocols that frame content with explicit open/close events.
EVENT_STREAM_FORMATS = frozenset({Format.CLAUDE, Format.OPENAI_RESPONSES})

# Gemini-style chunk protocols.
GEMINI_FORMATS = frozenset({Format.GEMINI, Format.GEMINI_CLI, Format.ANTIGRAVITY})

# Gemini payloads wrapped as {"response": {...}} by the internal Code Assist APIs.
ENVELOPED_FORMATS = frozenset({Format.GEMINI_CLI, Format.ANTIGRAVITY})


def is_event_stream(fmt: Any) -> bool:
    return Format.coerce(fmt) in EVENT_STREAM_FORMATS


def is_gemini_family(fmt: Any) -> bool:
    return Format.coerce(fmt) in GEMINI_FORMATS


def detect_format(body: Mapping[str, Any]) -> Format:
    """Guess the wire format of an inbound request body.

    Falls back to the canonical format when nothing distinctive is present.
    """
    if not isinstance(body, Mapping):
        return CANONICAL

    request = body.get("request")
    if isinstance(request, Mapping) and "contents" in request:
        if body.get("userAgent") == "antigravity" or body.get("requestType"):
            return Format.ANTIGRAVITY
        return Format.GEMINI_CLI

    if "contents" in body:
        return Format.GEMINI

    if "input" in body and "messages" not in body:
        return Format.OPENAI_RESPONSES

    messages = body.get("messages")
    if isinstance(body.get("system"), (str, list)) and isinstance(messages, list):
        return Format.CLAUDE
    if "anthropic_version" in body or "stop_sequences" in body:
        return Format.CLAUDE
    if isinstance(messages, list):
        for message in messages:
            content = message.get("content") if isinstance(message, Mapping) else None
            if not isinstance(content, list):
                continue
            for block in content:
                if isinstance(block, Mapping) and block.get("type") in {
                    "tool_use",
                    "tool_result",
                    "image",
                    "document",
                    "thinking",
                }:
                    return Format.CLAUDE

    return CANONICAL
