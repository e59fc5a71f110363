"""Canonical delta: the pivot every translation passes through.

On the wire the canonical delta is an OpenAI ``chat.completion.chunk``.
Emitters read it through :class:`CanonicalDelta`; ingesters build it with
:meth:`CanonicalDelta.to_chunk`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from uuid import uuid4

from ..types.chat import ChatCompletionChunk, Usage


def generate_message_id() -> str:
    """Generate a unique message ID."""
    return f"msg_{uuid4().hex[:24]}"


def generate_call_id() -> str:
    """Generate a unique tool call ID."""
    return f"call_{uuid4().hex[:24]}"


def generate_tool_use_id() -> str:
    return f"toolu_{uuid4().hex[:24]}"


def generate_completion_id() -> str:
    return f"chatcmpl-{uuid4().hex[:24]}"


# =============================================================================
# Finish reason vocabularies
# =============================================================================

_OPENAI_TO_CLAUDE = {
    "stop": "end_turn",
    "length": "max_tokens",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "content_filter": "refusal",
}

_CLAUDE_TO_OPENAI = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "pause_turn": "stop",
    "max_tokens": "length",
    "tool_use": "tool_calls",
    "refusal": "content_filter",
}

_OPENAI_TO_GEMINI = {
    "stop": "STOP",
    "tool_calls": "STOP",
    "function_call": "STOP",
    "length": "MAX_TOKENS",
    "content_filter": "SAFETY",
}

_GEMINI_FILTERED = {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}


def finish_to_claude(finish_reason: Optional[str]) -> str:
    """Convert OpenAI finish_reason to Anthropic stop_reason.

    OpenAI: stop, length, tool_calls, content_filter, function_call
    Anthropic: end_turn, max_tokens, stop_sequence, tool_use, refusal
    """
    if finish_reason is None:
        return "end_turn"
    return _OPENAI_TO_CLAUDE.get(finish_reason, "end_turn")


def finish_from_claude(stop_reason: Optional[str]) -> str:
    if stop_reason is None:
        return "stop"
    return _CLAUDE_TO_OPENAI.get(stop_reason, "stop")


def finish_to_gemini(finish_reason: Optional[str]) -> str:
    if finish_reason is None:
        return "STOP"
    return _OPENAI_TO_GEMINI.get(finish_reason, "STOP")


def finish_from_gemini(finish_reason: Optional[str], has_tool_calls: bool = False) -> str:
    reason = (finish_reason or "STOP").upper()
    if reason == "MAX_TOKENS":
        return "length"
    if reason in _GEMINI_FILTERED:
        return "content_filter"
    if has_tool_calls:
        return "tool_calls"
    return "stop"


# =============================================================================
# Usage conversions
# =============================================================================


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def normalize_usage(usage: Any) -> Optional[Usage]:
    """Return OpenAI usage with a consistent total, or None when absent."""
    if not isinstance(usage, Mapping):
        return None
    prompt = _as_int(usage.get("prompt_tokens"))
    completion = _as_int(usage.get("completion_tokens"))
    result: Usage = dict(usage)  # type: ignore[assignment]
    result["prompt_tokens"] = prompt
    result["completion_tokens"] = completion
    result["total_tokens"] = _as_int(usage.get("total_tokens")) or prompt + completion
    return result


def usage_to_claude(usage: Optional[Mapping[str, Any]]) -> dict[str, int]:
    usage = usage or {}
    result = {
        "input_tokens": _as_int(usage.get("prompt_tokens")),
        "output_tokens": _as_int(usage.get("completion_tokens")),
    }
    details = usage.get("prompt_tokens_details")
    if isinstance(details, Mapping) and details.get("cached_tokens"):
        result["cache_read_input_tokens"] = _as_int(details.get("cached_tokens"))
    return result


def usage_from_claude(usage: Optional[Mapping[str, Any]]) -> Usage:
    usage = usage or {}
    cached = _as_int(usage.get("cache_read_input_tokens"))
    prompt = _as_int(usage.get("input_tokens")) + cached
    completion = _as_int(usage.get("output_tokens"))
    result: Usage = {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": prompt + completion,
    }
    if cached:
        result["prompt_tokens_details"] = {"cached_tokens": cached}
    return result


def usage_to_gemini(usage: Optional[Mapping[str, Any]]) -> dict[str, int]:
    usage = usage or {}
    prompt = _as_int(usage.get("prompt_tokens"))
    completion = _as_int(usage.get("completion_tokens"))
    result = {
        "promptTokenCount": prompt,
        "candidatesTokenCount": completion,
        "totalTokenCount": _as_int(usage.get("total_tokens")) or prompt + completion,
    }
    details = usage.get("completion_tokens_details")
    if isinstance(details, Mapping) and details.get("reasoning_tokens"):
        result["thoughtsTokenCount"] = _as_int(details.get("reasoning_tokens"))
    return result


def usage_from_gemini(meta: Optional[Mapping[str, Any]]) -> Usage:
    meta = meta or {}
    prompt = _as_int(meta.get("promptTokenCount"))
    thoughts = _as_int(meta.get("thoughtsTokenCount"))
    completion = _as_int(meta.get("candidatesTokenCount")) + thoughts
    result: Usage = {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": _as_int(meta.get("totalTokenCount")) or prompt + completion,
    }
    if thoughts:
        result["completion_tokens_details"] = {"reasoning_tokens": thoughts}
    cached = _as_int(meta.get("cachedContentTokenCount"))
    if cached:
        result["prompt_tokens_details"] = {"cached_tokens": cached}
    return result


def usage_to_responses(usage: Optional[Mapping[str, Any]]) -> dict[str, int]:
    """Convert Chat Completions usage to Responses API format."""
    if not usage:
        return {}
    result: dict[str, int] = {}
    if "prompt_tokens" in usage:
        result["input_tokens"] = _as_int(usage["prompt_tokens"])
    if "completion_tokens" in usage:
        result["output_tokens"] = _as_int(usage["completion_tokens"])
    if "total_tokens" in usage:
        result["total_tokens"] = _as_int(usage["total_tokens"])
    return result


# =============================================================================
# Canonical delta
# =============================================================================


@dataclass
class ToolCallDelta:
    """One tool-call fragment; ``index`` stitches fragments together."""

    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"index": self.index}
        if self.id is not None:
            result["id"] = self.id
            result["type"] = "function"
        function: dict[str, Any] = {}
        if self.name is not None:
            function["name"] = self.name
        if self.arguments is not None:
            function["arguments"] = self.arguments
        if function:
            result["function"] = function
        return result


@dataclass
class CanonicalDelta:
    """One incremental completion update, normalised from a chat chunk."""

    id: str
    created: int
    model: str
    index: int = 0
    role: Optional[str] = None
    content: Optional[str] = None
    reasoning: Optional[str] = None
    tool_calls: list[ToolCallDelta] = field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Optional[Usage] = None

    @property
    def has_output(self) -> bool:
        """True when the delta carries text, reasoning or tool fragments."""
        return bool(self.content or self.reasoning or self.tool_calls)

    @classmethod
    def from_chunk(cls, chunk: Any) -> Optional["CanonicalDelta"]:
        """Normalise a chat chunk, returning None when it is malformed.

        A chunk is malformed when it is not an object, or carries neither a
        choice entry nor usage. Only the first choice is read.
        """
        if not isinstance(chunk, Mapping):
            return None
        choices = chunk.get("choices")
        usage = normalize_usage(chunk.get("usage"))
        base = cls(
            id=str(chunk.get("id") or ""),
            created=_as_int(chunk.get("created")) or int(time.time()),
            model=str(chunk.get("model") or ""),
            usage=usage,
        )
        if not isinstance(choices, list) or not choices:
            return base if usage is not None else None

        choice = choices[0]
        if not isinstance(choice, Mapping):
            return None
        delta = choice.get("delta")
        if delta is None:
            # Some upstreams send a full message on the final chunk
            delta = choice.get("message")
        if delta is None:
            delta = {}
        if not isinstance(delta, Mapping):
            return None

        base.index = _as_int(choice.get("index"))
        role = delta.get("role")
        base.role = role if isinstance(role, str) and role else None
        content = delta.get("content")
        if isinstance(content, str):
            base.content = content
        elif isinstance(content, list):
            base.content = "".join(
                part.get("text", "")
                for part in content
                if isinstance(part, Mapping) and isinstance(part.get("text"), str)
            )
        reasoning = delta.get("reasoning_content") or delta.get("reasoning")
        if isinstance(reasoning, str) and reasoning:
            base.reasoning = reasoning

        for position, raw in enumerate(delta.get("tool_calls") or []):
            if not isinstance(raw, Mapping):
                continue
            function = raw.get("function") or {}
            if not isinstance(function, Mapping):
                function = {}
            name = function.get("name")
            arguments = function.get("arguments")
            if arguments is not None and not isinstance(arguments, str):
                arguments = str(arguments)
            base.tool_calls.append(
                ToolCallDelta(
                    index=_as_int(raw.get("index", position)),
                    id=raw.get("id") or None,
                    name=name if isinstance(name, str) else None,
                    arguments=arguments,
                )
            )

        finish_reason = choice.get("finish_reason")
        if isinstance(finish_reason, str) and finish_reason:
            base.finish_reason = finish_reason
        return base

    def to_chunk(self) -> ChatCompletionChunk:
        delta: dict[str, Any] = {}
        if self.role is not None:
            delta["role"] = self.role
        if self.content is not None:
            delta["content"] = self.content
        if self.reasoning is not None:
            delta["reasoning_content"] = self.reasoning
        if self.tool_calls:
            delta["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        chunk: ChatCompletionChunk = {
            "id": self.id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{
                "index": self.index,
                "delta": delta,
                "finish_reason": self.finish_reason,
            }],
        }
        if self.usage is not None:
            chunk["usage"] = self.usage
        return chunk
