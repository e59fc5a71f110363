"""Gemini family stream chunks -> canonical chat chunks."""

from __future__ import annotations

import json
from typing import Any, Mapping

from ..types.chat import ChatCompletionChunk
from .canonical import (
    CanonicalDelta,
    ToolCallDelta,
    finish_from_gemini,
    generate_call_id,
    generate_completion_id,
    usage_from_gemini,
)
from .state import ToolCallProgress, TranslationState


def unwrap(event: Any) -> Any:
    """Strip the Code Assist ``{"response": ...}`` envelope if present."""
    if isinstance(event, Mapping) and isinstance(event.get("response"), Mapping):
        return event["response"]
    return event


def ingest(event: Any, state: TranslationState) -> list[ChatCompletionChunk]:
    payload = unwrap(event)
    if not isinstance(payload, Mapping):
        state.note_malformed(event)
        return []

    usage_meta = payload.get("usageMetadata")
    if isinstance(usage_meta, Mapping):
        state.usage = usage_from_gemini(usage_meta)
    if state.terminated:
        # Trailing chunks after the finish only refresh usage
        return []

    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], Mapping):
        if not isinstance(usage_meta, Mapping):
            state.note_malformed(event)
        # Usage-only chunks are held for the finish chunk
        return []
    candidate = candidates[0]

    if not state.message_id:
        state.message_id = str(payload.get("responseId") or generate_completion_id())
    if not state.model and payload.get("modelVersion"):
        state.model = str(payload["modelVersion"])

    delta = CanonicalDelta(
        id=_completion_id(state.message_id),
        created=state.created,
        model=state.model,
    )
    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, Mapping) else None
    texts: list[str] = []
    thoughts: list[str] = []
    for part in parts or []:
        if not isinstance(part, Mapping):
            continue
        function_call = part.get("functionCall")
        if isinstance(function_call, Mapping):
            delta.tool_calls.append(_tool_call(function_call, state))
            continue
        text = part.get("text")
        if not isinstance(text, str) or not text:
            continue
        if part.get("thought"):
            thoughts.append(text)
        else:
            texts.append(text)

    if texts:
        delta.content = "".join(texts)
        state.accumulated_text += delta.content
    if thoughts:
        delta.reasoning = "".join(thoughts)

    finish_reason = candidate.get("finishReason")
    if isinstance(finish_reason, str) and finish_reason:
        state.finish_reason = finish_from_gemini(finish_reason, bool(state.tool_calls))
        delta.finish_reason = state.finish_reason
        delta.usage = state.usage
        state.terminated = True

    if not (delta.has_output or delta.finish_reason):
        return []
    if not state.started:
        delta.role = "assistant"
        state.started = True
    return [delta.to_chunk()]


def flush(state: TranslationState) -> list[ChatCompletionChunk]:
    if state.terminated:
        return []
    if not state.message_id:
        state.message_id = generate_completion_id()
    delta = CanonicalDelta(
        id=_completion_id(state.message_id),
        created=state.created,
        model=state.model,
        finish_reason=state.finish_reason or ("tool_calls" if state.tool_calls else "stop"),
        usage=state.usage,
    )
    if not state.started:
        delta.role = "assistant"
        state.started = True
    state.terminated = True
    return [delta.to_chunk()]


def _tool_call(function_call: Mapping[str, Any], state: TranslationState) -> ToolCallDelta:
    index = len(state.tool_calls)
    arguments = json.dumps(function_call.get("args") or {}, ensure_ascii=False)
    progress = ToolCallProgress(
        id=str(function_call.get("id") or generate_call_id()),
        name=str(function_call.get("name") or ""),
        arguments=arguments,
    )
    state.tool_calls[index] = progress
    return ToolCallDelta(index=index, id=progress.id, name=progress.name, arguments=arguments)


def _completion_id(response_id: str) -> str:
    if response_id.startswith("chatcmpl-"):
        return response_id
    return f"chatcmpl-{response_id}"
