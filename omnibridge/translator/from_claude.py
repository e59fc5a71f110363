"""Anthropic Messages stream events -> canonical chat chunks."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..types.chat import ChatCompletionChunk
from .canonical import (
    CanonicalDelta,
    ToolCallDelta,
    finish_from_claude,
    generate_message_id,
    generate_tool_use_id,
    usage_from_claude,
)
from .state import ToolCallProgress, TranslationState

logger = logging.getLogger("omnibridge")

_IGNORED_EVENTS = {"ping", "content_block_stop", "message_stop"}


def ingest(event: Any, state: TranslationState) -> list[ChatCompletionChunk]:
    event_type = event.get("type") if isinstance(event, Mapping) else None
    if not isinstance(event_type, str):
        state.note_malformed(event)
        return []

    if event_type == "message_start":
        return _message_start(event, state)
    if state.terminated and event_type in ("content_block_start", "content_block_delta"):
        return []
    if event_type == "content_block_start":
        return _block_start(event, state)
    if event_type == "content_block_delta":
        return _block_delta(event, state)
    if event_type == "message_delta":
        return _message_delta(event, state)
    if event_type == "error":
        error = event.get("error") or {}
        logger.warning("Upstream Claude stream reported an error: %s", error)
        return []
    if event_type == "content_block_stop":
        state.open_blocks.pop(_as_index(event.get("index")), None)
        return []
    if event_type not in _IGNORED_EVENTS:
        logger.debug("Ignoring unknown Claude stream event %s", event_type)
    return []


def flush(state: TranslationState) -> list[ChatCompletionChunk]:
    if state.terminated:
        return []
    delta = _delta(state)
    if not state.started:
        delta.role = "assistant"
        state.started = True
    delta.finish_reason = state.finish_reason or (
        "tool_calls" if state.tool_calls else "stop"
    )
    delta.usage = state.usage
    state.terminated = True
    return [delta.to_chunk()]


def _message_start(event: Mapping[str, Any], state: TranslationState) -> list[ChatCompletionChunk]:
    message = event.get("message")
    if not isinstance(message, Mapping):
        state.note_malformed(event)
        return []
    if state.started:
        return []
    state.message_id = str(message.get("id") or state.message_id or generate_message_id())
    state.model = state.model or str(message.get("model") or "")
    usage = message.get("usage")
    if isinstance(usage, Mapping):
        state.usage = usage_from_claude(usage)
    state.started = True
    delta = _delta(state)
    delta.role = "assistant"
    delta.content = ""
    return [delta.to_chunk()]


def _block_start(event: Mapping[str, Any], state: TranslationState) -> list[ChatCompletionChunk]:
    block = event.get("content_block")
    if not isinstance(block, Mapping):
        state.note_malformed(event)
        return []
    index = _as_index(event.get("index"))
    block_type = str(block.get("type") or "text")
    state.open_blocks[index] = block_type

    delta = _delta(state)
    if block_type == "tool_use":
        tool_index = len(state.tool_calls)
        progress = ToolCallProgress(
            id=str(block.get("id") or generate_tool_use_id()),
            name=str(block.get("name") or ""),
            block_index=index,
        )
        state.tool_calls[tool_index] = progress
        delta.tool_calls.append(ToolCallDelta(
            index=tool_index, id=progress.id, name=progress.name, arguments="",
        ))
        return [delta.to_chunk()]
    if block_type == "text" and block.get("text"):
        delta.content = str(block["text"])
        state.accumulated_text += delta.content
        return [delta.to_chunk()]
    if block_type == "thinking" and block.get("thinking"):
        delta.reasoning = str(block["thinking"])
        return [delta.to_chunk()]
    return []


def _block_delta(event: Mapping[str, Any], state: TranslationState) -> list[ChatCompletionChunk]:
    payload = event.get("delta")
    if not isinstance(payload, Mapping):
        state.note_malformed(event)
        return []
    delta_type = payload.get("type")
    delta = _delta(state)

    if delta_type == "text_delta":
        text = payload.get("text") or ""
        if not text:
            return []
        delta.content = text
        state.accumulated_text += text
    elif delta_type == "thinking_delta":
        thinking = payload.get("thinking") or ""
        if not thinking:
            return []
        delta.reasoning = thinking
    elif delta_type == "input_json_delta":
        fragment = payload.get("partial_json") or ""
        tool_index = _tool_index_for_block(state, _as_index(event.get("index")))
        if not fragment or tool_index is None:
            return []
        state.tool_calls[tool_index].arguments += fragment
        delta.tool_calls.append(ToolCallDelta(index=tool_index, arguments=fragment))
    else:
        # signature_delta and citations have no chat-completion equivalent
        return []
    return [delta.to_chunk()]


def _message_delta(event: Mapping[str, Any], state: TranslationState) -> list[ChatCompletionChunk]:
    payload = event.get("delta")
    usage = event.get("usage")
    if isinstance(usage, Mapping):
        merged = dict(_claude_usage_from_state(state))
        merged.update({k: v for k, v in usage.items() if v is not None})
        state.usage = usage_from_claude(merged)
    stop_reason = payload.get("stop_reason") if isinstance(payload, Mapping) else None
    if not stop_reason or state.terminated:
        return []
    state.finish_reason = finish_from_claude(stop_reason)
    delta = _delta(state)
    delta.finish_reason = state.finish_reason
    delta.usage = state.usage
    state.terminated = True
    return [delta.to_chunk()]


def _claude_usage_from_state(state: TranslationState) -> dict[str, int]:
    usage = state.usage or {}
    details = usage.get("prompt_tokens_details") or {}
    cached = int(details.get("cached_tokens") or 0)
    result = {
        "input_tokens": int(usage.get("prompt_tokens") or 0) - cached,
        "output_tokens": int(usage.get("completion_tokens") or 0),
    }
    if cached:
        result["cache_read_input_tokens"] = cached
    return result


def _tool_index_for_block(state: TranslationState, block_index: int) -> Optional[int]:
    for tool_index, progress in state.tool_calls.items():
        if progress.block_index == block_index:
            return tool_index
    return None


def _as_index(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _delta(state: TranslationState) -> CanonicalDelta:
    if not state.message_id:
        state.message_id = generate_message_id()
    return CanonicalDelta(
        id=_completion_id(state.message_id),
        created=state.created,
        model=state.model,
    )


def _completion_id(message_id: str) -> str:
    if message_id.startswith("msg_"):
        return f"chatcmpl-{message_id[4:]}"
    return f"chatcmpl-{message_id}"
