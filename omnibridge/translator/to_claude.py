"""Canonical chat deltas -> Anthropic Messages stream events.

OpenAI Chat Completion deltas:
    {"choices":[{"delta":{"role":"assistant"},"index":0}]}
    {"choices":[{"delta":{"content":"Hello"},"index":0}]}
    {"choices":[{"delta":{"tool_calls":[...]},"index":0}]}
    {"choices":[{"delta":{},"finish_reason":"stop","index":0}]}

Anthropic Messages events:
    {"type":"message_start","message":{...}}
    {"type":"content_block_start","index":0,"content_block":{"type":"text","text":""}}
    {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hello"}}
    {"type":"content_block_stop","index":0}
    {"type":"message_delta","delta":{"stop_reason":"end_turn"},"usage":{...}}
    {"type":"message_stop"}
"""

from __future__ import annotations

from typing import Any

from ..types.chat import AnthropicContentBlock, AnthropicStreamEvent
from .canonical import (
    CanonicalDelta,
    ToolCallDelta,
    finish_to_claude,
    generate_message_id,
    generate_tool_use_id,
    usage_to_claude,
)
from .state import ToolCallProgress, TranslationState


def emit(delta: CanonicalDelta, state: TranslationState) -> list[AnthropicStreamEvent]:
    """Translate one canonical delta into zero or more Claude events."""
    events: list[AnthropicStreamEvent] = []
    state.record_usage(delta.usage)

    if not state.started:
        if not (delta.role or delta.has_output or delta.finish_reason):
            return events
        events.append(_message_start(delta, state))
        state.started = True
        # A role announcement opens the text block up front, unless the
        # delta leads with reasoning or a tool call.
        if delta.role and not delta.reasoning and not delta.tool_calls:
            events.append(_open_text_block(state))

    if delta.reasoning:
        if state.thinking_block_index is None:
            events.extend(_close_text_block(state))
            state.thinking_block_index = state.open_block("thinking")
            events.append(_block_start(
                state.thinking_block_index,
                {"type": "thinking", "thinking": ""},
            ))
        events.append(_block_delta(
            state.thinking_block_index,
            {"type": "thinking_delta", "thinking": delta.reasoning},
        ))

    if delta.content:
        events.extend(_close_thinking_block(state))
        if state.text_block_index is None:
            events.append(_open_text_block(state))
        state.accumulated_text += delta.content
        events.append(_block_delta(
            state.text_block_index,
            {"type": "text_delta", "text": delta.content},
        ))

    for call in delta.tool_calls:
        events.extend(_tool_call_events(call, state))

    if delta.finish_reason:
        state.finish_reason = delta.finish_reason
        events.extend(_terminal_events(state))

    return events


def flush(state: TranslationState) -> list[AnthropicStreamEvent]:
    """Close whatever is still open and emit the terminal events."""
    if state.terminated:
        return []
    events: list[AnthropicStreamEvent] = []
    if not state.started:
        events.append(_message_start(None, state))
        state.started = True
    events.extend(_terminal_events(state))
    return events


def _tool_call_events(call: ToolCallDelta, state: TranslationState) -> list[AnthropicStreamEvent]:
    events: list[AnthropicStreamEvent] = []
    progress = state.tool_calls.get(call.index)

    if progress is None:
        events.extend(_close_text_block(state))
        events.extend(_close_thinking_block(state))
        progress = ToolCallProgress(
            id=call.id or generate_tool_use_id(),
            name=call.name or "",
        )
        progress.block_index = state.open_block("tool_use")
        state.tool_calls[call.index] = progress
        events.append(_block_start(
            progress.block_index,
            {"type": "tool_use", "id": progress.id, "name": progress.name, "input": {}},
        ))
    elif call.name:
        progress.name = call.name

    if call.arguments:
        progress.arguments += call.arguments
        events.append(_block_delta(
            progress.block_index,
            {"type": "input_json_delta", "partial_json": call.arguments},
        ))
    return events


def _terminal_events(state: TranslationState) -> list[AnthropicStreamEvent]:
    events: list[AnthropicStreamEvent] = []
    for index in sorted(state.open_blocks):
        events.append(_block_stop(index))
    state.open_blocks.clear()
    state.text_block_index = None
    state.thinking_block_index = None

    events.append({
        "type": "message_delta",
        "delta": {
            "stop_reason": finish_to_claude(state.finish_reason or "stop"),
            "stop_sequence": None,
        },
        "usage": usage_to_claude(state.usage),
    })
    events.append({"type": "message_stop"})
    state.terminated = True
    return events


def _message_start(delta: CanonicalDelta | None, state: TranslationState) -> AnthropicStreamEvent:
    if not state.message_id:
        state.message_id = generate_message_id()
    if not state.model and delta is not None:
        state.model = delta.model
    message: dict[str, Any] = {
        "id": state.message_id,
        "type": "message",
        "role": "assistant",
        "content": [],
        "model": state.model,
        "stop_reason": None,
        "stop_sequence": None,
        "usage": {"input_tokens": 0, "output_tokens": 0},
    }
    return {"type": "message_start", "message": message}


def _open_text_block(state: TranslationState) -> AnthropicStreamEvent:
    state.text_block_index = state.open_block("text")
    return _block_start(state.text_block_index, {"type": "text", "text": ""})


def _close_text_block(state: TranslationState) -> list[AnthropicStreamEvent]:
    index = state.text_block_index
    state.text_block_index = None
    if index is not None and state.close_block(index):
        return [_block_stop(index)]
    return []


def _close_thinking_block(state: TranslationState) -> list[AnthropicStreamEvent]:
    index = state.thinking_block_index
    state.thinking_block_index = None
    if index is not None and state.close_block(index):
        return [_block_stop(index)]
    return []


def _block_start(index: int, content_block: AnthropicContentBlock) -> AnthropicStreamEvent:
    return {"type": "content_block_start", "index": index, "content_block": content_block}


def _block_delta(index: int, delta: dict[str, Any]) -> AnthropicStreamEvent:
    return {"type": "content_block_delta", "index": index, "delta": delta}


def _block_stop(index: int) -> AnthropicStreamEvent:
    return {"type": "content_block_stop", "index": index}
