"""Canonical chat deltas -> OpenAI Responses API stream events.

Chat Completion deltas:
    {"choices":[{"delta":{"role":"assistant"},"index":0}]}
    {"choices":[{"delta":{"content":"Hello"},"index":0}]}

Responses API events:
    {"type":"response.created","response":{...}}
    {"type":"response.output_text.delta","delta":"Hello",...}
    {"type":"response.completed","response":{...}}

Output items play the role of content blocks: every
``response.output_item.added`` is matched by one ``response.output_item.done``.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from uuid import uuid4

from ..types.responses import (
    EVENT_CONTENT_PART_ADDED,
    EVENT_CONTENT_PART_DONE,
    EVENT_FUNCTION_CALL_ARGS_DELTA,
    EVENT_FUNCTION_CALL_ARGS_DONE,
    EVENT_OUTPUT_ITEM_ADDED,
    EVENT_OUTPUT_ITEM_DONE,
    EVENT_OUTPUT_TEXT_DELTA,
    EVENT_OUTPUT_TEXT_DONE,
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_CREATED,
    EVENT_RESPONSE_FAILED,
    EVENT_RESPONSE_IN_PROGRESS,
    EVENT_RESPONSE_INCOMPLETE,
    FunctionCallItem,
    MessageItem,
    ResponseObject,
)
from .canonical import CanonicalDelta, ToolCallDelta, generate_call_id, usage_to_responses
from .state import ToolCallProgress, TranslationState

logger = logging.getLogger("omnibridge")


def generate_response_id() -> str:
    return f"resp_{uuid4().hex[:24]}"


def emit(delta: CanonicalDelta, state: TranslationState) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    state.record_usage(delta.usage)
    if not state.model:
        state.model = delta.model

    if not state.started:
        events.extend(_lifecycle_start(state))

    if delta.reasoning:
        logger.debug("Responses stream: dropping reasoning delta (%d chars)", len(delta.reasoning))

    if (delta.role or delta.content) and state.message_item_id is None:
        events.extend(_open_message_item(state))

    if delta.content:
        state.accumulated_text += delta.content
        events.append(_event(state, EVENT_OUTPUT_TEXT_DELTA, {
            "item_id": state.message_item_id,
            "output_index": state.text_block_index,
            "content_index": 0,
            "delta": delta.content,
        }))

    for call in delta.tool_calls:
        events.extend(_tool_call_events(call, state))

    if delta.finish_reason:
        state.finish_reason = delta.finish_reason
        events.extend(_terminal_events(state))

    return events


def flush(state: TranslationState) -> list[dict[str, Any]]:
    if state.terminated:
        return []
    events: list[dict[str, Any]] = []
    if not state.started:
        events.extend(_lifecycle_start(state))
    events.extend(_terminal_events(state))
    return events


def _lifecycle_start(state: TranslationState) -> list[dict[str, Any]]:
    if not state.message_id:
        state.message_id = generate_response_id()
    state.started = True
    return [
        _event(state, EVENT_RESPONSE_CREATED, {"response": _response_object(state, "in_progress")}),
        _event(state, EVENT_RESPONSE_IN_PROGRESS, {"response": _response_object(state, "in_progress")}),
    ]


def _open_message_item(state: TranslationState) -> list[dict[str, Any]]:
    output_index = state.open_block("message")
    state.text_block_index = output_index
    state.message_item_id = f"msg_{uuid4().hex[:24]}"
    return [
        _event(state, EVENT_OUTPUT_ITEM_ADDED, {
            "output_index": output_index,
            "item": {
                "type": "message",
                "id": state.message_item_id,
                "role": "assistant",
                "status": "in_progress",
                "content": [],
            },
        }),
        _event(state, EVENT_CONTENT_PART_ADDED, {
            "item_id": state.message_item_id,
            "output_index": output_index,
            "content_index": 0,
            "part": {"type": "output_text", "text": "", "annotations": []},
        }),
    ]


def _tool_call_events(call: ToolCallDelta, state: TranslationState) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    progress = state.tool_calls.get(call.index)
    if progress is None:
        progress = ToolCallProgress(id=call.id or generate_call_id(), name=call.name or "")
        progress.block_index = state.open_block("function_call")
        state.tool_calls[call.index] = progress
        events.append(_event(state, EVENT_OUTPUT_ITEM_ADDED, {
            "output_index": progress.block_index,
            "item": {
                "type": "function_call",
                "id": progress.id,
                "call_id": progress.id,
                "name": progress.name,
                "arguments": "",
                "status": "in_progress",
            },
        }))
    elif call.name:
        progress.name = call.name

    if call.arguments:
        progress.arguments += call.arguments
        events.append(_event(state, EVENT_FUNCTION_CALL_ARGS_DELTA, {
            "item_id": progress.id,
            "output_index": progress.block_index,
            "call_id": progress.id,
            "delta": call.arguments,
        }))
    return events


def _terminal_events(state: TranslationState) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    item_status = "incomplete" if state.finish_reason == "length" else "completed"

    index = state.text_block_index
    if index is not None and state.close_block(index):
        part = {"type": "output_text", "text": state.accumulated_text, "annotations": []}
        events.append(_event(state, EVENT_OUTPUT_TEXT_DONE, {
            "item_id": state.message_item_id,
            "output_index": index,
            "content_index": 0,
            "text": state.accumulated_text,
        }))
        events.append(_event(state, EVENT_CONTENT_PART_DONE, {
            "item_id": state.message_item_id,
            "output_index": index,
            "content_index": 0,
            "part": part,
        }))
        message_item: MessageItem = {
            "id": state.message_item_id or "",
            "type": "message",
            "role": "assistant",
            "status": item_status,  # type: ignore[typeddict-item]
            "content": [part],  # type: ignore[list-item]
        }
        state.output_items[index] = dict(message_item)
        events.append(_event(state, EVENT_OUTPUT_ITEM_DONE, {
            "output_index": index,
            "item": message_item,
        }))
    state.text_block_index = None

    for _, progress in sorted(state.tool_calls.items()):
        if not state.close_block(progress.block_index):
            continue
        events.append(_event(state, EVENT_FUNCTION_CALL_ARGS_DONE, {
            "item_id": progress.id,
            "output_index": progress.block_index,
            "call_id": progress.id,
            "arguments": progress.arguments,
        }))
        function_call_item: FunctionCallItem = {
            "id": progress.id,
            "type": "function_call",
            "call_id": progress.id,
            "name": progress.name,
            "arguments": progress.arguments,
            "status": "completed",
        }
        state.output_items[progress.block_index] = dict(function_call_item)
        events.append(_event(state, EVENT_OUTPUT_ITEM_DONE, {
            "output_index": progress.block_index,
            "item": function_call_item,
        }))

    status = _terminal_status(state.finish_reason or "stop")
    event_type = {
        "completed": EVENT_RESPONSE_COMPLETED,
        "incomplete": EVENT_RESPONSE_INCOMPLETE,
        "failed": EVENT_RESPONSE_FAILED,
    }[status]
    events.append(_event(state, event_type, {"response": _response_object(state, status)}))
    state.terminated = True
    return events


def _terminal_status(finish_reason: str) -> str:
    if finish_reason == "length":
        return "incomplete"
    if finish_reason == "content_filter":
        return "failed"
    return "completed"


def _event(state: TranslationState, event_type: str, data: dict[str, Any]) -> dict[str, Any]:
    state.sequence_number += 1
    return {"type": event_type, "sequence_number": state.sequence_number, **data}


def _response_object(state: TranslationState, status: str) -> ResponseObject:
    response: ResponseObject = {
        "id": state.message_id,
        "object": "response",
        "created_at": state.created,
        "status": status,  # type: ignore[typeddict-item]
        "model": state.model,
        "output": [item for _, item in sorted(state.output_items.items())],  # type: ignore[misc]
        "output_text": state.accumulated_text,
        "error": None,
        "incomplete_details": None,
    }
    if status == "incomplete":
        response["incomplete_details"] = {"reason": "max_output_tokens"}
    elif status == "failed":
        response["error"] = {
            "type": "model_error",
            "code": "content_filter",
            "message": "Response filtered by content policy.",
        }
    if status != "in_progress":
        response["completed_at"] = int(time.time())
    if state.usage:
        response["usage"] = usage_to_responses(state.usage)  # type: ignore[typeddict-item]
    return response
