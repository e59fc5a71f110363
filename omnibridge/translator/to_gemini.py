"""Canonical chat deltas -> Gemini ``GenerateContentResponse`` chunks.

Gemini streams incremental candidate text and has no block framing. Function
calls are never fragmented on the wire, so tool-call fragments are buffered
and emitted whole on the terminal chunk together with ``usageMetadata``.
The Code Assist formats (gemini-cli, antigravity) wrap each chunk as
``{"response": chunk}``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ..types.gemini import GeminiChunk, GeminiPart
from .canonical import (
    CanonicalDelta,
    finish_to_gemini,
    generate_call_id,
    generate_message_id,
    usage_to_gemini,
)
from .formats import ENVELOPED_FORMATS
from .state import ToolCallProgress, TranslationState

logger = logging.getLogger("omnibridge")


def emit(delta: CanonicalDelta, state: TranslationState) -> list[dict[str, Any]]:
    state.record_usage(delta.usage)
    if not state.model:
        state.model = delta.model
    if not state.message_id:
        state.message_id = delta.id or generate_message_id()

    parts: list[GeminiPart] = []
    if delta.reasoning:
        parts.append({"text": delta.reasoning, "thought": True})
    if delta.content:
        state.accumulated_text += delta.content
        parts.append({"text": delta.content})

    for call in delta.tool_calls:
        progress = state.tool_calls.get(call.index)
        if progress is None:
            progress = ToolCallProgress(id=call.id or generate_call_id())
            state.tool_calls[call.index] = progress
        if call.name:
            progress.name = call.name
        if call.arguments:
            progress.arguments += call.arguments

    if delta.finish_reason:
        state.finish_reason = delta.finish_reason
        return [_terminal_chunk(state, parts)]

    if not parts:
        # Role-only and empty deltas have no Gemini counterpart
        return []
    state.started = True
    return [_wrap(_chunk(state, parts), state)]


def flush(state: TranslationState) -> list[dict[str, Any]]:
    if state.terminated:
        return []
    if not state.message_id:
        state.message_id = generate_message_id()
    return [_terminal_chunk(state, [])]


def _terminal_chunk(state: TranslationState, parts: list[GeminiPart]) -> dict[str, Any]:
    parts = parts + _function_call_parts(state)
    chunk = _chunk(
        state,
        parts,
        finish_reason=finish_to_gemini(state.finish_reason or "stop"),
    )
    if state.usage:
        chunk["usageMetadata"] = usage_to_gemini(state.usage)
    state.started = True
    state.terminated = True
    return _wrap(chunk, state)


def _function_call_parts(state: TranslationState) -> list[GeminiPart]:
    parts: list[GeminiPart] = []
    for _, progress in sorted(state.tool_calls.items()):
        parts.append({
            "functionCall": {
                "id": progress.id,
                "name": progress.name,
                "args": _parse_arguments(progress.arguments),
            }
        })
    return parts


def _parse_arguments(arguments: str) -> dict[str, Any]:
    if not arguments:
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        logger.debug("Tool arguments are not valid JSON: %s", arguments[:100])
        return {"raw": arguments}
    if isinstance(parsed, dict):
        return parsed
    return {"value": parsed}


def _chunk(
    state: TranslationState,
    parts: list[GeminiPart],
    finish_reason: Optional[str] = None,
) -> GeminiChunk:
    candidate: dict[str, Any] = {
        "content": {"role": "model", "parts": parts},
        "index": 0,
    }
    if finish_reason:
        candidate["finishReason"] = finish_reason
    chunk: GeminiChunk = {
        "candidates": [candidate],  # type: ignore[list-item]
        "modelVersion": state.model,
        "responseId": state.message_id,
    }
    return chunk


def _wrap(chunk: GeminiChunk, state: TranslationState) -> dict[str, Any]:
    if state.target_format in ENVELOPED_FORMATS:
        return {"response": chunk}
    return dict(chunk)
