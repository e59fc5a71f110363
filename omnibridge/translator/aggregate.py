"""Collapse a translated event list into one non-streaming response.

The aggregator consumes exactly the events the streaming path writes, so a
collected response always matches what a streaming client would assemble.
"""

from __future__ import annotations

import copy
import json
import logging
import time
from typing import Any, Callable, Mapping, Sequence

from ..types.chat import AnthropicMessage, ChatCompletionResponse
from ..types.responses import TERMINAL_EVENTS
from .canonical import generate_completion_id, generate_message_id
from .formats import ENVELOPED_FORMATS, Format
from .from_gemini import unwrap

logger = logging.getLogger("omnibridge")


def aggregate(events: Sequence[Any], target_format: Any) -> dict[str, Any]:
    """Build the final response object for ``target_format`` from its events."""
    fmt = Format.coerce(target_format)
    merger = _MERGERS.get(fmt, _last_event)
    return merger(list(events), fmt)


def _last_event(events: list[Any], fmt: Format) -> dict[str, Any]:
    """Default policy: the last event is the complete response.

    Lifecycle-wrapped protocols carry the response under ``"response"``.
    """
    for event in reversed(events):
        if not isinstance(event, Mapping):
            continue
        if event.get("type") in TERMINAL_EVENTS and isinstance(event.get("response"), Mapping):
            return dict(event["response"])
        return dict(event)
    logger.debug("No events to aggregate for %s; returning empty response", fmt.value)
    return {}


# =============================================================================
# OpenAI chat completion
# =============================================================================


def _merge_openai(events: list[Any], fmt: Format) -> ChatCompletionResponse:
    response_id = ""
    created = 0
    model = ""
    role = "assistant"
    content_parts: list[str] = []
    reasoning_parts: list[str] = []
    tool_calls: dict[int, dict[str, Any]] = {}
    finish_reason = None
    usage = None

    for event in events:
        if not isinstance(event, Mapping):
            continue
        response_id = response_id or str(event.get("id") or "")
        created = created or int(event.get("created") or 0)
        model = model or str(event.get("model") or "")
        if event.get("usage"):
            usage = event["usage"]
        for choice in event.get("choices") or []:
            if not isinstance(choice, Mapping):
                continue
            delta = choice.get("delta") or choice.get("message") or {}
            if not isinstance(delta, Mapping):
                continue
            if delta.get("role"):
                role = delta["role"]
            if isinstance(delta.get("content"), str):
                content_parts.append(delta["content"])
            reasoning = delta.get("reasoning_content")
            if isinstance(reasoning, str):
                reasoning_parts.append(reasoning)
            for position, call in enumerate(delta.get("tool_calls") or []):
                if isinstance(call, Mapping):
                    _merge_tool_call(tool_calls, call, position)
            if choice.get("finish_reason"):
                finish_reason = choice["finish_reason"]

    message: dict[str, Any] = {"role": role, "content": "".join(content_parts)}
    if reasoning_parts:
        message["reasoning_content"] = "".join(reasoning_parts)
    if tool_calls:
        message["tool_calls"] = [call for _, call in sorted(tool_calls.items())]
        if not content_parts:
            message["content"] = None

    response: ChatCompletionResponse = {
        "id": response_id or generate_completion_id(),
        "object": "chat.completion",
        "created": created or int(time.time()),
        "model": model,
        "choices": [{
            "index": 0,
            "message": message,  # type: ignore[typeddict-item]
            "finish_reason": finish_reason or "stop",
        }],
    }
    if usage:
        response["usage"] = usage
    return response


def _merge_tool_call(
    tool_calls: dict[int, dict[str, Any]], call: Mapping[str, Any], position: int
) -> None:
    index = int(call.get("index", position) or 0)
    merged = tool_calls.setdefault(
        index,
        {"id": "", "type": "function", "function": {"name": "", "arguments": ""}},
    )
    if call.get("id"):
        merged["id"] = call["id"]
    function = call.get("function") or {}
    if function.get("name"):
        merged["function"]["name"] = function["name"]
    if function.get("arguments"):
        merged["function"]["arguments"] += function["arguments"]


# =============================================================================
# Anthropic message
# =============================================================================


def _merge_claude(events: list[Any], fmt: Format) -> AnthropicMessage:
    message_start = next(
        (e for e in events if isinstance(e, Mapping) and e.get("type") == "message_start"),
        None,
    )
    if message_start is None or not isinstance(message_start.get("message"), Mapping):
        logger.debug("No message_start among %d events; synthesizing a minimal message", len(events))
        return _minimal_claude_message()

    message: dict[str, Any] = copy.deepcopy(dict(message_start["message"]))
    blocks: dict[int, dict[str, Any]] = {}
    partial_json: dict[int, str] = {}

    for event in events:
        if not isinstance(event, Mapping):
            continue
        event_type = event.get("type")
        index = int(event.get("index") or 0)
        if event_type == "content_block_start":
            block = dict(event.get("content_block") or {"type": "text", "text": ""})
            blocks[index] = block
        elif event_type == "content_block_delta":
            block = blocks.setdefault(index, {"type": "text", "text": ""})
            delta = event.get("delta") or {}
            delta_type = delta.get("type")
            if delta_type == "text_delta":
                block["text"] = block.get("text", "") + delta.get("text", "")
            elif delta_type == "thinking_delta":
                block["thinking"] = block.get("thinking", "") + delta.get("thinking", "")
            elif delta_type == "signature_delta":
                block["signature"] = delta.get("signature", "")
            elif delta_type == "input_json_delta":
                partial_json[index] = partial_json.get(index, "") + delta.get("partial_json", "")
        elif event_type == "message_delta":
            delta = event.get("delta") or {}
            if "stop_reason" in delta:
                message["stop_reason"] = delta.get("stop_reason")
            if "stop_sequence" in delta:
                message["stop_sequence"] = delta.get("stop_sequence")
            usage = event.get("usage")
            if isinstance(usage, Mapping):
                merged_usage = dict(message.get("usage") or {})
                merged_usage.update({k: v for k, v in usage.items() if v is not None})
                message["usage"] = merged_usage

    for index, raw in partial_json.items():
        if index in blocks:
            blocks[index]["input"] = _parse_json_object(raw)

    content = [block for _, block in sorted(blocks.items())]
    message["content"] = content or [{"type": "text", "text": ""}]
    if message.get("stop_reason") is None:
        message["stop_reason"] = "end_turn"
    return message  # type: ignore[return-value]


def _minimal_claude_message() -> AnthropicMessage:
    return {
        "id": generate_message_id(),
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": ""}],
        "model": "",
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 0, "output_tokens": 0},
    }


def _parse_json_object(raw: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {"raw": raw}
    return parsed if isinstance(parsed, dict) else {"value": parsed}


# =============================================================================
# Gemini family
# =============================================================================


def _merge_gemini(events: list[Any], fmt: Format) -> dict[str, Any]:
    parts: list[dict[str, Any]] = []
    finish_reason = None
    usage_metadata = None
    model_version = ""
    response_id = ""

    for event in events:
        payload = unwrap(event)
        if not isinstance(payload, Mapping):
            continue
        model_version = model_version or str(payload.get("modelVersion") or "")
        response_id = response_id or str(payload.get("responseId") or "")
        if payload.get("usageMetadata"):
            usage_metadata = payload["usageMetadata"]
        candidates = payload.get("candidates") or []
        if not candidates or not isinstance(candidates[0], Mapping):
            continue
        candidate = candidates[0]
        if candidate.get("finishReason"):
            finish_reason = candidate["finishReason"]
        content = candidate.get("content") or {}
        for part in content.get("parts") or []:
            if isinstance(part, Mapping):
                _append_gemini_part(parts, part)

    candidate_out: dict[str, Any] = {
        "content": {"role": "model", "parts": parts},
        "index": 0,
        "finishReason": finish_reason or "STOP",
    }
    response: dict[str, Any] = {"candidates": [candidate_out]}
    if usage_metadata:
        response["usageMetadata"] = usage_metadata
    if model_version:
        response["modelVersion"] = model_version
    if response_id:
        response["responseId"] = response_id
    if fmt in ENVELOPED_FORMATS:
        return {"response": response}
    return response


def _append_gemini_part(parts: list[dict[str, Any]], part: Mapping[str, Any]) -> None:
    text = part.get("text")
    if isinstance(text, str) and "functionCall" not in part:
        thought = bool(part.get("thought"))
        previous = parts[-1] if parts else None
        if (
            previous is not None
            and isinstance(previous.get("text"), str)
            and bool(previous.get("thought")) == thought
            and "functionCall" not in previous
        ):
            previous["text"] += text
            return
    parts.append(dict(part))


_MERGERS: dict[Format, Callable[[list[Any], Format], Any]] = {
    Format.OPENAI: _merge_openai,
    Format.CLAUDE: _merge_claude,
    Format.GEMINI: _merge_gemini,
    Format.GEMINI_CLI: _merge_gemini,
    Format.ANTIGRAVITY: _merge_gemini,
}
