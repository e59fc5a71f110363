"""Tests for provider streams -> canonical chunks, and chained format pairs."""

import json

import pytest

from omnibridge.core.exceptions import UnsupportedFormatError
from omnibridge.translator import init_state, supports, translate

from conftest import chat_chunk

CLAUDE_TEXT_STREAM = [
    {"type": "message_start", "message": {
        "id": "msg_abc", "type": "message", "role": "assistant", "content": [],
        "model": "claude-sonnet-4", "usage": {"input_tokens": 10, "output_tokens": 1},
    }},
    {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
    {"type": "ping"},
    {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Hi"}},
    {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": " there"}},
    {"type": "content_block_stop", "index": 0},
    {"type": "message_delta", "delta": {"stop_reason": "end_turn", "stop_sequence": None},
     "usage": {"output_tokens": 5}},
    {"type": "message_stop"},
]

GEMINI_TEXT_STREAM = [
    {"candidates": [{"content": {"role": "model", "parts": [{"text": "Hel"}]}, "index": 0}],
     "modelVersion": "gemini-2.5-pro", "responseId": "r1"},
    {"candidates": [{"content": {"role": "model", "parts": [{"text": "lo"}]}, "index": 0,
                     "finishReason": "STOP"}],
     "usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 2, "totalTokenCount": 5},
     "modelVersion": "gemini-2.5-pro", "responseId": "r1"},
]


def _run(source, target, chunks, flush=True, **state_kwargs):
    state = init_state(target, **state_kwargs)
    events = []
    for chunk in chunks:
        events.extend(translate(source, target, chunk, state))
    if flush:
        events.extend(translate(source, target, None, state))
    return events, state


def _deltas(chunks):
    return [c["choices"][0]["delta"] for c in chunks]


class TestClaudeIngest:
    def test_text_stream(self):
        chunks, state = _run("claude", "openai", CLAUDE_TEXT_STREAM)
        assert len(chunks) == 4
        assert all(c["object"] == "chat.completion.chunk" for c in chunks)
        assert chunks[0]["id"] == "chatcmpl-abc"
        assert chunks[0]["model"] == "claude-sonnet-4"
        assert _deltas(chunks)[0] == {"role": "assistant", "content": ""}
        assert "".join(d.get("content", "") for d in _deltas(chunks)) == "Hi there"

        final = chunks[-1]
        assert final["choices"][0]["finish_reason"] == "stop"
        assert final["usage"] == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
        assert state.malformed_deltas == 0

    @pytest.mark.parametrize(
        "stop_reason, finish",
        [("end_turn", "stop"), ("stop_sequence", "stop"), ("max_tokens", "length"),
         ("tool_use", "tool_calls"), ("refusal", "content_filter")],
    )
    def test_stop_reason_mapping(self, stop_reason, finish):
        stream = CLAUDE_TEXT_STREAM[:1] + [
            {"type": "message_delta", "delta": {"stop_reason": stop_reason}, "usage": {"output_tokens": 1}},
        ]
        chunks, _ = _run("claude", "openai", stream)
        assert chunks[-1]["choices"][0]["finish_reason"] == finish

    def test_thinking_and_tool_use(self):
        stream = CLAUDE_TEXT_STREAM[:1] + [
            {"type": "content_block_start", "index": 0, "content_block": {"type": "thinking", "thinking": ""}},
            {"type": "content_block_delta", "index": 0, "delta": {"type": "thinking_delta", "thinking": "plan"}},
            {"type": "content_block_delta", "index": 0, "delta": {"type": "signature_delta", "signature": "sig"}},
            {"type": "content_block_stop", "index": 0},
            {"type": "content_block_start", "index": 1, "content_block": {
                "type": "tool_use", "id": "toolu_1", "name": "get_time", "input": {}}},
            {"type": "content_block_delta", "index": 1, "delta": {"type": "input_json_delta", "partial_json": '{"tz":'}},
            {"type": "content_block_delta", "index": 1, "delta": {"type": "input_json_delta", "partial_json": '"UTC"}'}},
            {"type": "content_block_stop", "index": 1},
            {"type": "message_delta", "delta": {"stop_reason": "tool_use"}, "usage": {"output_tokens": 9}},
        ]
        chunks, _ = _run("claude", "openai", stream)
        deltas = _deltas(chunks)
        assert deltas[1] == {"reasoning_content": "plan"}
        assert deltas[2]["tool_calls"] == [{
            "index": 0, "id": "toolu_1", "type": "function",
            "function": {"name": "get_time", "arguments": ""},
        }]
        arguments = "".join(d["tool_calls"][0]["function"]["arguments"] for d in deltas[3:5])
        assert json.loads(arguments) == {"tz": "UTC"}
        assert chunks[-1]["choices"][0]["finish_reason"] == "tool_calls"

    def test_error_and_unknown_events_are_not_malformed(self):
        stream = [
            {"type": "error", "error": {"type": "overloaded_error", "message": "busy"}},
            {"type": "some_future_event"},
        ]
        chunks, state = _run("claude", "openai", stream, flush=False)
        assert chunks == []
        assert state.malformed_deltas == 0

    def test_malformed_events_are_counted(self):
        chunks, state = _run("claude", "openai", [{"no_type": True}, ["list"]], flush=False)
        assert chunks == []
        assert state.malformed_deltas == 2

    def test_repeated_message_delta_finishes_once(self):
        stream = CLAUDE_TEXT_STREAM[:7] + [
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "late"}},
            {"type": "message_delta", "delta": {"stop_reason": "max_tokens"}, "usage": {"output_tokens": 9}},
        ]
        chunks, state = _run("claude", "openai", stream)
        finishes = [c["choices"][0]["finish_reason"] for c in chunks if c["choices"][0]["finish_reason"]]
        assert finishes == ["stop"]
        assert "late" not in "".join(d.get("content", "") for d in _deltas(chunks))
        assert state.usage["completion_tokens"] == 9

    def test_flush_without_message_delta(self):
        chunks, state = _run("claude", "openai", CLAUDE_TEXT_STREAM[:4])
        assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
        assert state.terminated


class TestGeminiIngest:
    def test_text_stream(self):
        chunks, _ = _run("gemini", "openai", GEMINI_TEXT_STREAM)
        assert len(chunks) == 2
        assert chunks[0]["id"] == "chatcmpl-r1"
        assert chunks[0]["model"] == "gemini-2.5-pro"
        assert _deltas(chunks) == [{"role": "assistant", "content": "Hel"}, {"content": "lo"}]
        assert chunks[1]["choices"][0]["finish_reason"] == "stop"
        assert chunks[1]["usage"] == {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5}

    @pytest.mark.parametrize("source", ["gemini-cli", "antigravity"])
    def test_enveloped_stream(self, source):
        stream = [{"response": chunk} for chunk in GEMINI_TEXT_STREAM]
        chunks, _ = _run(source, "openai", stream)
        assert "".join(d.get("content", "") for d in _deltas(chunks)) == "Hello"

    def test_thought_and_function_call_parts(self):
        stream = [{
            "candidates": [{
                "content": {"role": "model", "parts": [
                    {"text": "considering", "thought": True},
                    {"functionCall": {"name": "lookup", "args": {"q": "x"}}},
                ]},
                "finishReason": "STOP",
            }],
        }]
        chunks, _ = _run("gemini", "openai", stream)
        delta = _deltas(chunks)[0]
        assert delta["reasoning_content"] == "considering"
        call = delta["tool_calls"][0]
        assert call["index"] == 0
        assert call["id"].startswith("call_")
        assert call["function"]["name"] == "lookup"
        assert json.loads(call["function"]["arguments"]) == {"q": "x"}
        assert chunks[0]["choices"][0]["finish_reason"] == "tool_calls"

    @pytest.mark.parametrize(
        "reason, finish",
        [("MAX_TOKENS", "length"), ("SAFETY", "content_filter"), ("RECITATION", "content_filter"),
         ("OTHER", "stop")],
    )
    def test_finish_reason_mapping(self, reason, finish):
        stream = [{"candidates": [{"content": {"parts": [{"text": "x"}]}, "finishReason": reason}]}]
        chunks, _ = _run("gemini", "openai", stream)
        assert chunks[-1]["choices"][0]["finish_reason"] == finish

    def test_usage_only_chunk_is_held(self):
        stream = [
            {"candidates": [{"content": {"parts": [{"text": "x"}]}}]},
            {"usageMetadata": {"promptTokenCount": 7, "candidatesTokenCount": 1}},
        ]
        chunks, state = _run("gemini", "openai", stream)
        assert state.malformed_deltas == 0
        assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
        assert chunks[-1]["usage"]["prompt_tokens"] == 7
        assert chunks[-1]["usage"]["total_tokens"] == 8

    def test_chunks_after_finish_only_update_usage(self):
        stream = [
            {"candidates": [{"content": {"parts": [{"text": "hi"}]}, "finishReason": "STOP"}]},
            {"candidates": [{"content": {"parts": [{"text": ""}]}, "finishReason": "STOP"}],
             "usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 1}},
        ]
        chunks, state = _run("gemini", "openai", stream)
        finishes = [c for c in chunks if c["choices"][0]["finish_reason"]]
        assert len(finishes) == 1
        assert state.usage["prompt_tokens"] == 3
        assert state.usage["total_tokens"] == 4

    def test_chunk_without_candidates_is_malformed(self):
        _, state = _run("gemini", "openai", [{"unexpected": 1}], flush=False)
        assert state.malformed_deltas == 1


class TestChainedPairs:
    def test_claude_to_gemini(self):
        events, _ = _run("claude", "gemini", CLAUDE_TEXT_STREAM)
        texts = [p["text"] for e in events for p in e["candidates"][0]["content"]["parts"]]
        assert "".join(texts) == "Hi there"
        terminal = events[-1]
        assert terminal["candidates"][0]["finishReason"] == "STOP"
        assert terminal["usageMetadata"]["promptTokenCount"] == 10
        assert terminal["usageMetadata"]["candidatesTokenCount"] == 5

    def test_gemini_to_claude(self):
        events, _ = _run("gemini", "claude", GEMINI_TEXT_STREAM)
        assert [e["type"] for e in events] == [
            "message_start",
            "content_block_start",
            "content_block_delta",
            "content_block_delta",
            "content_block_stop",
            "message_delta",
            "message_stop",
        ]
        assert events[-2]["usage"] == {"input_tokens": 3, "output_tokens": 2}

    def test_antigravity_to_responses(self):
        stream = [{"response": chunk} for chunk in GEMINI_TEXT_STREAM]
        events, _ = _run("antigravity", "openai-responses", stream)
        assert events[-1]["type"] == "response.completed"
        assert events[-1]["response"]["output_text"] == "Hello"

    def test_gemini_to_antigravity_rewraps(self):
        events, _ = _run("gemini", "antigravity", GEMINI_TEXT_STREAM)
        assert all(set(e) == {"response"} for e in events)
        assert events[-1]["response"]["candidates"][0]["finishReason"] == "STOP"

    def test_chained_flush_closes_open_stream(self):
        events, state = _run("gemini", "claude", GEMINI_TEXT_STREAM[:1])
        assert [e["type"] for e in events][-3:] == ["content_block_stop", "message_delta", "message_stop"]
        assert state.flushed


class TestEngineDispatch:
    def test_identity_passthrough(self):
        state = init_state("openai")
        chunk = chat_chunk("same")
        assert translate("openai", "openai", chunk, state) == [chunk]
        assert translate("openai", "openai", None, state) == []

        claude_state = init_state("claude")
        event = CLAUDE_TEXT_STREAM[3]
        assert translate("claude", "claude", event, claude_state) == [event]

    def test_supports(self):
        assert supports("openai", "claude")
        assert supports("claude", "gemini")
        assert supports("openai-responses", "openai-responses")
        assert not supports("openai-responses", "claude")

    def test_responses_source_has_no_path(self):
        state = init_state("claude")
        with pytest.raises(UnsupportedFormatError):
            translate("openai-responses", "claude", {"type": "response.created"}, state)

    def test_unknown_format_raises(self):
        state = init_state("claude")
        with pytest.raises(UnsupportedFormatError):
            translate("cohere", "claude", {}, state)

    def test_state_target_mismatch_raises(self):
        state = init_state("gemini")
        with pytest.raises(UnsupportedFormatError):
            translate("openai", "claude", chat_chunk("x"), state)
