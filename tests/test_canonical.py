"""Tests for canonical delta parsing, finish reasons and usage conversion."""

import pytest

from omnibridge.translator.canonical import (
    CanonicalDelta,
    ToolCallDelta,
    finish_from_claude,
    finish_from_gemini,
    finish_to_claude,
    finish_to_gemini,
    normalize_usage,
    usage_from_claude,
    usage_from_gemini,
    usage_to_claude,
    usage_to_gemini,
    usage_to_responses,
)

from conftest import chat_chunk


class TestFromChunk:
    def test_text_chunk(self):
        delta = CanonicalDelta.from_chunk(chat_chunk("hi", role="assistant"))
        assert delta.id == "chatcmpl-test"
        assert delta.created == 1700000000
        assert delta.role == "assistant"
        assert delta.content == "hi"
        assert delta.has_output

    def test_reasoning_alias(self):
        chunk = chat_chunk()
        chunk["choices"][0]["delta"]["reasoning"] = "think"
        assert CanonicalDelta.from_chunk(chunk).reasoning == "think"

    def test_content_parts_are_joined(self):
        chunk = chat_chunk()
        chunk["choices"][0]["delta"]["content"] = [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]
        assert CanonicalDelta.from_chunk(chunk).content == "ab"

    def test_tool_call_fragments(self):
        delta = CanonicalDelta.from_chunk(chat_chunk(tool_calls=[
            {"index": 1, "id": "call_1", "function": {"name": "f", "arguments": "{"}},
            {"function": {"arguments": {"not": "a string"}}},
        ]))
        assert delta.tool_calls[0] == ToolCallDelta(index=1, id="call_1", name="f", arguments="{")
        assert delta.tool_calls[1].index == 1
        assert delta.tool_calls[1].arguments == "{'not': 'a string'}"

    def test_usage_only_chunk(self):
        chunk = {"id": "c", "choices": [], "usage": {"prompt_tokens": 2, "completion_tokens": 3}}
        delta = CanonicalDelta.from_chunk(chunk)
        assert delta is not None
        assert not delta.has_output
        assert delta.usage["total_tokens"] == 5

    def test_final_message_chunk(self):
        chunk = {"id": "c", "choices": [{"index": 0, "message": {"content": "full"}, "finish_reason": "stop"}]}
        delta = CanonicalDelta.from_chunk(chunk)
        assert delta.content == "full"
        assert delta.finish_reason == "stop"

    @pytest.mark.parametrize(
        "chunk",
        [None, "text", [], {"id": "x"}, {"choices": ["bad"]}, {"choices": [{"delta": "bad"}]}],
    )
    def test_malformed_chunks(self, chunk):
        assert CanonicalDelta.from_chunk(chunk) is None

    def test_to_chunk(self):
        delta = CanonicalDelta(
            id="chatcmpl-1", created=1, model="m", role="assistant", content="x",
            tool_calls=[ToolCallDelta(index=0, arguments="{}")], finish_reason="tool_calls",
        )
        assert delta.to_chunk() == {
            "id": "chatcmpl-1",
            "object": "chat.completion.chunk",
            "created": 1,
            "model": "m",
            "choices": [{
                "index": 0,
                "delta": {
                    "role": "assistant",
                    "content": "x",
                    "tool_calls": [{"index": 0, "function": {"arguments": "{}"}}],
                },
                "finish_reason": "tool_calls",
            }],
        }


class TestFinishReasons:
    @pytest.mark.parametrize(
        "openai, claude",
        [("stop", "end_turn"), ("length", "max_tokens"), ("tool_calls", "tool_use"),
         ("content_filter", "refusal"), (None, "end_turn"), ("weird", "end_turn")],
    )
    def test_to_claude(self, openai, claude):
        assert finish_to_claude(openai) == claude

    def test_from_claude_default(self):
        assert finish_from_claude(None) == "stop"
        assert finish_from_claude("pause_turn") == "stop"

    @pytest.mark.parametrize(
        "openai, gemini",
        [("stop", "STOP"), ("tool_calls", "STOP"), ("length", "MAX_TOKENS"), ("content_filter", "SAFETY")],
    )
    def test_to_gemini(self, openai, gemini):
        assert finish_to_gemini(openai) == gemini

    def test_from_gemini_tool_calls(self):
        assert finish_from_gemini("STOP", has_tool_calls=True) == "tool_calls"
        assert finish_from_gemini("max_tokens", has_tool_calls=True) == "length"
        assert finish_from_gemini(None) == "stop"


class TestUsage:
    def test_normalize(self):
        assert normalize_usage(None) is None
        assert normalize_usage({"prompt_tokens": "3", "completion_tokens": 4}) == {
            "prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7,
        }

    def test_claude_round_trip_with_cache(self):
        usage = usage_from_claude({"input_tokens": 10, "cache_read_input_tokens": 5, "output_tokens": 2})
        assert usage == {
            "prompt_tokens": 15, "completion_tokens": 2, "total_tokens": 17,
            "prompt_tokens_details": {"cached_tokens": 5},
        }
        assert usage_to_claude(usage) == {
            "input_tokens": 15, "output_tokens": 2, "cache_read_input_tokens": 5,
        }

    def test_gemini_thoughts(self):
        usage = usage_from_gemini({"promptTokenCount": 4, "candidatesTokenCount": 6, "thoughtsTokenCount": 10})
        assert usage["completion_tokens"] == 16
        assert usage["total_tokens"] == 20
        assert usage["completion_tokens_details"] == {"reasoning_tokens": 10}
        assert usage_to_gemini(usage)["thoughtsTokenCount"] == 10

    def test_responses(self):
        assert usage_to_responses(None) == {}
        assert usage_to_responses({"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3}) == {
            "input_tokens": 1, "output_tokens": 2, "total_tokens": 3,
        }
