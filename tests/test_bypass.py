"""Tests for locally answered warmup and skip-phrase requests."""

import pytest
from fastapi.responses import JSONResponse, StreamingResponse

from omnibridge.bypass import (
    BYPASS_TEXT,
    completion_to_chunks,
    handle_bypass_request,
    message_text,
    should_bypass,
    synthesize_completion,
)
from omnibridge.translator import Format

from conftest import parse_sse

TITLE_PHRASE = "Please write a 5-10 word title for the following conversation:"


class TestShouldBypass:
    def test_warmup_first_message(self):
        assert should_bypass({"messages": [{"role": "user", "content": "Warmup"}]})
        assert should_bypass({"messages": [
            {"role": "user", "content": [{"type": "text", "text": "Warmup"}]},
        ]})

    def test_skip_phrase_in_user_message(self):
        body = {"messages": [
            {"role": "system", "content": "You are helpful."},
            {"role": "user", "content": f"{TITLE_PHRASE} hello world"},
        ]}
        assert should_bypass(body, [TITLE_PHRASE])
        assert not should_bypass(body)

    def test_skip_phrase_in_system_prompt_is_ignored(self):
        body = {"messages": [
            {"role": "system", "content": TITLE_PHRASE},
            {"role": "user", "content": "Fix the bug"},
        ]}
        assert not should_bypass(body, [TITLE_PHRASE])

    @pytest.mark.parametrize("body", [{}, {"messages": []}, {"messages": "Warmup"}, {"contents": []}])
    def test_non_chat_bodies(self, body):
        assert not should_bypass(body, [TITLE_PHRASE])

    def test_message_text(self):
        assert message_text("plain") == "plain"
        assert message_text([{"type": "text", "text": "a"}, {"type": "image"}, {"type": "text", "text": "b"}]) == "a b"
        assert message_text(None) == ""


class TestSynthesizedCompletion:
    def test_completion_shape(self):
        completion = synthesize_completion("gpt-4o")
        assert completion["id"].startswith("chatcmpl-")
        assert completion["model"] == "gpt-4o"
        assert completion["choices"][0]["message"]["content"] == BYPASS_TEXT
        assert completion["usage"] == {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}

    def test_chunks(self):
        completion = synthesize_completion("m")
        first, last = completion_to_chunks(completion)
        assert first["choices"][0]["delta"] == {"role": "assistant", "content": BYPASS_TEXT}
        assert first["choices"][0]["finish_reason"] is None
        assert last["choices"][0] == {"index": 0, "delta": {}, "finish_reason": "stop"}
        assert last["usage"] == completion["usage"]
        assert first["id"] == last["id"] == completion["id"]


class TestHandleBypassRequest:
    def test_not_bypassed(self):
        body = {"messages": [{"role": "user", "content": "real question"}]}
        assert handle_bypass_request(body, "gpt-4o", [TITLE_PHRASE]) is None

    def test_openai_non_streaming(self):
        body = {"messages": [{"role": "user", "content": "Warmup"}], "stream": False}
        result = handle_bypass_request(body, "gpt-4o")
        assert result.format == Format.OPENAI
        assert not result.stream
        assert result.body["object"] == "chat.completion"
        assert isinstance(result.to_response(), JSONResponse)

    def test_openai_streaming_ends_with_done(self):
        body = {"messages": [{"role": "user", "content": "Warmup"}], "stream": True}
        result = handle_bypass_request(body, "gpt-4o")
        raw = b"".join(result.chunks)
        assert raw.endswith(b"data: [DONE]\n\n")
        records = parse_sse(raw)
        assert records[0]["data"]["choices"][0]["delta"]["content"] == BYPASS_TEXT
        assert isinstance(result.to_response(), StreamingResponse)

    def test_claude_request_gets_claude_stream(self):
        body = {
            "model": "claude-sonnet-4",
            "system": "be brief",
            "max_tokens": 100,
            "messages": [{"role": "user", "content": [{"type": "text", "text": f"{TITLE_PHRASE} x"}]}],
            "stream": True,
        }
        result = handle_bypass_request(body, "claude-sonnet-4", [TITLE_PHRASE])
        assert result.format == Format.CLAUDE
        raw = b"".join(result.chunks)
        assert b"[DONE]" not in raw
        records = parse_sse(raw)
        assert records[0]["event"] == "message_start"
        assert records[-1]["event"] == "message_stop"
        text = "".join(
            r["data"]["delta"].get("text", "")
            for r in records if r["event"] == "content_block_delta"
        )
        assert text == BYPASS_TEXT

    def test_claude_non_streaming_is_aggregated(self):
        body = {"messages": [{"role": "user", "content": "Warmup"}], "stream": False}
        result = handle_bypass_request(body, "claude-sonnet-4", source_format="claude")
        assert result.body["type"] == "message"
        assert result.body["content"] == [{"type": "text", "text": BYPASS_TEXT}]
        assert result.body["usage"] == {"input_tokens": 1, "output_tokens": 1}

    def test_stream_defaults_to_true(self):
        body = {"messages": [{"role": "user", "content": "Warmup"}]}
        result = handle_bypass_request(body, "gemini-2.5-pro", source_format=Format.GEMINI)
        assert result.stream
        records = parse_sse(b"".join(result.chunks))
        assert records[-1]["data"]["candidates"][0]["finishReason"] == "STOP"
