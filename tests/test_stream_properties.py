"""Stream-level properties that must hold for every format pair."""

from collections import Counter

import pytest

from omnibridge.translator import aggregate, init_state, translate

from conftest import chat_chunk

TOOL_CALL = {"index": 0, "id": "call_x", "function": {"name": "f", "arguments": '{"k":'}}
TOOL_ARGS = {"index": 0, "function": {"arguments": '"v"}'}}

SCRIPTS = {
    "text": [chat_chunk(role="assistant"), chat_chunk("a"), chat_chunk("b"), chat_chunk(finish_reason="stop")],
    "text_unfinished": [chat_chunk(role="assistant"), chat_chunk("a"), chat_chunk("b")],
    "reasoning_then_text": [
        chat_chunk(role="assistant", reasoning="r1"), chat_chunk(reasoning="r2"),
        chat_chunk("a"), chat_chunk("b"), chat_chunk(finish_reason="stop"),
    ],
    "text_then_tool": [
        chat_chunk(role="assistant"), chat_chunk("ab"),
        chat_chunk(tool_calls=[TOOL_CALL]), chat_chunk(tool_calls=[TOOL_ARGS]),
        chat_chunk(finish_reason="tool_calls"),
    ],
    "tool_only_unfinished": [chat_chunk(role="assistant", tool_calls=[TOOL_CALL])],
    "empty": [],
}

TARGETS = ["claude", "openai-responses", "gemini", "gemini-cli", "antigravity"]


def _run(target, chunks):
    state = init_state(target)
    events = []
    for chunk in chunks:
        events.extend(translate("openai", target, chunk, state))
    events.extend(translate("openai", target, None, state))
    return events, state


@pytest.mark.parametrize("script", sorted(SCRIPTS))
class TestFramingBalance:
    def test_claude_blocks_balance(self, script):
        events, _ = _run("claude", SCRIPTS[script])
        starts = [e["index"] for e in events if e["type"] == "content_block_start"]
        stops = [e["index"] for e in events if e["type"] == "content_block_stop"]
        assert Counter(starts) == Counter(stops)
        assert len(set(starts)) == len(starts)
        types = [e["type"] for e in events]
        assert types[0] == "message_start"
        assert types[-2:] == ["message_delta", "message_stop"]
        assert types.count("message_stop") == 1

    def test_claude_no_delta_outside_open_block(self, script):
        events, _ = _run("claude", SCRIPTS[script])
        open_blocks = set()
        for event in events:
            if event["type"] == "content_block_start":
                open_blocks.add(event["index"])
            elif event["type"] == "content_block_stop":
                open_blocks.remove(event["index"])
            elif event["type"] == "content_block_delta":
                assert event["index"] in open_blocks
        assert open_blocks == set()

    def test_responses_items_balance(self, script):
        events, _ = _run("openai-responses", SCRIPTS[script])
        added = [e["output_index"] for e in events if e["type"] == "response.output_item.added"]
        done = [e["output_index"] for e in events if e["type"] == "response.output_item.done"]
        assert Counter(added) == Counter(done)
        terminal = [e for e in events if e["type"] in (
            "response.completed", "response.incomplete", "response.failed")]
        assert len(terminal) == 1
        assert events[-1] is terminal[0]

    @pytest.mark.parametrize("target", ["gemini", "gemini-cli", "antigravity"])
    def test_gemini_single_terminal_chunk(self, script, target):
        events, _ = _run(target, SCRIPTS[script])
        bodies = [e.get("response", e) for e in events]
        finishes = [b["candidates"][0].get("finishReason") for b in bodies]
        assert finishes[-1] is not None
        assert all(f is None for f in finishes[:-1])
        assert all("usageMetadata" not in b for b in bodies[:-1])


class TestOrderingAndFlush:
    @pytest.mark.parametrize("target", TARGETS)
    def test_text_order_preserved(self, target):
        chunks = [chat_chunk(role="assistant")] + [chat_chunk(ch) for ch in "streaming"] + [
            chat_chunk(finish_reason="stop")]
        events, state = _run(target, chunks)
        assert state.accumulated_text == "streaming"
        response = aggregate(events, target)
        assert "streaming" in str(response)

    @pytest.mark.parametrize("target", TARGETS + ["openai"])
    def test_flush_is_idempotent(self, target):
        state = init_state(target)
        translate("openai", target, chat_chunk("x"), state)
        translate("openai", target, None, state)
        assert translate("openai", target, None, state) == []
        assert translate("openai", target, chat_chunk("y"), state) == []

    @pytest.mark.parametrize("target", TARGETS)
    def test_malformed_chunk_does_not_corrupt_stream(self, target):
        clean = [chat_chunk(role="assistant"), chat_chunk("a"), chat_chunk("b"), chat_chunk(finish_reason="stop")]
        dirty = clean[:2] + [{"garbage": True}, "not a chunk"] + clean[2:]

        clean_events, _ = _run(target, clean)
        dirty_events, dirty_state = _run(target, dirty)

        assert dirty_state.malformed_deltas == 2
        assert _strip_volatile(dirty_events) == _strip_volatile(clean_events)


class TestIdentity:
    @pytest.mark.parametrize("fmt", ["openai", "claude", "gemini", "antigravity", "openai-responses"])
    def test_identity_is_passthrough(self, fmt):
        state = init_state(fmt)
        payloads = [{"n": 1}, {"n": 2, "nested": {"x": [1]}}]
        out = []
        for payload in payloads:
            out.extend(translate(fmt, fmt, payload, state))
        assert out == payloads
        assert out[0] is payloads[0]
        assert translate(fmt, fmt, None, state) == []


_VOLATILE_KEYS = {"id", "item_id", "call_id", "responseId", "created_at", "completed_at", "created"}


def _strip_volatile(value):
    if isinstance(value, dict):
        return {k: _strip_volatile(v) for k, v in value.items() if k not in _VOLATILE_KEYS}
    if isinstance(value, list):
        return [_strip_volatile(v) for v in value]
    return value
