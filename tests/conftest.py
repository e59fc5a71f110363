"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Generator, Iterable

import pytest


# =============================================================================
# Transport Registry Fixtures
# =============================================================================


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after test.

    Use this fixture in tests that register fake transports.
    """
    from omnibridge.core.upstream_transport import clear_upstream_transports

    clear_upstream_transports()
    yield
    clear_upstream_transports()


@pytest.fixture
def reset_executor_registry() -> Generator[None, None, None]:
    """Reset the executor registry singleton before and after test."""
    from omnibridge.executors import reset_registry

    reset_registry()
    yield
    reset_registry()


# =============================================================================
# Stream helpers
# =============================================================================


def chat_chunk(
    content: str | None = None,
    *,
    role: str | None = None,
    reasoning: str | None = None,
    tool_calls: list[dict[str, Any]] | None = None,
    finish_reason: str | None = None,
    usage: dict[str, Any] | None = None,
    chunk_id: str = "chatcmpl-test",
    model: str = "gpt-4o",
) -> dict[str, Any]:
    """Build one OpenAI chat.completion.chunk."""
    delta: dict[str, Any] = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    if reasoning is not None:
        delta["reasoning_content"] = reasoning
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    chunk: dict[str, Any] = {
        "id": chunk_id,
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": model,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }
    if usage is not None:
        chunk["usage"] = usage
    return chunk


def sse_lines(payloads: Iterable[Any], done: bool = True) -> list[bytes]:
    """Frame payloads as ``data:`` SSE lines."""
    lines = [f"data: {json.dumps(p)}\n\n".encode("utf-8") for p in payloads]
    if done:
        lines.append(b"data: [DONE]\n\n")
    return lines


async def aiter_bytes(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    """Helper to create async iterator from list of bytes."""
    for chunk in chunks:
        yield chunk


def parse_sse(raw: bytes) -> list[dict[str, Any]]:
    """Parse an SSE body into ``{"event": ..., "data": ...}`` records."""
    records = []
    for block in raw.decode("utf-8").split("\n\n"):
        if not block.strip():
            continue
        event = None
        data = None
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data = line[len("data: "):]
        records.append({
            "event": event,
            "data": data if data == "[DONE]" else json.loads(data),
        })
    return records
