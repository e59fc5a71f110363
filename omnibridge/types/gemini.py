"""Types for Gemini ``GenerateContentResponse`` stream chunks.

The Code Assist internal APIs (gemini-cli, antigravity) wrap the same object
as ``{"response": {...}}``.
"""

from typing import Any
from typing_extensions import TypedDict


class GeminiFunctionCall(TypedDict, total=False):
    id: str | None
    name: str
    args: dict[str, Any]


class GeminiPart(TypedDict, total=False):
    """One part of a candidate's content.

    Attributes:
        text: Text fragment. Incremental when streaming.
        thought: True when ``text`` is model reasoning.
        thoughtSignature: Opaque signature attached to reasoning/tool parts.
        functionCall: A complete function call; never fragmented.
    """
    text: str
    thought: bool
    thoughtSignature: str
    functionCall: GeminiFunctionCall


class GeminiContent(TypedDict, total=False):
    role: str
    parts: list[GeminiPart]


class GeminiCandidate(TypedDict, total=False):
    """Attributes:
        finishReason: "STOP", "MAX_TOKENS", "SAFETY", "RECITATION",
            "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "MALFORMED_FUNCTION_CALL"
            or "OTHER".
    """
    content: GeminiContent
    index: int
    finishReason: str


class GeminiUsageMetadata(TypedDict, total=False):
    promptTokenCount: int
    candidatesTokenCount: int
    totalTokenCount: int
    thoughtsTokenCount: int
    cachedContentTokenCount: int


class GeminiChunk(TypedDict, total=False):
    candidates: list[GeminiCandidate]
    usageMetadata: GeminiUsageMetadata
    modelVersion: str
    responseId: str
