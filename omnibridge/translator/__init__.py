"""Cross-protocol stream translation.

Usage:
    state = init_state("claude", model="gpt-4o")
    for chunk in openai_chunks:
        events = translate("openai", "claude", chunk, state)
    events = translate("openai", "claude", None, state)  # flush
"""

from .aggregate import aggregate
from .canonical import CanonicalDelta, ToolCallDelta
from .engine import supports, translate
from .formats import (
    CANONICAL,
    ENVELOPED_FORMATS,
    EVENT_STREAM_FORMATS,
    GEMINI_FORMATS,
    Format,
    detect_format,
    is_event_stream,
    is_gemini_family,
)
from .state import TranslationState, init_state

__all__ = [
    "CANONICAL",
    "CanonicalDelta",
    "ENVELOPED_FORMATS",
    "EVENT_STREAM_FORMATS",
    "Format",
    "GEMINI_FORMATS",
    "ToolCallDelta",
    "TranslationState",
    "aggregate",
    "detect_format",
    "init_state",
    "is_event_stream",
    "is_gemini_family",
    "supports",
    "translate",
]
