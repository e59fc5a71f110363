"""Translation engine: routes one stream chunk between wire formats.

``translate(source, target, chunk, state)`` returns the ordered list of
target-protocol events to write for ``chunk``. Passing ``None`` flushes the
stream: open framing is closed and terminal events are emitted exactly once.
"""

from __future__ import annotations

import logging
from types import ModuleType
from typing import Any, Optional

from ..core.exceptions import UnsupportedFormatError
from . import from_claude, from_gemini, to_claude, to_gemini, to_responses
from .canonical import CanonicalDelta
from .formats import CANONICAL, Format
from .state import TranslationState

logger = logging.getLogger("omnibridge")

# canonical -> target
EMITTERS: dict[Format, ModuleType] = {
    Format.CLAUDE: to_claude,
    Format.OPENAI_RESPONSES: to_responses,
    Format.GEMINI: to_gemini,
    Format.GEMINI_CLI: to_gemini,
    Format.ANTIGRAVITY: to_gemini,
}

# source -> canonical
INGESTERS: dict[Format, ModuleType] = {
    Format.CLAUDE: from_claude,
    Format.GEMINI: from_gemini,
    Format.GEMINI_CLI: from_gemini,
    Format.ANTIGRAVITY: from_gemini,
}


def supports(source_format: Any, target_format: Any) -> bool:
    """Whether a translation path exists between the two formats."""
    source = Format.coerce(source_format)
    target = Format.coerce(target_format)
    if source == target:
        return True
    if source != CANONICAL and source not in INGESTERS:
        return False
    if target != CANONICAL and target not in EMITTERS:
        return False
    return True


def translate(
    source_format: Any,
    target_format: Any,
    chunk: Optional[Any],
    state: TranslationState,
) -> list[Any]:
    """Translate one chunk (or flush with ``None``) into target events.

    Raises:
        UnsupportedFormatError: If either format is unknown, has no path, or
            the state was initialised for a different target.
    """
    source = Format.coerce(source_format)
    target = Format.coerce(target_format)
    if target != state.target_format:
        raise UnsupportedFormatError(
            target,
            f"State was initialised for {state.target_format.value}, cannot emit {target.value}",
        )
    if not supports(source, target):
        raise UnsupportedFormatError(
            source, f"No translation path from {source.value} to {target.value}"
        )

    if state.flushed:
        if chunk is not None:
            logger.debug("Ignoring %s chunk received after flush", source.value)
        return []

    if chunk is None:
        state.flushed = True
        return _flush(source, target, state)
    return _translate_chunk(source, target, chunk, state)


def _translate_chunk(
    source: Format, target: Format, chunk: Any, state: TranslationState
) -> list[Any]:
    if source == target:
        return [chunk]
    if source == CANONICAL:
        return _emit(target, chunk, state)
    if target == CANONICAL:
        return INGESTERS[source].ingest(chunk, state)

    pivot = _pivot(state)
    events: list[Any] = []
    for canonical_chunk in INGESTERS[source].ingest(chunk, pivot):
        events.extend(_emit(target, canonical_chunk, state))
    return events


def _flush(source: Format, target: Format, state: TranslationState) -> list[Any]:
    if source == target:
        return []
    if source == CANONICAL:
        return EMITTERS[target].flush(state)
    if target == CANONICAL:
        return INGESTERS[source].flush(state)

    pivot = _pivot(state)
    events: list[Any] = []
    for canonical_chunk in INGESTERS[source].flush(pivot):
        events.extend(_emit(target, canonical_chunk, state))
    events.extend(EMITTERS[target].flush(state))
    return events


def _emit(target: Format, chunk: Any, state: TranslationState) -> list[Any]:
    if state.terminated:
        logger.debug("Ignoring %s chunk after terminal events", target.value)
        return []
    delta = CanonicalDelta.from_chunk(chunk)
    if delta is None:
        state.note_malformed(chunk)
        return []
    return EMITTERS[target].emit(delta, state)


def _pivot(state: TranslationState) -> TranslationState:
    if state.pivot is None:
        state.pivot = TranslationState(
            target_format=CANONICAL,
            model=state.model,
            created=state.created,
            strict=state.strict,
        )
    return state.pivot
