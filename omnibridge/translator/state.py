"""Per-stream translation state.

One :class:`TranslationState` belongs to exactly one in-flight stream. It is
created by :func:`init_state`, threaded through every ``translate`` call and
discarded after the flush call.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.exceptions import MalformedDeltaError
from ..types.chat import Usage
from .formats import Format

logger = logging.getLogger("omnibridge")


@dataclass
class ToolCallProgress:
    """Accumulated fragments of one tool call."""

    id: str
    name: str = ""
    arguments: str = ""
    block_index: int = 0


@dataclass
class TranslationState:
    target_format: Format
    model: str = ""
    message_id: str = ""
    created: int = field(default_factory=lambda: int(time.time()))
    strict: bool = False

    # Content block framing (event-stream targets)
    next_block_index: int = 0
    open_blocks: dict[int, str] = field(default_factory=dict)
    text_block_index: Optional[int] = None
    thinking_block_index: Optional[int] = None

    # Tool calls keyed by the canonical tool-call index
    tool_calls: dict[int, ToolCallProgress] = field(default_factory=dict)

    accumulated_text: str = ""
    finish_reason: Optional[str] = None
    usage: Optional[Usage] = None

    started: bool = False
    terminated: bool = False
    flushed: bool = False
    malformed_deltas: int = 0

    # Responses protocol bookkeeping
    sequence_number: int = 0
    output_items: dict[int, dict[str, Any]] = field(default_factory=dict)
    message_item_id: Optional[str] = None

    # Ingest-leg state when translating between two non-canonical formats
    pivot: Optional["TranslationState"] = None

    @property
    def text_length(self) -> int:
        return len(self.accumulated_text)

    def open_block(self, block_type: str) -> int:
        index = self.next_block_index
        self.next_block_index += 1
        self.open_blocks[index] = block_type
        return index

    def close_block(self, index: int) -> bool:
        """Mark a block closed; False if it was not open."""
        return self.open_blocks.pop(index, None) is not None

    def record_usage(self, usage: Optional[Usage]) -> None:
        if usage:
            self.usage = usage

    def note_malformed(self, payload: Any) -> None:
        """Count a malformed chunk; raise instead when running strict."""
        self.malformed_deltas += 1
        if self.strict:
            raise MalformedDeltaError(payload)
        logger.debug(
            "Skipping malformed %s stream chunk (%d so far)",
            self.target_format.value,
            self.malformed_deltas,
        )


def init_state(
    target_format: Any,
    model: str = "",
    message_id: Optional[str] = None,
    strict: bool = False,
) -> TranslationState:
    """Create the state for one stream translating into ``target_format``.

    Raises:
        UnsupportedFormatError: If the format is unknown.
    """
    return TranslationState(
        target_format=Format.coerce(target_format),
        model=model or "",
        message_id=message_id or "",
        strict=strict,
    )
