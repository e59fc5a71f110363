"""Types for the chat-completion wire shapes the engine reads and writes.

Types are separated into:
- OpenAI-compatible types: the canonical pivot every translation passes through
- Anthropic types: Messages API stream events and the final message object
"""

from typing import Any
from typing_extensions import TypedDict


# =============================================================================
# OpenAI-Compatible Types
# =============================================================================


class FunctionCall(TypedDict, total=False):
    """A function call within a tool call (OpenAI format).

    Attributes:
        name: Name of the function to call. Absent on streamed follow-up
            chunks where the name was already stated.
        arguments: JSON string fragment of the arguments.
    """
    name: str | None
    arguments: str | None


class ToolCall(TypedDict, total=False):
    """A (possibly partial) tool call in a chat response (OpenAI format).

    Attributes:
        id: Unique identifier for this tool call.
        type: Type of tool call. Typically "function".
        function: The function to call with its arguments.
        index: Position in the tool_calls array, used to stitch stream fragments.
    """
    id: str
    type: str
    function: FunctionCall
    index: int


class ChatMessage(TypedDict, total=False):
    role: str
    content: str | None
    reasoning_content: str | None
    tool_calls: list[ToolCall] | None


class Delta(TypedDict, total=False):
    """A streamed delta of a choice in a chat completion (OpenAI format).

    Attributes:
        role: Role indicator, typically "assistant" for the first chunk.
        content: Incremental text content.
        reasoning_content: Incremental reasoning text (provider extension).
        tool_calls: Tool call fragments keyed by ``index``.
    """
    role: str | None
    content: str | None
    reasoning_content: str | None
    tool_calls: list[ToolCall] | None


class Choice(TypedDict, total=False):
    """A choice in a chat completion response (OpenAI format).

    Attributes:
        index: Zero-based index of this choice in the choices array.
        delta: The incremental content for streaming responses.
        message: The complete message for non-streaming responses.
        finish_reason: "stop", "length", "tool_calls", "content_filter"
            or the legacy "function_call".
    """
    index: int
    delta: Delta | None
    message: ChatMessage | None
    finish_reason: str | None
    logprobs: dict[str, Any] | None


class Usage(TypedDict, total=False):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    prompt_tokens_details: dict[str, int] | None
    completion_tokens_details: dict[str, int] | None


class ChatCompletionChunk(TypedDict, total=False):
    """A streamed chunk of a chat completion response (OpenAI format).

    This is the canonical delta on the wire.
    """
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage | None


class ChatCompletionResponse(TypedDict, total=False):
    """A complete (non-streaming) chat completion response (OpenAI format)."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage | None


# =============================================================================
# Anthropic Types
# =============================================================================


class AnthropicContentBlock(TypedDict, total=False):
    """A content block in an Anthropic Claude message.

    Attributes:
        type: "text", "thinking" or "tool_use".
        text: Text content (for "text" blocks).
        thinking: Thinking content (for "thinking" blocks).
        signature: Thinking signature (for "thinking" blocks).
        id: Block identifier (for "tool_use" blocks).
        name: Tool name (for "tool_use" blocks).
        input: Tool input/arguments (for "tool_use" blocks).
    """
    type: str
    text: str | None
    thinking: str | None
    signature: str | None
    id: str | None
    name: str | None
    input: dict[str, Any] | None


class AnthropicUsage(TypedDict, total=False):
    input_tokens: int
    output_tokens: int
    cache_creation_input_tokens: int | None
    cache_read_input_tokens: int | None


class AnthropicMessage(TypedDict, total=False):
    """A message in Anthropic Claude format.

    Attributes:
        stop_reason: "end_turn", "max_tokens", "tool_use", "stop_sequence"
            or "refusal".
    """
    id: str
    type: str
    role: str
    content: list[AnthropicContentBlock]
    model: str
    stop_reason: str | None
    stop_sequence: str | None
    usage: AnthropicUsage


class AnthropicStreamEvent(TypedDict, total=False):
    """A streaming event from the Anthropic Messages API.

    Attributes:
        type: "message_start", "content_block_start", "content_block_delta",
            "content_block_stop", "message_delta", "message_stop", "ping"
            or "error".
        index: Index of the content block (for block events).
        message: Message object (for "message_start").
        content_block: Content block (for "content_block_start").
        delta: Delta update (for delta events).
        usage: Usage information (for "message_delta").
    """
    type: str
    index: int | None
    message: AnthropicMessage | None
    content_block: AnthropicContentBlock | None
    delta: dict[str, Any] | None
    usage: AnthropicUsage | None
