"""Type definitions for the wire shapes handled by the gateway."""

from .chat import (
    AnthropicContentBlock,
    AnthropicMessage,
    AnthropicStreamEvent,
    AnthropicUsage,
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    Delta,
    FunctionCall,
    ToolCall,
    Usage,
)
from .gemini import (
    GeminiCandidate,
    GeminiChunk,
    GeminiContent,
    GeminiFunctionCall,
    GeminiPart,
    GeminiUsageMetadata,
)
from .responses import FunctionCallItem, MessageItem, ResponseObject, ResponseUsage

__all__ = [
    "AnthropicContentBlock",
    "AnthropicMessage",
    "AnthropicStreamEvent",
    "AnthropicUsage",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "Delta",
    "FunctionCall",
    "FunctionCallItem",
    "GeminiCandidate",
    "GeminiChunk",
    "GeminiContent",
    "GeminiFunctionCall",
    "GeminiPart",
    "GeminiUsageMetadata",
    "MessageItem",
    "ResponseObject",
    "ResponseUsage",
    "ToolCall",
    "Usage",
]
