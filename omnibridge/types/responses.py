"""Types and event names for the OpenAI Responses streaming protocol."""

from typing import Literal
from typing_extensions import TypedDict


ItemStatus = Literal["in_progress", "completed", "incomplete"]
ResponseStatus = Literal["in_progress", "completed", "failed", "incomplete"]


class OutputText(TypedDict, total=False):
    type: Literal["output_text"]
    text: str
    annotations: list


class MessageItem(TypedDict, total=False):
    """A message item in the response output."""
    id: str
    type: Literal["message"]
    role: str
    status: ItemStatus
    content: list[OutputText]


class FunctionCallItem(TypedDict, total=False):
    """A function/tool call item in the response output."""
    id: str
    type: Literal["function_call"]
    call_id: str
    name: str
    arguments: str  # JSON string
    status: ItemStatus


class ResponseUsage(TypedDict, total=False):
    input_tokens: int
    output_tokens: int
    total_tokens: int


class ResponseError(TypedDict, total=False):
    type: str
    code: str
    message: str


class IncompleteDetails(TypedDict, total=False):
    reason: str


class ResponseObject(TypedDict, total=False):
    """Response object carried by the lifecycle events."""
    id: str
    object: Literal["response"]
    created_at: int
    completed_at: int
    status: ResponseStatus
    model: str
    output: list[MessageItem | FunctionCallItem]
    output_text: str
    error: ResponseError | None
    incomplete_details: IncompleteDetails | None
    usage: ResponseUsage


# Lifecycle events
EVENT_RESPONSE_CREATED = "response.created"
EVENT_RESPONSE_IN_PROGRESS = "response.in_progress"
EVENT_RESPONSE_COMPLETED = "response.completed"
EVENT_RESPONSE_FAILED = "response.failed"
EVENT_RESPONSE_INCOMPLETE = "response.incomplete"

# Output events
EVENT_OUTPUT_ITEM_ADDED = "response.output_item.added"
EVENT_CONTENT_PART_ADDED = "response.content_part.added"
EVENT_OUTPUT_TEXT_DELTA = "response.output_text.delta"
EVENT_OUTPUT_TEXT_DONE = "response.output_text.done"
EVENT_FUNCTION_CALL_ARGS_DELTA = "response.function_call_arguments.delta"
EVENT_FUNCTION_CALL_ARGS_DONE = "response.function_call_arguments.done"
EVENT_CONTENT_PART_DONE = "response.content_part.done"
EVENT_OUTPUT_ITEM_DONE = "response.output_item.done"

TERMINAL_EVENTS = frozenset({
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_FAILED,
    EVENT_RESPONSE_INCOMPLETE,
})
