"""Types for the Responses API result documents.

These describe what the bridge hands back to Responses clients: the final
response object, its ordered output items, and token usage.
"""

from typing import Any, Literal, Union
from typing_extensions import TypedDict


ResponseStatus = Literal["in_progress", "completed", "failed", "incomplete", "queued"]


# =============================================================================
# Output Content Types
# =============================================================================

class OutputText(TypedDict):
    """Text output content."""
    type: Literal["output_text"]
    annotations: list[Any]
    logprobs: list[Any]
    text: str


class SummaryText(TypedDict):
    """Reasoning summary content."""
    type: Literal["summary_text"]
    text: str


# =============================================================================
# Output Items
# =============================================================================

class ReasoningItem(TypedDict):
    """Reasoning emitted ahead of any tool call or message."""
    id: str
    type: Literal["reasoning"]
    summary: list[SummaryText]


class FunctionCallItem(TypedDict):
    """A request to invoke an external tool.

    ``arguments`` is the raw JSON string produced by the model.
    """
    id: str
    type: Literal["function_call"]
    arguments: str
    call_id: str
    name: str


class MessageItem(TypedDict):
    """The assistant's text reply."""
    id: str
    type: Literal["message"]
    role: Literal["assistant"]
    content: list[OutputText]


OutputItem = Union[ReasoningItem, FunctionCallItem, MessageItem]
"""Union of all output item types, in the order they appear in ``output``."""


# =============================================================================
# Usage and Response
# =============================================================================

class ResponseUsage(TypedDict):
    """Token usage information for a response."""
    input_tokens: int
    output_tokens: int
    total_tokens: int


class ResponseObject(TypedDict, total=False):
    """Response object returned by /v1/responses."""
    id: str
    object: Literal["response"]
    created_at: int
    status: ResponseStatus
    output: list[OutputItem]
    usage: ResponseUsage
    model: Any
    error: dict[str, Any]
    incomplete_details: dict[str, Any]


# =============================================================================
# Streaming Event Types
# =============================================================================

EVENT_RESPONSE_CREATED = "response.created"
EVENT_RESPONSE_IN_PROGRESS = "response.in_progress"
EVENT_RESPONSE_COMPLETED = "response.completed"
EVENT_RESPONSE_FAILED = "response.failed"
EVENT_RESPONSE_INCOMPLETE = "response.incomplete"
EVENT_OUTPUT_ITEM_DONE = "response.output_item.done"
EVENT_OUTPUT_TEXT_DELTA = "response.output_text.delta"
EVENT_REASONING_SUMMARY_DELTA = "response.reasoning_summary_text.delta"
EVENT_FUNCTION_CALL_ARGS_DELTA = "response.function_call_arguments.delta"
EVENT_ERROR = "error"

TERMINAL_EVENTS = frozenset({
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_FAILED,
    EVENT_RESPONSE_INCOMPLETE,
})
