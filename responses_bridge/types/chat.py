"""Types for Chat Completions documents received from upstream providers."""

from typing_extensions import TypedDict


class FunctionCall(TypedDict, total=False):
    """A function call within a tool call.

    Attributes:
        name: Name of the function to call. Can be None for streamed
            follow-up chunks where the name was already stated.
        arguments: JSON string with the call arguments. Streamed chunks
            carry it in fragments.
    """
    name: str | None
    arguments: str | None


class ToolCall(TypedDict, total=False):
    """A tool call in a chat response.

    Attributes:
        id: Identifier used to match tool results in later requests.
        type: Type of tool call. Typically "function".
        function: The function to call with its arguments.
        index: Position in the tool_calls array, only set when streaming.
    """
    id: str
    type: str
    function: FunctionCall
    index: int


class ContentPart(TypedDict, total=False):
    """A content part for multi-part message content."""
    type: str
    text: str


class ChatMessage(TypedDict, total=False):
    """A completed assistant message."""
    role: str
    content: str | list[ContentPart] | None
    reasoning_content: str | None
    tool_calls: list[ToolCall]


class Choice(TypedDict, total=False):
    index: int
    message: ChatMessage
    finish_reason: str | None


class Delta(TypedDict, total=False):
    """Incremental message fields inside a streamed chunk."""
    role: str
    content: str | None
    reasoning_content: str | None
    tool_calls: list[ToolCall]


class StreamChoice(TypedDict, total=False):
    index: int
    delta: Delta
    finish_reason: str | None


class Usage(TypedDict, total=False):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletionResponse(TypedDict, total=False):
    """A buffered Chat Completions result."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage


class ChatCompletionChunk(TypedDict, total=False):
    """One streamed Chat Completions frame."""
    id: str
    object: str
    created: int
    model: str
    choices: list[StreamChoice]
    usage: Usage | None
