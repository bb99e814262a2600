"""Type definitions for the bridge."""

from .chat import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    ContentPart,
    Delta,
    FunctionCall,
    ToolCall,
    Usage,
)
from .responses import (
    FunctionCallItem,
    MessageItem,
    OutputItem,
    ReasoningItem,
    ResponseObject,
    ResponseUsage,
)

__all__ = [
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "ContentPart",
    "Delta",
    "FunctionCall",
    "FunctionCallItem",
    "MessageItem",
    "OutputItem",
    "ReasoningItem",
    "ResponseObject",
    "ResponseUsage",
    "ToolCall",
    "Usage",
]
