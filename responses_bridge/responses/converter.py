"""Chat Completions result → Responses result conversion.

The conversion is pure: it never mutates its input and never raises on
malformed nested fields, which degrade to defaults or are omitted. Output
items always come out as reasoning, then function calls in source order,
then the assistant message.
"""

import math
import time
from typing import Any, Callable, Optional

from ..types.responses import (
    FunctionCallItem,
    MessageItem,
    OutputItem,
    ReasoningItem,
    ResponseObject,
    ResponseUsage,
)

Clock = Callable[[], float]
"""Returns the current time in seconds, like ``time.time``."""


def chat_completion_to_response(
    chat: Any,
    clock: Optional[Clock] = None,
) -> Any:
    """Convert a completed Chat Completions document to a Responses document.

    Args:
        chat: Parsed upstream document
        clock: Time source for ``created_at`` and fallback ids

    Returns:
        A new Responses document, or ``chat`` itself when it is not a dict,
        is already a Responses document, or has no ``choices`` list
    """
    if not isinstance(chat, dict):
        return chat
    if chat.get("object") == "response":
        return chat
    if not isinstance(chat.get("choices"), list):
        return chat

    clock = clock or time.time
    choices = chat["choices"]
    choice = choices[0] if choices and isinstance(choices[0], dict) else {}
    message = choice.get("message")
    if not isinstance(message, dict):
        message = {}

    created_at = _created_at(chat.get("created"), clock)
    source_id = chat.get("id")
    if source_id:
        response_id = f"resp_{source_id}"
    else:
        response_id = f"resp_{_millis(clock)}"

    output: list[OutputItem] = []

    reasoning = message.get("reasoning_content")
    if reasoning:
        output.append(_reasoning_item(response_id, reasoning))

    tool_calls = message.get("tool_calls")
    if isinstance(tool_calls, list) and tool_calls:
        for ordinal, tool_call in enumerate(tool_calls):
            output.append(_function_call_item(response_id, ordinal, tool_call))

    text = assemble_text(message.get("content"))
    if text:
        output.append(_message_item(response_id, text))

    response: ResponseObject = {
        "id": response_id,
        "object": "response",
        "created_at": created_at,
        "status": "completed",
        "output": output,
        "usage": convert_usage(chat.get("usage")),
        "model": chat.get("model"),
    }
    return response


def assemble_text(content: Any) -> str:
    """Flatten message content into plain text.

    Strings are used verbatim; part lists contribute each part's ``text``.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        pieces = []
        for part in content:
            text = part.get("text") if isinstance(part, dict) else None
            pieces.append(str(text) if text else "")
        return "".join(pieces)
    return ""


def convert_usage(usage: Any) -> ResponseUsage:
    """Map Chat Completions token counts onto Responses usage.

    Missing or non-numeric counts become 0; a missing or non-numeric total
    is recomputed from the other two.
    """
    if not isinstance(usage, dict):
        usage = {}

    input_tokens = _token_count(usage.get("prompt_tokens"))
    output_tokens = _token_count(usage.get("completion_tokens"))
    total_tokens = _token_count(usage.get("total_tokens"), None)
    if total_tokens is None:
        total_tokens = input_tokens + output_tokens

    return {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": total_tokens,
    }


def _token_count(value: Any, default: Optional[int] = 0) -> Any:
    # Only finite JSON numbers count; anything else falls back to the default.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return value


def _created_at(created: Any, clock: Clock) -> int:
    if created and not isinstance(created, bool):
        try:
            return int(float(created))
        except (TypeError, ValueError, OverflowError):
            pass
    return int(clock())


def _millis(clock: Clock) -> int:
    return int(clock() * 1000)


def _reasoning_item(response_id: str, reasoning: Any) -> ReasoningItem:
    return {
        "id": f"rs_{response_id}_0",
        "type": "reasoning",
        "summary": [{"type": "summary_text", "text": str(reasoning)}],
    }


def _function_call_item(
    response_id: str, ordinal: int, tool_call: Any
) -> FunctionCallItem:
    if not isinstance(tool_call, dict):
        tool_call = {}
    function = tool_call.get("function")
    if not isinstance(function, dict):
        function = {}

    call_id = tool_call.get("id")
    item_id = f"fc_{call_id}" if call_id else f"fc_{response_id}_{ordinal}"
    return {
        "id": item_id,
        "type": "function_call",
        "arguments": function.get("arguments") or "{}",
        "call_id": call_id or "",
        "name": function.get("name") or "",
    }


def _message_item(response_id: str, text: str) -> MessageItem:
    return {
        "id": f"msg_{response_id}_0",
        "type": "message",
        "role": "assistant",
        "content": [{
            "type": "output_text",
            "annotations": [],
            "logprobs": [],
            "text": text,
        }],
    }
