"""Responses API request → Chat Completions request translation.

Used by the HTTP invoker for providers that only speak Chat Completions:
1. Instructions become a leading system message
2. Input items become chat messages
3. Function tools and tool_choice are reshaped
4. Sampling parameters are carried over
"""

import json
import logging
from typing import Any, Optional

logger = logging.getLogger("responses-bridge")

PASSTHROUGH_PARAMS = (
    "temperature",
    "top_p",
    "presence_penalty",
    "frequency_penalty",
    "stop",
    "user",
    "parallel_tool_calls",
    "logprobs",
    "top_logprobs",
)


def responses_to_chat_completions(
    request: dict[str, Any],
    model: Optional[str] = None,
) -> dict[str, Any]:
    """Convert a Responses API request body to Chat Completions format.

    Args:
        request: The Responses API request body
        model: Model name to send upstream, defaults to ``request["model"]``

    Returns:
        Chat Completions request body
    """
    messages: list[dict[str, Any]] = []

    instructions = request.get("instructions")
    if instructions:
        messages.append({"role": "system", "content": instructions})

    input_ = request.get("input")
    if isinstance(input_, str):
        messages.append({"role": "user", "content": input_})
    elif isinstance(input_, list):
        for item in input_:
            msg = _convert_item_to_message(item)
            if msg is None:
                continue
            # Consecutive function calls belong to one assistant turn
            if (
                msg.get("tool_calls")
                and messages
                and messages[-1].get("role") == "assistant"
                and messages[-1].get("tool_calls")
            ):
                messages[-1]["tool_calls"].extend(msg["tool_calls"])
                continue
            messages.append(msg)

    chat_request: dict[str, Any] = {
        "model": model if model is not None else request.get("model"),
        "messages": messages,
        "stream": request.get("stream") is True,
    }
    if chat_request["stream"]:
        chat_request["stream_options"] = {"include_usage": True}

    tools = request.get("tools")
    if tools:
        converted_tools = _convert_tools(tools)
        if converted_tools:
            chat_request["tools"] = converted_tools

    tool_choice = request.get("tool_choice")
    if tool_choice is not None:
        chat_request["tool_choice"] = _convert_tool_choice(tool_choice)

    max_output_tokens = request.get("max_output_tokens")
    if max_output_tokens is not None:
        chat_request["max_tokens"] = max_output_tokens

    reasoning = request.get("reasoning")
    if isinstance(reasoning, dict) and reasoning.get("effort"):
        chat_request["reasoning_effort"] = reasoning["effort"]

    for key in PASSTHROUGH_PARAMS:
        if request.get(key) is not None:
            chat_request[key] = request[key]

    return chat_request


def _convert_item_to_message(item: Any) -> Optional[dict[str, Any]]:
    """Convert a Responses API input item to a Chat Completions message."""
    if not isinstance(item, dict):
        logger.warning(f"Translator: Skipping non-object input item: {item!r}")
        return None

    # Bare {"role", "content"} items are accepted as messages
    item_type = item.get("type") or ("message" if "role" in item else None)

    if item_type == "message":
        role = item.get("role", "user")
        if role == "developer":
            role = "system"
        content = item.get("content", [])

        if isinstance(content, str):
            return {"role": role, "content": content}
        if not isinstance(content, list):
            return None

        parts: list[dict[str, Any]] = []
        for part in content:
            if not isinstance(part, dict):
                continue
            part_type = part.get("type")
            if part_type in ("input_text", "output_text", "text"):
                parts.append({"type": "text", "text": part.get("text", "")})
            elif part_type == "input_image":
                parts.append({
                    "type": "image_url",
                    "image_url": {
                        "url": part.get("image_url", ""),
                        "detail": part.get("detail", "auto"),
                    },
                })

        if not parts:
            return None
        if all(part["type"] == "text" for part in parts):
            return {"role": role, "content": "".join(part["text"] for part in parts)}
        return {"role": role, "content": parts}

    if item_type == "function_call":
        return {
            "role": "assistant",
            "content": None,
            "tool_calls": [{
                "id": item.get("call_id") or item.get("id", ""),
                "type": "function",
                "function": {
                    "name": item.get("name", ""),
                    "arguments": item.get("arguments", "{}"),
                },
            }],
        }

    if item_type == "function_call_output":
        output = item.get("output", "")
        return {
            "role": "tool",
            "tool_call_id": item.get("call_id", ""),
            "content": output if isinstance(output, str) else json.dumps(output, ensure_ascii=False),
        }

    if item_type == "reasoning":
        # Reasoning from earlier turns is not replayed to chat providers
        return None

    logger.warning(f"Translator: Unknown item type: {item_type}")
    return None


def _convert_tools(tools: list[dict]) -> list[dict]:
    """Convert Responses API tool definitions to Chat Completions format."""
    converted = []
    for tool in tools:
        if not isinstance(tool, dict) or tool.get("type", "function") != "function":
            continue
        function: dict[str, Any] = {
            "name": tool.get("name", ""),
            "description": tool.get("description", ""),
            "parameters": tool.get("parameters", {}),
        }
        if "strict" in tool:
            function["strict"] = tool["strict"]
        converted.append({"type": "function", "function": function})
    return converted


def _convert_tool_choice(tool_choice: Any) -> Any:
    if isinstance(tool_choice, dict) and tool_choice.get("type") == "function":
        return {"type": "function", "function": {"name": tool_choice.get("name", "")}}
    return tool_choice
