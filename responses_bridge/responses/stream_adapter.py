"""Stream adapter for converting Chat Completions SSE to Responses API events.

Chat Completion Events:
    data: {"choices":[{"delta":{"role":"assistant"},"index":0}]}
    data: {"choices":[{"delta":{"content":"Hello"},"index":0}]}
    data: [DONE]

Responses API Events:
    event: response.created
    data: {"type":"response.created","response":{...}}

    event: response.output_text.delta
    data: {"type":"response.output_text.delta","delta":"Hello",...}

    event: response.completed
    data: {"type":"response.completed","response":{...}}

The chunks are folded back into one Chat Completions document and run
through the converter, so the final ``response`` carries exactly what a
buffered reply would have produced.
"""

import logging
import time
from typing import Any, AsyncIterator, Optional

from ..core.sse import DONE_SENTINEL, SSEDecoder, SSEEvent, encode_json_event
from ..types.chat import ChatCompletionResponse
from ..types.responses import (
    EVENT_FUNCTION_CALL_ARGS_DELTA,
    EVENT_OUTPUT_ITEM_DONE,
    EVENT_OUTPUT_TEXT_DELTA,
    EVENT_REASONING_SUMMARY_DELTA,
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_CREATED,
    EVENT_RESPONSE_INCOMPLETE,
    ResponseObject,
)
from .converter import Clock, chat_completion_to_response
from .transport import loads_strict

logger = logging.getLogger("responses-bridge")


class ChatToResponsesStreamAdapter:
    """Re-frames a chat completion SSE stream as Responses API events.

    State kept while streaming:
    - Identity of the upstream completion (id, model, created)
    - Accumulated text, reasoning and tool calls for the final document
    - Sequence numbers for emitted events
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock = clock or time.time
        self.sequence_number = 0

        self.completion_id: Optional[str] = None
        self.model: Any = None
        self.created: Optional[int] = None

        self.text_parts: list[str] = []
        self.reasoning_parts: list[str] = []
        self.tool_calls: dict[int, dict[str, Any]] = {}  # index -> partial tool call
        self.usage: Optional[dict[str, Any]] = None
        self.finish_reasons: set[str] = set()
        self.saw_done = False
        self.started = False

    @property
    def response_id(self) -> str:
        return f"resp_{self.completion_id}"

    async def adapt_stream(
        self,
        chat_stream: AsyncIterator[bytes],
    ) -> AsyncIterator[bytes]:
        """Transform a chat completion stream into Responses API events."""
        decoder = SSEDecoder()
        async for chunk in chat_stream:
            for event in decoder.feed(chunk):
                for frame in self._process_event(event):
                    yield frame
        for event in decoder.flush():
            for frame in self._process_event(event):
                yield frame

        for frame in self._emit_terminal_events():
            yield frame

    def _process_event(self, event: SSEEvent) -> list[bytes]:
        if event.data is None:
            return []
        if event.data.strip() == DONE_SENTINEL:
            self.saw_done = True
            return []
        try:
            data = loads_strict(event.data)
        except ValueError:
            logger.warning(f"StreamAdapter: Skipping non-JSON chunk: {event.data[:200]!r}")
            return []
        if not isinstance(data, dict):
            return []

        frames: list[bytes] = []
        if not self.started:
            self._capture_identity(data)
            frames.append(self._emit_event(
                EVENT_RESPONSE_CREATED,
                {"response": self._in_progress_response()},
            ))

        if isinstance(data.get("usage"), dict):
            self.usage = data["usage"]

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return frames
        choice = choices[0] if isinstance(choices[0], dict) else {}
        if choice.get("finish_reason"):
            self.finish_reasons.add(choice["finish_reason"])
        delta = choice.get("delta")
        if not isinstance(delta, dict):
            return frames

        reasoning = delta.get("reasoning_content")
        if reasoning:
            self.reasoning_parts.append(str(reasoning))
            frames.append(self._emit_event(EVENT_REASONING_SUMMARY_DELTA, {
                "item_id": f"rs_{self.response_id}_0",
                "summary_index": 0,
                "delta": str(reasoning),
            }))

        for tool_delta in delta.get("tool_calls") or []:
            frame = self._process_tool_call_delta(tool_delta)
            if frame:
                frames.append(frame)

        content = delta.get("content")
        if isinstance(content, str) and content:
            self.text_parts.append(content)
            frames.append(self._emit_event(EVENT_OUTPUT_TEXT_DELTA, {
                "item_id": f"msg_{self.response_id}_0",
                "content_index": 0,
                "delta": content,
            }))

        return frames

    def _capture_identity(self, data: dict[str, Any]) -> None:
        self.started = True
        self.completion_id = data.get("id") or f"chatcmpl_{int(self.clock() * 1000)}"
        self.model = data.get("model")
        created = data.get("created")
        self.created = created if isinstance(created, int) and created else int(self.clock())

    def _process_tool_call_delta(self, tool_delta: Any) -> Optional[bytes]:
        if not isinstance(tool_delta, dict):
            return None
        index = tool_delta.get("index")
        if not isinstance(index, int):
            index = len(self.tool_calls)
        state = self.tool_calls.setdefault(index, {"id": None, "name": "", "arguments": ""})
        if tool_delta.get("id"):
            state["id"] = tool_delta["id"]
        function = tool_delta.get("function") or {}
        if function.get("name"):
            state["name"] += function["name"]
        fragment = function.get("arguments")
        if not fragment:
            return None
        state["arguments"] += fragment
        return self._emit_event(EVENT_FUNCTION_CALL_ARGS_DELTA, {
            "call_id": state["id"] or "",
            "delta": fragment,
        })

    def build_chat_completion(self) -> ChatCompletionResponse:
        """Fold everything seen so far into a buffered chat completion."""
        message: dict[str, Any] = {
            "role": "assistant",
            "content": "".join(self.text_parts),
        }
        if self.reasoning_parts:
            message["reasoning_content"] = "".join(self.reasoning_parts)
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": state["id"],
                    "type": "function",
                    "function": {"name": state["name"], "arguments": state["arguments"]},
                }
                for _, state in sorted(self.tool_calls.items())
            ]
        completion: ChatCompletionResponse = {
            "id": self.completion_id,
            "object": "chat.completion",
            "created": self.created,
            "model": self.model,
            "choices": [{"index": 0, "message": message}],
        }
        if self.usage is not None:
            completion["usage"] = self.usage
        return completion

    def build_final_response(self) -> ResponseObject:
        """Build the final response object from the accumulated stream."""
        response = chat_completion_to_response(self.build_chat_completion(), self.clock)
        if "length" in self.finish_reasons:
            response["status"] = "incomplete"
            response["incomplete_details"] = {"reason": "max_output_tokens"}
        return response

    def _emit_terminal_events(self) -> list[bytes]:
        if not self.started:
            self._capture_identity({})
        if not self.saw_done and not self.finish_reasons:
            logger.warning("StreamAdapter: Upstream stream ended without [DONE] or finish_reason")

        frames: list[bytes] = []
        if self.sequence_number == 0:
            frames.append(self._emit_event(
                EVENT_RESPONSE_CREATED,
                {"response": self._in_progress_response()},
            ))

        final = self.build_final_response()
        for output_index, item in enumerate(final["output"]):
            frames.append(self._emit_event(EVENT_OUTPUT_ITEM_DONE, {
                "output_index": output_index,
                "item": item,
            }))
        event_type = (
            EVENT_RESPONSE_INCOMPLETE
            if final["status"] == "incomplete"
            else EVENT_RESPONSE_COMPLETED
        )
        frames.append(self._emit_event(event_type, {"response": final}))
        return frames

    def _in_progress_response(self) -> ResponseObject:
        return {
            "id": self.response_id,
            "object": "response",
            "created_at": self.created,
            "status": "in_progress",
            "output": [],
            "model": self.model,
        }

    def _emit_event(self, event_type: str, data: dict[str, Any]) -> bytes:
        self.sequence_number += 1
        payload = {
            "type": event_type,
            "sequence_number": self.sequence_number,
            **data,
        }
        return encode_json_event(event_type, payload)
