"""Pytest configuration and shared helpers."""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional

import pytest
from starlette.responses import Response, StreamingResponse

from responses_bridge.core.invoker import InvocationContext, UpstreamResult
from responses_bridge.core.sse import encode_json_event

FIXED_NOW = 1_700_000_000.25


@pytest.fixture
def clock():
    """A clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


# =============================================================================
# Upstream doubles
# =============================================================================


class FakeInvoker:
    """Returns a canned result and records every call."""

    def __init__(self, result: UpstreamResult) -> None:
        self.result = result
        self.calls: list[tuple[dict[str, Any], InvocationContext]] = []

    async def invoke(
        self, request: dict[str, Any], context: InvocationContext
    ) -> UpstreamResult:
        self.calls.append((request, context))
        return self.result


class FailingAggregator:
    async def aggregate(self, body):
        async for _ in body:
            break
        raise RuntimeError("decoder blew up")


# =============================================================================
# Response builders
# =============================================================================


def chat_completion(**message: Any) -> dict[str, Any]:
    """Build a buffered Chat Completions document around ``message``."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1_699_999_999,
        "model": "gpt-test",
        "choices": [{"index": 0, "message": {"role": "assistant", **message}}],
        "usage": {"prompt_tokens": 11, "completion_tokens": 7, "total_tokens": 18},
    }


def responses_event_stream(
    text: str = "Hello",
    response_id: str = "resp_abc",
    terminal: Optional[dict[str, Any]] = None,
) -> list[bytes]:
    """Frames of a minimal, well-formed Responses SSE stream."""
    message = {
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "output_text", "annotations": [], "logprobs": [], "text": text}],
    }
    final = terminal or {
        "id": response_id,
        "object": "response",
        "created_at": 1_700_000_000,
        "status": "completed",
        "model": "gpt-test",
        "output": [message],
        "usage": {"input_tokens": 3, "output_tokens": 1, "total_tokens": 4},
    }
    events = [
        {"type": "response.created", "response": {**final, "status": "in_progress", "output": []}},
        {"type": "response.output_text.delta", "item_id": "msg_1", "delta": text},
        {"type": "response.output_item.done", "output_index": 0, "item": message},
        {"type": "response.completed", "response": final},
    ]
    return [encode_json_event(event["type"], event) for event in events]


def chat_chunk_stream(chunks: Iterable[dict[str, Any]], done: bool = True) -> list[bytes]:
    """Frames of a Chat Completions SSE stream."""
    frames = [f"data: {json.dumps(chunk)}\n\n".encode("utf-8") for chunk in chunks]
    if done:
        frames.append(b"data: [DONE]\n\n")
    return frames


def streaming_response(
    chunks: Iterable[bytes],
    media_type: Optional[str] = "text/event-stream",
    status_code: int = 200,
    headers: Optional[dict[str, str]] = None,
) -> StreamingResponse:
    async def body():
        for chunk in chunks:
            yield chunk

    return StreamingResponse(
        body(), status_code=status_code, media_type=media_type, headers=headers
    )


async def iterate(chunks: Iterable[bytes]):
    for chunk in chunks:
        yield chunk


async def read_body(response: Response) -> bytes:
    """Read a buffered or streaming Starlette response body."""
    if isinstance(response, StreamingResponse):
        parts = []
        async for chunk in response.body_iterator:
            parts.append(chunk if isinstance(chunk, bytes) else chunk.encode("utf-8"))
        return b"".join(parts)
    return bytes(response.body)
