"""Folds a Responses API event stream into a single response document."""

import logging
from typing import Any, AsyncIterator, Optional, Protocol

from ..core.exceptions import AggregationError
from ..core.sse import DONE_SENTINEL, SSEDecoder, SSEEvent
from ..types.responses import (
    EVENT_ERROR,
    EVENT_OUTPUT_ITEM_DONE,
    TERMINAL_EVENTS,
    OutputItem,
    ResponseObject,
)
from .transport import loads_strict

logger = logging.getLogger("responses-bridge")


class StreamAggregator(Protocol):
    async def aggregate(self, body: AsyncIterator[bytes]) -> ResponseObject:
        """Consume ``body`` fully and return the final response document.

        Raises:
            AggregationError: If no complete document can be produced
        """
        ...


class ResponsesStreamAggregator:
    """Buffers a Responses SSE stream until its terminal event.

    The terminal ``response.completed`` / ``response.incomplete`` /
    ``response.failed`` event carries the final document. Some upstreams
    send it with an empty ``output``; items announced by
    ``response.output_item.done`` are used to fill it in.
    """

    async def aggregate(self, body: AsyncIterator[bytes]) -> ResponseObject:
        decoder = SSEDecoder()
        state = _AggregationState()
        try:
            async for chunk in body:
                if isinstance(chunk, str):
                    chunk = chunk.encode("utf-8")
                for event in decoder.feed(chunk):
                    state.apply(event)
            for event in decoder.flush():
                state.apply(event)
        finally:
            aclose = getattr(body, "aclose", None)
            if aclose is not None:
                await aclose()
        return state.result()


class _AggregationState:
    def __init__(self) -> None:
        self.final: Optional[dict[str, Any]] = None
        self.items_by_index: dict[int, OutputItem] = {}

    def apply(self, event: SSEEvent) -> None:
        if event.data is None or event.data.strip() == DONE_SENTINEL:
            return
        try:
            payload = loads_strict(event.data)
        except ValueError as exc:
            raise AggregationError(f"Malformed stream event: {exc}") from exc
        if not isinstance(payload, dict):
            return

        event_type = payload.get("type") or event.event
        if event_type == EVENT_ERROR:
            error = payload.get("error") if isinstance(payload.get("error"), dict) else payload
            message = error.get("message") or "unknown error"
            raise AggregationError(f"Upstream stream reported an error: {message}")

        if event_type == EVENT_OUTPUT_ITEM_DONE:
            item = payload.get("item")
            if isinstance(item, dict):
                index = payload.get("output_index")
                if not isinstance(index, int):
                    index = len(self.items_by_index)
                self.items_by_index[index] = item
            return

        if event_type in TERMINAL_EVENTS:
            response = payload.get("response")
            if not isinstance(response, dict):
                raise AggregationError(f"Terminal event '{event_type}' has no response object")
            self.final = response

    def result(self) -> ResponseObject:
        if self.final is None:
            raise AggregationError("Stream ended without a terminal response event")
        document = dict(self.final)
        if not document.get("output") and self.items_by_index:
            document["output"] = [
                item for _, item in sorted(self.items_by_index.items())
            ]
        document.setdefault("object", "response")
        logger.debug(
            "Aggregated stream into response %s with %d output items",
            document.get("id"),
            len(document.get("output") or []),
        )
        return document
