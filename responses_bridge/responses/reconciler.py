"""Reconciles the transport the client asked for with what upstream sent.

+----------------+-------------------+--------------------------------------+
| client wants   | upstream returned | outcome                              |
+================+===================+======================================+
| buffered       | stream            | (a) aggregate into one JSON document |
| stream         | stream            | (b) pass the stream through          |
| buffered       | buffered          | (c) convert chat JSON, else (d)      |
| stream         | buffered          | (d) pass the reply through           |
+----------------+-------------------+--------------------------------------+
"""

import logging
from typing import AbstractSet, Any, AsyncIterator, Optional

from starlette.responses import JSONResponse, Response

from ..core.invoker import InvocationContext, UpstreamInvoker, UpstreamResult
from ..settings import DEFAULT_FORCED_STREAM_PROVIDERS
from .aggregator import ResponsesStreamAggregator, StreamAggregator
from .converter import Clock, chat_completion_to_response
from .transport import (
    ParsedDocument,
    TransportKind,
    classify_transport,
    parse_json_document,
)

logger = logging.getLogger("responses-bridge")

AGGREGATION_FAILED_MESSAGE = "Failed to convert streaming response to JSON"

JSON_DOCUMENT_HEADERS = {
    "Content-Type": "application/json",
    "Cache-Control": "no-cache",
    "Access-Control-Allow-Origin": "*",
}


def normalize_stream_flag(request: dict[str, Any]) -> dict[str, Any]:
    """Return the request to send upstream, with ``stream`` always present.

    An absent flag becomes ``False``; any explicit value is forwarded as-is.
    The caller's dict is never modified.
    """
    if "stream" not in request:
        return {**request, "stream": False}
    return request


class TransportReconciler:
    """Runs one upstream call and shapes its reply for the client."""

    def __init__(
        self,
        invoker: UpstreamInvoker,
        aggregator: Optional[StreamAggregator] = None,
        forced_stream_providers: AbstractSet[str] = DEFAULT_FORCED_STREAM_PROVIDERS,
        clock: Optional[Clock] = None,
    ) -> None:
        self.invoker = invoker
        self.aggregator = aggregator or ResponsesStreamAggregator()
        self.forced_stream_providers = frozenset(forced_stream_providers)
        self.clock = clock

    async def handle(
        self,
        request: dict[str, Any],
        context: Optional[InvocationContext] = None,
    ) -> UpstreamResult:
        """Handle one Responses request.

        Returns the invoker's result untouched when the upstream call failed.
        The only failure produced here is a 500 when a forced stream cannot
        be aggregated.
        """
        context = context or InvocationContext()
        client_wants_stream = request.get("stream") is True

        result = await self.invoker.invoke(normalize_stream_flag(request), context)
        if not result.success or result.response is None:
            return result

        response = result.response
        transport = classify_transport(
            response.headers.get("content-type"),
            context.provider,
            self.forced_stream_providers,
        )
        logger.debug(
            f"Reconciling transport: client_stream={client_wants_stream}, "
            f"upstream={transport.value}, provider={context.provider}"
        )

        if transport is TransportKind.STREAMING:
            if not client_wants_stream:
                return await self._aggregate(response)
            return result

        if not client_wants_stream:
            return await self._convert_buffered(result)

        return result

    async def _aggregate(self, response: Response) -> UpstreamResult:
        try:
            document = await self.aggregator.aggregate(_iter_body(response))
            rendered = JSONResponse(
                document,
                status_code=200,
                headers=JSON_DOCUMENT_HEADERS,
            )
        except Exception as exc:
            logger.error(f"Stream-to-JSON conversion failed: {exc}", exc_info=True)
            return UpstreamResult.failure(500, AGGREGATION_FAILED_MESSAGE)

        return UpstreamResult.ok(rendered)

    async def _convert_buffered(self, result: UpstreamResult) -> UpstreamResult:
        body, intact = await duplicate_body(result.response)
        if intact is not result.response:
            result = UpstreamResult.ok(intact)

        parsed = parse_json_document(body)
        if not isinstance(parsed, ParsedDocument):
            logger.debug(f"Passing buffered reply through unchanged: {parsed.error}")
            return result

        converted = chat_completion_to_response(parsed.document, self.clock)
        if converted is parsed.document:
            return result

        rendered = JSONResponse(converted, status_code=intact.status_code)
        rendered.raw_headers.extend(
            _raw_headers_without(intact, {b"content-length", b"content-type"})
        )
        return UpstreamResult.ok(rendered)


async def duplicate_body(response: Response) -> tuple[bytes, Response]:
    """Read a response body while leaving a readable response behind.

    Buffered responses expose their bytes directly and are returned as they
    are. Streaming responses can only be iterated once, so they are drained
    into an equivalent buffered response that replaces them.
    """
    body = getattr(response, "body", None)
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body), response

    chunks = [chunk async for chunk in _iter_body(response)]
    data = b"".join(chunks)
    replacement = Response(
        content=data,
        status_code=response.status_code,
        background=response.background,
    )
    replacement.raw_headers.extend(_raw_headers_without(response, {b"content-length"}))
    return data, replacement


async def _iter_body(response: Response) -> AsyncIterator[bytes]:
    body_iterator = getattr(response, "body_iterator", None)
    if body_iterator is None:
        yield bytes(response.body)
        return
    try:
        async for chunk in body_iterator:
            if isinstance(chunk, bytes):
                yield chunk
            elif isinstance(chunk, str):
                yield chunk.encode("utf-8")
            else:
                yield bytes(chunk)
    finally:
        aclose = getattr(body_iterator, "aclose", None)
        if aclose is not None:
            await aclose()


def _raw_headers_without(
    response: Response, excluded: set[bytes]
) -> list[tuple[bytes, bytes]]:
    # Raw pairs keep repeated headers such as set-cookie.
    return [
        (key, value)
        for key, value in response.raw_headers
        if key.lower() not in excluded
    ]
