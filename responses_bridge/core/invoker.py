"""Upstream invocation: result contract and the httpx-backed invoker."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, Protocol

import httpx
from starlette.responses import Response, StreamingResponse

from .backend import (
    Provider,
    build_outbound_headers,
    filter_response_headers,
    format_httpx_error,
)
from .sse import is_event_stream

logger = logging.getLogger("responses-bridge")

DisconnectChecker = Callable[[], Awaitable[bool]]


@dataclass
class UpstreamResult:
    """Outcome of one request, as seen by the caller.

    ``response`` is set on success; ``status`` and ``error`` on failure.
    """

    success: bool
    response: Optional[Response] = None
    status: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, response: Response) -> "UpstreamResult":
        return cls(success=True, response=response)

    @classmethod
    def failure(cls, status: int, error: str) -> "UpstreamResult":
        return cls(success=False, status=status, error=error)


@dataclass
class InvocationContext:
    """Per-request metadata threaded through to the invoker untouched."""

    provider: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    disconnect_checker: Optional[DisconnectChecker] = None


class UpstreamInvoker(Protocol):
    async def invoke(
        self, request: dict[str, Any], context: InvocationContext
    ) -> UpstreamResult:
        ...


def resolve_provider_name(
    model: Any,
    providers: Mapping[str, Provider],
    default: Optional[str] = None,
) -> Optional[str]:
    """Pick a provider from a ``provider/model`` prefix, else the default."""
    if isinstance(model, str) and "/" in model:
        prefix = model.split("/", 1)[0].strip()
        if prefix in providers:
            return prefix
    return default


def strip_provider_prefix(model: Any, provider: Provider) -> Any:
    if isinstance(model, str) and model.startswith(f"{provider.name}/"):
        return model[len(provider.name) + 1:]
    return model


class HttpUpstreamInvoker:
    """Calls the configured providers over HTTP.

    Chat providers get the request translated to Chat Completions, and
    their streamed replies re-framed as Responses events, so callers only
    ever see Responses-dialect streams. Buffered chat replies are returned
    as-is for the caller to convert.
    """

    def __init__(
        self,
        providers: Mapping[str, Provider],
        default_provider: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.providers = dict(providers)
        self.default_provider = default_provider
        self.transport = transport
        self.clock = clock

    def resolve(self, request: Mapping[str, Any], context: InvocationContext) -> Optional[Provider]:
        name = context.provider or resolve_provider_name(
            request.get("model"), self.providers, self.default_provider
        )
        if name is None:
            return None
        return self.providers.get(name)

    async def invoke(
        self, request: dict[str, Any], context: InvocationContext
    ) -> UpstreamResult:
        provider = self.resolve(request, context)
        if provider is None:
            logger.warning(f"No upstream provider for model {request.get('model')!r}")
            return UpstreamResult.failure(404, "No upstream provider configured for this model")

        model = strip_provider_prefix(request.get("model"), provider)
        if provider.api_type == "chat":
            from ..responses.translator import responses_to_chat_completions

            payload = responses_to_chat_completions(request, model=model)
        else:
            payload = {**request, "model": model}

        url = provider.build_url()
        headers = build_outbound_headers(context.headers, provider.api_key)
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        timeout = provider.timeout or 60
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(connect=timeout, read=None, write=timeout, pool=timeout),
            transport=self.transport,
            follow_redirects=True,
        )

        logger.debug(f"Sending request to {provider.name} at {url} ({len(body)} bytes)")
        try:
            upstream_request = client.build_request("POST", url, headers=headers, content=body)
            resp = await client.send(upstream_request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            message = format_httpx_error(exc, provider, url)
            logger.warning(f"Upstream request to {provider.name} failed: {message}")
            return UpstreamResult.failure(502, message)

        if resp.status_code >= 400:
            data = await _read_and_close(resp, client)
            text = data.decode("utf-8", errors="replace")
            logger.warning(f"Upstream {provider.name} returned status {resp.status_code}")
            return UpstreamResult.failure(resp.status_code, text or f"HTTP {resp.status_code}")

        response_headers = filter_response_headers(resp.headers)
        content_type = resp.headers.get("content-type") or ""
        response_headers = {
            key: value for key, value in response_headers.items()
            if key.lower() != "content-type"
        }

        if "json" in content_type.lower():
            data = await _read_and_close(resp, client)
            return UpstreamResult.ok(Response(
                content=data,
                status_code=resp.status_code,
                headers=response_headers,
                media_type=content_type,
            ))

        chunks = _iterate_upstream(resp, client, context.disconnect_checker)
        media_type: Optional[str] = content_type or None
        if provider.api_type == "chat" and is_event_stream(content_type):
            from ..responses.stream_adapter import ChatToResponsesStreamAdapter

            chunks = ChatToResponsesStreamAdapter(clock=self.clock).adapt_stream(chunks)
            media_type = "text/event-stream"

        logger.info(f"Streaming reply from {provider.name}, status {resp.status_code}")
        return UpstreamResult.ok(StreamingResponse(
            chunks,
            status_code=resp.status_code,
            headers=response_headers,
            media_type=media_type,
        ))


async def _read_and_close(resp: httpx.Response, client: httpx.AsyncClient) -> bytes:
    try:
        return await resp.aread()
    finally:
        await resp.aclose()
        await client.aclose()


async def _iterate_upstream(
    resp: httpx.Response,
    client: httpx.AsyncClient,
    disconnect_checker: Optional[DisconnectChecker],
) -> AsyncIterator[bytes]:
    try:
        async for chunk in resp.aiter_bytes():
            if not chunk:
                continue
            yield chunk
            if disconnect_checker is not None and await disconnect_checker():
                logger.info("Client disconnected, closing upstream stream")
                break
    finally:
        await resp.aclose()
        await client.aclose()
