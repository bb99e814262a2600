"""Responses API endpoint handler.

POST /v1/responses parses the client payload, picks the upstream provider
and hands the request to the transport reconciler, which returns either
the final response or a failure to render as an error envelope.
"""

import json
import logging
from typing import Any, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.requests import ClientDisconnect

from ...core.exceptions import InvalidRequestError
from ...core.invoker import InvocationContext, UpstreamResult, resolve_provider_name

logger = logging.getLogger("responses-bridge")


def parse_request_payload(body: bytes) -> dict[str, Any]:
    """Decode the request body into a JSON object.

    Raises:
        InvalidRequestError: If the body is not a JSON object
    """
    try:
        payload = json.loads(body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequestError("Invalid JSON payload", code="invalid_json") from exc
    if not isinstance(payload, dict):
        raise InvalidRequestError(
            "Request body must be a JSON object", code="invalid_request_body"
        )
    return payload


def build_error_response(
    status_code: int,
    error_type: str,
    code: str,
    message: str,
    param: Optional[str] = None,
) -> JSONResponse:
    error: dict[str, Any] = {"type": error_type, "code": code, "message": message}
    if param:
        error["param"] = param
    return JSONResponse({"error": error}, status_code=status_code)


def failure_to_response(result: UpstreamResult) -> JSONResponse:
    """Render a failed result as an error envelope."""
    status = result.status or 502
    if status >= 500:
        error_type, code = "server_error", "bridge_error"
    else:
        error_type, code = "invalid_request", "upstream_error"
    return build_error_response(
        status,
        error_type,
        code,
        result.error or "Upstream request failed",
    )


async def responses_endpoint(request: Request) -> Response:
    """POST /v1/responses - Responses API endpoint.

    Args:
        request: The FastAPI request object

    Returns:
        The reconciled upstream response, or a JSON error envelope
    """
    logger.info("Received Responses API request")

    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning("Client disconnected before request body was fully read")
        return Response(status_code=499)  # Client Closed Request

    try:
        payload = parse_request_payload(body)
    except InvalidRequestError as exc:
        logger.error(f"Rejecting Responses request: {exc.message}")
        return build_error_response(400, "invalid_request", exc.code, exc.message)

    settings = request.app.state.settings
    reconciler = request.app.state.reconciler

    provider = resolve_provider_name(
        payload.get("model"), settings.providers, settings.default_provider
    )
    logger.info(
        f"Processing Responses request: model={payload.get('model')}, "
        f"stream={payload.get('stream')}, provider={provider}"
    )

    context = InvocationContext(
        provider=provider,
        headers=request.headers,
        disconnect_checker=request.is_disconnected,
    )
    result = await reconciler.handle(payload, context)

    if result.success and result.response is not None:
        return result.response

    logger.warning(f"Responses request failed: status={result.status}, error={result.error}")
    return failure_to_response(result)
