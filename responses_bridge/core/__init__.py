"""Core module initialization."""

from .backend import (
    Provider,
    build_outbound_headers,
    filter_response_headers,
    format_httpx_error,
    parse_providers,
)
from .exceptions import (
    AggregationError,
    ConfigurationError,
    InvalidRequestError,
    ProxyError,
)
from .invoker import (
    HttpUpstreamInvoker,
    InvocationContext,
    UpstreamInvoker,
    UpstreamResult,
    resolve_provider_name,
)
from .sse import SSEDecoder, SSEEvent, encode_json_event, is_event_stream

__all__ = [
    "AggregationError",
    "ConfigurationError",
    "HttpUpstreamInvoker",
    "InvalidRequestError",
    "InvocationContext",
    "Provider",
    "ProxyError",
    "SSEDecoder",
    "SSEEvent",
    "UpstreamInvoker",
    "UpstreamResult",
    "build_outbound_headers",
    "encode_json_event",
    "filter_response_headers",
    "format_httpx_error",
    "is_event_stream",
    "parse_providers",
    "resolve_provider_name",
]
