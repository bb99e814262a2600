"""Responses API support for the bridge.

Key components:
- converter: Chat Completions result → Responses result
- transport: Stream/buffered classification and safe JSON parsing
- reconciler: Matches the upstream's transport to the client's request
- aggregator: Folds a Responses event stream into one document
- translator: Responses request → Chat Completions request
- stream_adapter: Chat Completions SSE → Responses API events
"""

from .aggregator import ResponsesStreamAggregator, StreamAggregator
from .converter import chat_completion_to_response, convert_usage
from .reconciler import TransportReconciler, normalize_stream_flag
from .stream_adapter import ChatToResponsesStreamAdapter
from .translator import responses_to_chat_completions
from .transport import (
    ParsedDocument,
    ParseFailure,
    TransportKind,
    classify_transport,
    parse_json_document,
)

__all__ = [
    "ChatToResponsesStreamAdapter",
    "ParsedDocument",
    "ParseFailure",
    "ResponsesStreamAggregator",
    "StreamAggregator",
    "TransportKind",
    "TransportReconciler",
    "chat_completion_to_response",
    "classify_transport",
    "convert_usage",
    "normalize_stream_flag",
    "parse_json_document",
    "responses_to_chat_completions",
]
