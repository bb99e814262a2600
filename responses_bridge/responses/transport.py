"""Transport classification and body parsing for upstream replies."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Any, Optional, Union

from ..core.sse import is_event_stream


class TransportKind(Enum):
    STREAMING = "streaming"
    BUFFERED = "buffered"


def classify_transport(
    content_type: Optional[str],
    provider: Optional[str],
    forced_stream_providers: AbstractSet[str] = frozenset(),
) -> TransportKind:
    """Decide whether an upstream reply is an event stream.

    A reply streams when its content type says so, or when it carries no
    content type at all and comes from a provider known to force streaming.
    """
    if is_event_stream(content_type):
        return TransportKind.STREAMING
    if not content_type and provider is not None and provider in forced_stream_providers:
        return TransportKind.STREAMING
    return TransportKind.BUFFERED


@dataclass(frozen=True)
class ParsedDocument:
    document: Any


@dataclass(frozen=True)
class ParseFailure:
    error: str


ParseResult = Union[ParsedDocument, ParseFailure]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def loads_strict(text: str) -> Any:
    """``json.loads`` that refuses ``NaN`` and ``Infinity`` like browsers do.

    Raises:
        ValueError: On malformed JSON or a non-finite constant
    """
    return json.loads(text, parse_constant=_reject_constant)


def parse_json_document(body: bytes) -> ParseResult:
    """Parse a buffered body as JSON without raising."""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        return ParseFailure(f"body is not valid UTF-8: {exc}")
    try:
        return ParsedDocument(loads_strict(text))
    except ValueError as exc:
        return ParseFailure(f"body is not valid JSON: {exc}")
