"""SSE (Server-Sent Events) framing utilities."""

import codecs
import json
from dataclasses import dataclass, field
from typing import Any, Optional

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"
DONE_SENTINEL = "[DONE]"


@dataclass
class SSEEvent:
    data: Optional[str]
    other_lines: list[str] = field(default_factory=list)

    @property
    def event(self) -> Optional[str]:
        """Value of the ``event:`` field, if the frame carries one."""
        for line in self.other_lines:
            if line.startswith("event:"):
                return line[6:].strip()
        return None

    def encode(self) -> bytes:
        lines: list[str] = []
        lines.extend(self.other_lines)
        if self.data is not None:
            for item in self.data.split("\n"):
                if item:
                    lines.append(f"data: {item}")
                else:
                    lines.append("data:")
        text = "\n".join(lines) + "\n\n"
        return text.encode("utf-8")


class SSEDecoder:
    """Incrementally splits a byte stream into SSE frames."""

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending_cr = False

    def _append(self, text: str, final: bool = False) -> None:
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        # A trailing CR may be the first half of a CRLF split across chunks.
        if text.endswith("\r") and not final:
            text = text[:-1]
            self._pending_cr = True
        self._buffer += text.replace("\r\n", "\n").replace("\r", "\n")

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        if not chunk:
            return []
        self._append(self._decoder.decode(chunk))
        events: list[SSEEvent] = []

        while True:
            sep_index = self._buffer.find("\n\n")
            if sep_index == -1:
                break
            raw_event = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + 2:]
            if not raw_event.strip():
                continue
            events.append(self._parse_event(raw_event))

        return events

    def flush(self) -> list[SSEEvent]:
        """Parse whatever is left once the stream has ended.

        Upstreams sometimes omit the blank line after the last frame.
        """
        self._append(self._decoder.decode(b"", final=True), final=True)
        leftover = self._buffer
        self._buffer = ""
        if not leftover.strip():
            return []
        return [self._parse_event(leftover.strip("\n"))]

    @staticmethod
    def _parse_event(raw: str) -> SSEEvent:
        data_lines: list[str] = []
        other_lines: list[str] = []
        for line in raw.split("\n"):
            if line.startswith("data:"):
                data_lines.append(line[5:].lstrip())
            else:
                other_lines.append(line)
        data = "\n".join(data_lines) if data_lines else None
        return SSEEvent(data=data, other_lines=other_lines)


def encode_json_event(event_type: str, payload: dict[str, Any]) -> bytes:
    """Encode a typed JSON payload as a named SSE frame."""
    event = SSEEvent(
        data=json.dumps(payload, ensure_ascii=False),
        other_lines=[f"event: {event_type}"],
    )
    return event.encode()


def is_event_stream(content_type: Optional[str]) -> bool:
    """Return True if the content type declares an event stream."""
    if not content_type:
        return False
    return EVENT_STREAM_MEDIA_TYPE in content_type.lower()
