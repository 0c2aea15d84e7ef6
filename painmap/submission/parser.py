# painmap/submission/parser.py
from __future__ import annotations

import codecs
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from painmap.submission.events import (
    EVENT_DELIMITER,
    EVENT_MARKER,
    StreamEvent,
    stream_event_adapter,
)

logger = logging.getLogger(__name__)


class EventStreamParser:
    """
    Reassembles `data:` events out of arbitrarily sized byte chunks.

    Bytes are decoded incrementally, so a UTF-8 sequence split across two
    chunks is fine. Complete events (terminated by a blank line) are
    removed from the buffer and returned; a trailing partial event waits
    for the next chunk.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def buffered(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        self._buffer += self._decoder.decode(chunk)
        # Servers may frame with CRLF. The CR of a split CRLF stays in the
        # buffer until its LF arrives, so normalizing the whole buffer is safe.
        self._buffer = self._buffer.replace("\r\n", "\n")

        events: List[StreamEvent] = []
        while True:
            end = self._buffer.find(EVENT_DELIMITER)
            if end == -1:
                break
            block = self._buffer[:end]
            self._buffer = self._buffer[end + len(EVENT_DELIMITER):]

            payload = _payload_of(block)
            if payload is None:
                continue
            event = parse_event(payload)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> None:
        """
        End of stream. An unterminated trailing event is dropped.
        """
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            logger.debug("Dropping unterminated event at end of stream: %r", self._buffer[:200])
        self._buffer = ""


def _payload_of(block: str) -> Optional[str]:
    """
    Join the `data:` lines of one event block. Other lines (comments,
    `event:` / `id:` fields) carry nothing we use.
    """
    data_lines = []
    for line in block.split("\n"):
        if not line.startswith(EVENT_MARKER):
            continue
        value = line[len(EVENT_MARKER):]
        if value.startswith(" "):
            value = value[1:]
        data_lines.append(value)
    if not data_lines:
        return None
    return "\n".join(data_lines)


def parse_event(payload: str) -> Optional[StreamEvent]:
    """
    Decode one event payload. Malformed or unknown events are logged and
    skipped (None) so that one bad event never aborts the stream.
    """
    try:
        raw = json.loads(payload)
    except ValueError as exc:
        logger.warning("Skipping malformed stream event: %s (%r)", exc, payload[:200])
        return None

    try:
        return stream_event_adapter.validate_python(raw)
    except ValidationError as exc:
        logger.warning("Skipping unrecognised stream event %r: %s", payload[:200], exc)
        return None
