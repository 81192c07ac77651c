"""Incremental NDJSON decoder for ``--output-format stream-json`` output."""

from __future__ import annotations

import json
import logging

from agent_relay.runtime.contracts import EVENT_TYPES, INIT_SUBTYPE, InitEvent, StreamEvent

logger = logging.getLogger(__name__)

_NEWLINE = b"\n"


def decode_line(line: str | bytes) -> StreamEvent | None:
    """Decode one output line into a typed event.

    Never raises: blank lines, invalid JSON, non-object values, unknown
    discriminants and ``system`` lines other than ``init`` decode to ``None``.
    """

    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    trimmed = line.strip()
    if not trimmed:
        return None

    try:
        payload = json.loads(trimmed)
    except json.JSONDecodeError:
        logger.debug("Dropping malformed stream line: %.120s", trimmed)
        return None

    if not isinstance(payload, dict):
        return None
    event_cls = EVENT_TYPES.get(payload.get("type"))  # type: ignore[arg-type]
    if event_cls is None:
        logger.debug("Dropping stream line with unknown type: %r", payload.get("type"))
        return None
    if event_cls is InitEvent and payload.get("subtype", INIT_SUBTYPE) != INIT_SUBTYPE:
        logger.debug("Dropping system line with subtype %r", payload.get("subtype"))
        return None
    return event_cls(data=payload)


class LineDecoder:
    """Frames arbitrary byte chunks into lines and decodes each one.

    A trailing partial line is kept until the next ``feed`` call or ``flush``.
    Framing happens on bytes, so a multi-byte character split between chunks
    is decoded intact.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending_bytes(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        self._buffer.extend(chunk)
        events: list[StreamEvent] = []
        while True:
            index = self._buffer.find(_NEWLINE)
            if index < 0:
                break
            line = bytes(self._buffer[:index])
            del self._buffer[: index + 1]
            event = decode_line(line)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> list[StreamEvent]:
        """Decode whatever is left as a final, unterminated line."""

        if not self._buffer:
            return []
        line = bytes(self._buffer)
        self._buffer.clear()
        event = decode_line(line)
        return [event] if event is not None else []
