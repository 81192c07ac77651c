"""Server-sent events framing for agent event streams."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi.responses import StreamingResponse

from agent_relay.api.errors import classify_error
from agent_relay.runtime.contracts import StreamEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_frame(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def sse_events(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    """Frame each event; a failure after the first byte becomes a final error event."""

    try:
        async for event in events:
            yield sse_frame(event.to_dict())
    except Exception as error:  # noqa: BLE001
        api_error = classify_error(error)
        logger.warning("Event stream failed with %s: %s", api_error.code, error)
        yield sse_frame({"type": "error", "error": api_error.message, "code": api_error.code})
    finally:
        await events.aclose()  # type: ignore[attr-defined]


def sse_response(events: AsyncIterator[StreamEvent]) -> StreamingResponse:
    return StreamingResponse(
        sse_events(events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
