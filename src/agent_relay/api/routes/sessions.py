"""Session management and session-bound messaging endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse

from agent_relay.api.dependencies import get_session_service
from agent_relay.api.schemas import (
    QueryBody,
    QueryResultOut,
    QueueOut,
    SessionCreateBody,
    SessionForkBody,
    SessionOut,
)
from agent_relay.api.streaming import sse_response
from agent_relay.services import SessionService
from agent_relay.sessions.models import SessionCreate

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreateBody | None = None,
    service: SessionService = Depends(get_session_service),
) -> SessionOut:
    body = body or SessionCreateBody()
    session = await service.create_session(
        SessionCreate(session_id=body.id, metadata=body.metadata),
    )
    return SessionOut.from_view(session)


@router.get("", response_model=list[SessionOut])
async def list_sessions(service: SessionService = Depends(get_session_service)) -> list[SessionOut]:
    return [SessionOut.from_view(session) for session in await service.list_sessions()]


@router.get("/{session_id}", response_model=SessionOut)
async def get_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> SessionOut:
    return SessionOut.from_view(await service.get_session(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> Response:
    await service.delete_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/fork", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def fork_session(
    session_id: str,
    body: SessionForkBody | None = None,
    service: SessionService = Depends(get_session_service),
) -> SessionOut:
    new_id = body.id if body is not None else None
    return SessionOut.from_view(await service.fork_session(session_id, new_id))


@router.get("/{session_id}/queue", response_model=QueueOut)
async def session_queue(
    session_id: str,
    service: SessionService = Depends(get_session_service),
) -> QueueOut:
    await service.get_session(session_id)
    return QueueOut(session_id=session_id, depth=service.queue_depth(session_id))


@router.post("/{session_id}/messages", response_model=QueryResultOut)
async def send_message(
    session_id: str,
    body: QueryBody,
    service: SessionService = Depends(get_session_service),
) -> QueryResultOut:
    result = await service.send_message(session_id, body.to_request())
    return QueryResultOut.from_result(result)


@router.post("/{session_id}/messages/stream")
async def stream_message(
    session_id: str,
    body: QueryBody,
    service: SessionService = Depends(get_session_service),
) -> StreamingResponse:
    await service.get_session(session_id)
    return sse_response(service.stream_message(session_id, body.to_request()))
