"""Stateless query endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from agent_relay.api.dependencies import get_query_service
from agent_relay.api.schemas import QueryBody, QueryResultOut
from agent_relay.api.streaming import sse_response
from agent_relay.services import QueryService

router = APIRouter(tags=["query"])


@router.post("/query", response_model=QueryResultOut)
async def query(
    body: QueryBody,
    service: QueryService = Depends(get_query_service),
) -> QueryResultOut:
    result = await service.execute(body.to_request())
    return QueryResultOut.from_result(result)


@router.post("/query/stream")
async def query_stream(
    body: QueryBody,
    service: QueryService = Depends(get_query_service),
) -> StreamingResponse:
    return sse_response(service.execute_stream(body.to_request()))
