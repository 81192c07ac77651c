"""Use-case services: stateless queries and session-bound conversations."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from agent_relay.runtime.arguments import QueryRequest, build_cli_args
from agent_relay.runtime.contracts import (
    ExecutionOptions,
    ExecutionResult,
    ResultEvent,
    StreamEvent,
)
from agent_relay.runtime.executor import CliExecutor
from agent_relay.runtime.scheduler import KeySequentialScheduler
from agent_relay.sessions.errors import SessionNotFoundError
from agent_relay.sessions.models import SessionCreate, SessionView
from agent_relay.sessions.repository import SessionRepository

logger = logging.getLogger(__name__)

FORKED_FROM_KEY = "forked_from"


class QueryService:
    """One-off prompts without session flags or queueing."""

    def __init__(
        self,
        executor: CliExecutor,
        *,
        timeout_seconds: float | None = None,
        default_model: str | None = None,
        working_directory: Path | None = None,
    ) -> None:
        self.executor = executor
        self.timeout_seconds = timeout_seconds
        self.default_model = default_model
        self.working_directory = working_directory

    async def execute(self, request: QueryRequest) -> ExecutionResult:
        request = self._with_defaults(request)
        return await self.executor.execute(build_cli_args(request), self._options())

    async def execute_stream(self, request: QueryRequest) -> AsyncIterator[StreamEvent]:
        request = self._with_defaults(request)
        stream = self.executor.execute_stream(
            build_cli_args(request, streaming=True),
            self._options(),
        )
        try:
            async for event in stream:
                yield event
        finally:
            await stream.aclose()

    def _with_defaults(self, request: QueryRequest) -> QueryRequest:
        if request.model or not self.default_model:
            return request
        return dataclasses.replace(request, model=self.default_model)

    def _options(self) -> ExecutionOptions:
        return ExecutionOptions(
            timeout_seconds=self.timeout_seconds,
            working_directory=self.working_directory,
        )


class SessionService(QueryService):
    """Conversations keyed by session id, one message in flight per session.

    Messages of one session run strictly in submission order through the
    scheduler; different sessions proceed concurrently. Store access runs in
    worker threads so SQLite I/O never blocks the event loop.
    """

    def __init__(
        self,
        repository: SessionRepository,
        executor: CliExecutor,
        scheduler: KeySequentialScheduler | None = None,
        *,
        timeout_seconds: float | None = None,
        default_model: str | None = None,
        working_directory: Path | None = None,
    ) -> None:
        super().__init__(
            executor,
            timeout_seconds=timeout_seconds,
            default_model=default_model,
            working_directory=working_directory,
        )
        self.repository = repository
        self.scheduler = scheduler or KeySequentialScheduler()

    async def create_session(self, payload: SessionCreate | None = None) -> SessionView:
        return await asyncio.to_thread(self.repository.create, payload or SessionCreate())

    async def get_session(self, session_id: str) -> SessionView:
        session = await asyncio.to_thread(self.repository.get, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def list_sessions(self) -> list[SessionView]:
        return await asyncio.to_thread(self.repository.list_sessions)

    async def delete_session(self, session_id: str) -> None:
        """Reject queued messages of the session, then drop its record."""

        await self.get_session(session_id)
        rejected = self.scheduler.clear(session_id)
        deleted = await asyncio.to_thread(self.repository.delete, session_id)
        if not deleted:
            raise SessionNotFoundError(session_id)
        logger.info("Session %s deleted, %d queued messages rejected", session_id, rejected)

    async def fork_session(self, source_id: str, new_id: str | None = None) -> SessionView:
        """New session carrying the source metadata plus a back reference."""

        source = await self.get_session(source_id)
        metadata = {**source.metadata, FORKED_FROM_KEY: source_id}
        return await self.create_session(SessionCreate(session_id=new_id, metadata=metadata))

    def queue_depth(self, session_id: str) -> int:
        return self.scheduler.queue_depth(session_id)

    async def send_message(self, session_id: str, request: QueryRequest) -> ExecutionResult:
        """Run one blocking exchange once every earlier message of the session is done."""

        await self.get_session(session_id)
        request = self._with_defaults(request)

        async def _exchange() -> ExecutionResult:
            session = await self.get_session(session_id)
            args = build_cli_args(
                request,
                session_id=session_id,
                is_new_session=session.is_new,
            )
            result = await self.executor.execute(args, self._options())
            await self._record(session_id, result.total_cost_usd, request.model)
            return result

        return await self.scheduler.submit(session_id, _exchange)

    async def stream_message(
        self,
        session_id: str,
        request: QueryRequest,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one exchange; the session's turn is held until the stream ends."""

        await self.get_session(session_id)
        request = self._with_defaults(request)

        async with self.scheduler.reserve(session_id):
            session = await self.get_session(session_id)
            args = build_cli_args(
                request,
                session_id=session_id,
                streaming=True,
                is_new_session=session.is_new,
            )
            stream = self.executor.execute_stream(args, self._options())
            try:
                async for event in stream:
                    if isinstance(event, ResultEvent):
                        await self._record(session_id, event.total_cost_usd, request.model)
                    yield event
            finally:
                await stream.aclose()

    async def _record(self, session_id: str, cost_usd: float, model: str | None) -> None:
        """Account a finished exchange; store failures never hide the agent result."""

        try:
            updated = await asyncio.to_thread(
                self.repository.record_message,
                session_id,
                cost_usd=cost_usd,
                model=model,
            )
        except SQLAlchemyError:
            logger.exception("Failed to record exchange for session %s", session_id)
            return
        if updated is None:
            logger.warning("Session %s vanished before its exchange was recorded", session_id)
