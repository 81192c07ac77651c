"""Controllers for operator CLI commands."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import shlex
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import uvicorn

from agent_relay.api.app import create_app
from agent_relay.config import Settings
from agent_relay.logging_config import configure_logging
from agent_relay.runtime.arguments import QueryRequest
from agent_relay.runtime.contracts import (
    AssistantEvent,
    ExecutionResult,
    InitEvent,
    ResultEvent,
    StreamEvent,
)
from agent_relay.runtime.executor import CliExecutor
from agent_relay.services import QueryService
from agent_relay.sessions.errors import SessionNotFoundError
from agent_relay.sessions.models import SessionCreate, SessionView
from agent_relay.sessions.repository import SessionRepository


@dataclass(slots=True)
class ServeCommand:
    """CLI input for running the HTTP server."""

    db_path: Path | None
    host: str | None
    port: int | None
    cli_command: str | None = None


@dataclass(slots=True)
class HealthCommand:
    """CLI input for the agent CLI availability probe."""

    cli_command: str | None = None


@dataclass(slots=True)
class QueryCommand:
    """CLI input for a one-off prompt."""

    prompt: str
    model: str | None
    stream: bool
    timeout_seconds: float | None
    cli_command: str | None = None


@dataclass(slots=True)
class SessionListCommand:
    db_path: Path | None


@dataclass(slots=True)
class SessionShowCommand:
    db_path: Path | None
    session_id: str


@dataclass(slots=True)
class SessionCreateCommand:
    """CLI input for session creation; ``metadata`` is a JSON object literal."""

    db_path: Path | None
    session_id: str | None
    metadata: str | None


@dataclass(slots=True)
class SessionDeleteCommand:
    db_path: Path | None
    session_id: str


class AgentRelayCliController:
    """Coordinates server, probe, query and session CLI operations."""

    def serve(self, command: ServeCommand) -> None:
        settings = _settings(db_path=command.db_path, cli_command=command.cli_command)
        if command.host:
            settings.server.host = command.host
        if command.port:
            settings.server.port = command.port
        configure_logging(settings.logging.level, settings.logging.file)
        uvicorn.run(
            create_app(settings),
            host=settings.server.host,
            port=settings.server.port,
            log_config=None,
        )

    def health(self, command: HealthCommand) -> tuple[bool, list[str]]:
        settings = _settings(cli_command=command.cli_command)
        executor = CliExecutor(settings.cli.command)
        availability = asyncio.run(executor.check_availability())
        command_line = " ".join(executor.command)
        if availability.available:
            return True, [f"CLI available: {command_line}", f"Version: {availability.version}"]
        return False, [f"CLI unavailable: {command_line}", f"Error: {availability.error}"]

    def query(self, command: QueryCommand) -> list[str]:
        """Run a blocking prompt and render the terminal result."""

        service = self._query_service(command)
        request = QueryRequest(prompt=command.prompt, model=command.model)
        result = asyncio.run(service.execute(request))
        return _render_result(result)

    def stream_query(self, command: QueryCommand, emit: Callable[[str], None]) -> int:
        """Stream a prompt, emitting one line per event; returns the event count."""

        service = self._query_service(command)
        request = QueryRequest(prompt=command.prompt, model=command.model)

        async def _consume() -> int:
            count = 0
            async for event in service.execute_stream(request):
                count += 1
                emit(_render_event(event))
            return count

        return asyncio.run(_consume())

    def list_sessions(self, command: SessionListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            sessions = repository.list_sessions()
        if not sessions:
            return ["No sessions."]
        return [_session_summary(session) for session in sessions]

    def show_session(self, command: SessionShowCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            session = repository.get(command.session_id)
        if session is None:
            raise SessionNotFoundError(command.session_id)
        return [
            f"Session: {session.session_id}",
            f"Created: {session.created_at.isoformat()}",
            f"Updated: {session.updated_at.isoformat()}",
            f"Messages: {session.message_count}",
            f"Total cost USD: {session.total_cost_usd:.6f}",
            f"Last model: {session.last_model or '-'}",
            f"Metadata: {json.dumps(session.metadata, sort_keys=True)}",
        ]

    def create_session(self, command: SessionCreateCommand) -> list[str]:
        metadata = _parse_metadata(command.metadata)
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            session = repository.create(
                SessionCreate(session_id=command.session_id, metadata=metadata),
            )
        return [f"Session created: {session.session_id}"]

    def delete_session(self, command: SessionDeleteCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            deleted = repository.delete(command.session_id)
        if not deleted:
            raise SessionNotFoundError(command.session_id)
        return [f"Session deleted: {command.session_id}"]

    def _query_service(self, command: QueryCommand) -> QueryService:
        settings = _settings(cli_command=command.cli_command)
        timeout = command.timeout_seconds or settings.cli.timeout_seconds
        return QueryService(
            CliExecutor(settings.cli.command),
            timeout_seconds=timeout,
            default_model=settings.cli.default_model,
        )


def _settings(*, db_path: Path | None = None, cli_command: str | None = None) -> Settings:
    settings = Settings.from_env(db_path=db_path)
    if cli_command:
        settings.cli = dataclasses.replace(
            settings.cli,
            command=tuple(shlex.split(cli_command)),
        )
    settings.validate()
    return settings


@contextmanager
def _repository(settings: Settings) -> Iterator[SessionRepository]:
    repository = SessionRepository(settings.db_path)
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


def _parse_metadata(raw: str | None) -> dict[str, object] | None:
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as error:
        raise ValueError(f"Metadata must be a JSON object: {error}") from error
    if not isinstance(payload, dict):
        raise ValueError("Metadata must be a JSON object.")
    return payload


def _session_summary(session: SessionView) -> str:
    return (
        f"{session.session_id} messages={session.message_count} "
        f"cost_usd={session.total_cost_usd:.6f} model={session.last_model or '-'} "
        f"updated={session.updated_at.isoformat()}"
    )


def _render_result(result: ExecutionResult) -> list[str]:
    return [
        result.text,
        (
            f"[{result.kind.value}] session={result.session_id or '-'} "
            f"cost_usd={result.total_cost_usd:.6f} turns={result.num_turns} "
            f"duration_ms={result.duration_ms} "
            f"tokens={result.usage.input_tokens}/{result.usage.output_tokens}"
        ),
    ]


def _render_event(event: StreamEvent) -> str:
    if isinstance(event, InitEvent):
        return f"[init] session={event.session_id or '-'} model={event.model or '-'}"
    if isinstance(event, AssistantEvent):
        return f"[assistant] {event.text}"
    if isinstance(event, ResultEvent):
        return (
            f"[result] {'error' if event.is_error else 'success'} "
            f"cost_usd={event.total_cost_usd:.6f} turns={event.num_turns}"
        )
    return f"[error] {event.error}"
