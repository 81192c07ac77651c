"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_relay import __version__
from agent_relay.api.errors import configure_exception_handlers
from agent_relay.api.routes import health, query, sessions
from agent_relay.config import Settings
from agent_relay.runtime.executor import CliExecutor
from agent_relay.runtime.scheduler import KeySequentialScheduler
from agent_relay.services import QueryService, SessionService
from agent_relay.sessions.repository import SessionRepository

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def create_app(
    settings: Settings | None = None,
    *,
    executor: CliExecutor | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or Settings.from_env()
    settings.validate()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        repository = SessionRepository(settings.db_path)
        await asyncio.to_thread(repository.init_schema)
        cli_executor = executor or CliExecutor(settings.cli.command)
        scheduler = KeySequentialScheduler()

        app.state.settings = settings
        app.state.executor = cli_executor
        app.state.query_service = QueryService(
            cli_executor,
            timeout_seconds=settings.cli.timeout_seconds,
            default_model=settings.cli.default_model,
        )
        app.state.session_service = SessionService(
            repository,
            cli_executor,
            scheduler,
            timeout_seconds=settings.cli.timeout_seconds,
            default_model=settings.cli.default_model,
        )
        logger.info(
            "Agent relay ready (db=%s, cli=%s)",
            settings.db_path,
            " ".join(cli_executor.command),
        )
        try:
            yield
        finally:
            repository.close()

    app = FastAPI(title="Agent Relay", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    configure_exception_handlers(app)
    app.include_router(health.router, prefix=API_PREFIX)
    app.include_router(query.router, prefix=API_PREFIX)
    app.include_router(sessions.router, prefix=API_PREFIX)
    return app
