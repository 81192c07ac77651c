"""Request-scoped accessors for objects created in the app lifespan."""

from __future__ import annotations

from fastapi import Request

from agent_relay.config import Settings
from agent_relay.runtime.executor import CliExecutor
from agent_relay.services import QueryService, SessionService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_executor(request: Request) -> CliExecutor:
    return request.app.state.executor


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service
