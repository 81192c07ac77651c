"""Durable conversation sessions on SQLite."""

from agent_relay.sessions.errors import SessionAlreadyExistsError, SessionNotFoundError
from agent_relay.sessions.models import SessionCreate, SessionView
from agent_relay.sessions.repository import SessionRepository

__all__ = [
    "SessionAlreadyExistsError",
    "SessionCreate",
    "SessionNotFoundError",
    "SessionRepository",
    "SessionView",
]
