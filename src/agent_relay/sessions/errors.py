"""Session store errors."""

from __future__ import annotations


class SessionNotFoundError(LookupError):
    """Raised when a session id has no stored record."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionAlreadyExistsError(ValueError):
    """Raised when creating a session under an id that is already taken."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already exists: {session_id}")
        self.session_id = session_id
