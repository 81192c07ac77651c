"""Domain models for stored conversation sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True)
class SessionCreate:
    """Input payload for creating a session."""

    session_id: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(slots=True)
class SessionView:
    """Readable session record."""

    session_id: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0
    total_cost_usd: float = 0.0
    last_model: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_new(self) -> bool:
        """No message has reached the agent under this id yet."""

        return self.message_count == 0
