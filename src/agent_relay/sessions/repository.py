"""Persistent session repository."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from agent_relay.sessions.alembic_runner import upgrade_head
from agent_relay.sessions.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from agent_relay.sessions.errors import SessionAlreadyExistsError
from agent_relay.sessions.models import SessionCreate, SessionView
from agent_relay.sessions.sqlmodel_models import SessionRecord

logger = logging.getLogger(__name__)

COST_DECIMAL_PLACES = 10


class SessionRepository:
    """Session persistence facade backed by SQLModel + SQLite.

    Every method opens its own short transaction, so one instance can be
    shared by worker threads.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Create the database directory and run schema migrations."""

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        upgrade_head(self.db_path)

    def create(self, payload: SessionCreate) -> SessionView:
        """Insert a new session; a random id is assigned when none is given."""

        session_id = payload.session_id or str(uuid4())
        now = to_db_datetime(utc_now())
        with Session(self.engine) as session:
            row = SessionRecord(
                session_id=session_id,
                created_at=now,
                updated_at=now,
                metadata_json=_dump_metadata(payload.metadata),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as error:
                session.rollback()
                raise SessionAlreadyExistsError(session_id) from error
            session.refresh(row)
            logger.info("Created session %s", session_id)
            return _to_session_view(row)

    def get(self, session_id: str) -> SessionView | None:
        with Session(self.engine) as session:
            row = session.get(SessionRecord, session_id)
            return _to_session_view(row) if row is not None else None

    def exists(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def list_sessions(self) -> list[SessionView]:
        """All sessions, most recently active first."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(SessionRecord).order_by(
                    col(SessionRecord.updated_at).desc(),
                    col(SessionRecord.session_id).asc(),
                ),
            ).all()
            return [_to_session_view(row) for row in rows]

    def record_message(
        self,
        session_id: str,
        *,
        cost_usd: float,
        model: str | None = None,
    ) -> SessionView | None:
        """Account one completed exchange; returns ``None`` for unknown ids."""

        with Session(self.engine) as session:
            row = session.get(SessionRecord, session_id)
            if row is None:
                return None
            row.message_count += 1
            row.total_cost_usd = round(row.total_cost_usd + cost_usd, COST_DECIMAL_PLACES)
            if model:
                row.last_model = model
            row.updated_at = to_db_datetime(utc_now())
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_session_view(row)

    def delete(self, session_id: str) -> bool:
        """Remove a session; ``False`` when it did not exist."""

        with Session(self.engine) as session:
            row = session.get(SessionRecord, session_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted session %s", session_id)
        return True


def _dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    if not metadata:
        return None
    return json.dumps(metadata, ensure_ascii=False, sort_keys=True)


def _load_metadata(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable session metadata: %s", raw[:200])
        return {}
    return payload if isinstance(payload, dict) else {}


def _to_session_view(row: SessionRecord) -> SessionView:
    return SessionView(
        session_id=row.session_id,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
        message_count=row.message_count,
        total_cost_usd=row.total_cost_usd,
        last_model=row.last_model,
        metadata=_load_metadata(row.metadata_json),
    )
