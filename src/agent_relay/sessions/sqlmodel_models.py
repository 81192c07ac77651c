"""SQLModel ORM tables for the session store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


class SessionRecord(SQLModel, table=True):
    __tablename__ = "sessions"  # type: ignore[bad-override]

    session_id: str = Field(primary_key=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    message_count: int = 0
    total_cost_usd: float = 0.0
    last_model: str | None = None
    # ``metadata`` is reserved by the declarative base.
    metadata_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
