"""Request and response bodies of the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agent_relay.runtime.arguments import QueryRequest
from agent_relay.runtime.contracts import ExecutionResult
from agent_relay.sessions.models import SessionView


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case accepted as well."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueryBody(ApiModel):
    prompt: str = Field(min_length=1)
    model: str | None = None
    fallback_model: str | None = None
    agent: str | None = None
    agents: dict[str, Any] | None = None
    system_prompt: str | None = None
    append_system_prompt: str | None = None
    tools: list[str] = Field(default_factory=list)
    allowed_tools: list[str] = Field(default_factory=list)
    disallowed_tools: list[str] = Field(default_factory=list)
    permission_mode: str | None = None
    json_schema: dict[str, Any] | None = None
    max_budget_usd: float | None = Field(default=None, gt=0)
    add_dirs: list[str] = Field(default_factory=list)
    mcp_config: list[dict[str, Any]] = Field(default_factory=list)
    strict_mcp_config: bool = False
    plugin_dirs: list[str] = Field(default_factory=list)
    betas: list[str] = Field(default_factory=list)
    settings: str | dict[str, Any] | None = None
    setting_sources: list[str] = Field(default_factory=list)
    verbose: bool = False
    disable_slash_commands: bool = False
    fork_session: bool = False

    def to_request(self) -> QueryRequest:
        return QueryRequest(**self.model_dump())


class SessionCreateBody(ApiModel):
    id: str | None = Field(default=None, min_length=1)
    metadata: dict[str, Any] | None = None


class SessionForkBody(ApiModel):
    id: str | None = Field(default=None, min_length=1)


class UsageOut(ApiModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None


class QueryResultOut(ApiModel):
    kind: str
    text: str
    session_id: str | None = None
    total_cost_usd: float = 0.0
    duration_ms: int = 0
    num_turns: int = 0
    usage: UsageOut = Field(default_factory=UsageOut)
    structured_output: dict[str, Any] | None = None

    @classmethod
    def from_result(cls, result: ExecutionResult) -> QueryResultOut:
        return cls.model_validate(result.to_dict())


class SessionOut(ApiModel):
    id: str
    created_at: datetime
    updated_at: datetime
    message_count: int
    total_cost_usd: float
    last_model: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_view(cls, view: SessionView) -> SessionOut:
        return cls(
            id=view.session_id,
            created_at=view.created_at,
            updated_at=view.updated_at,
            message_count=view.message_count,
            total_cost_usd=view.total_cost_usd,
            last_model=view.last_model,
            metadata=view.metadata,
        )


class QueueOut(ApiModel):
    session_id: str
    depth: int


class HealthOut(ApiModel):
    status: str
    timestamp: datetime


class CliInfoOut(ApiModel):
    available: bool
    version: str | None = None
    error: str | None = None


class ConfigInfoOut(ApiModel):
    db_path: str
    port: int
    log_level: str
    default_model: str | None = None
    cli_timeout_seconds: float


class InfoOut(ApiModel):
    version: str
    cli: CliInfoOut
    config: ConfigInfoOut
    active_sessions: int
