"""Typed contracts for CLI agent output: stream events and blocking results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

RESULT_EVENT_TYPE = "result"
INIT_SUBTYPE = "init"


class ResultKind(str, Enum):
    """Outcome reported by the terminal result entry."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True)
class ExecutionOptions:
    """Per-invocation process options."""

    timeout_seconds: float | None = None
    working_directory: Path | None = None


@dataclass(slots=True)
class TokenUsage:
    """Token counters reported by the agent."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None

    @classmethod
    def from_payload(cls, payload: object) -> TokenUsage:
        if not isinstance(payload, dict):
            return cls()
        return cls(
            input_tokens=_as_int(payload.get("input_tokens")) or 0,
            output_tokens=_as_int(payload.get("output_tokens")) or 0,
            cache_creation_input_tokens=_as_int(payload.get("cache_creation_input_tokens")),
            cache_read_input_tokens=_as_int(payload.get("cache_read_input_tokens")),
        )


@dataclass(slots=True)
class ExecutionResult:
    """Aggregate outcome of one blocking invocation."""

    kind: ResultKind
    text: str
    session_id: str | None
    total_cost_usd: float
    duration_ms: int
    num_turns: int
    usage: TokenUsage = field(default_factory=TokenUsage)
    structured_output: dict[str, Any] | None = None

    @property
    def is_error(self) -> bool:
        return self.kind is ResultKind.ERROR

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["kind"] = self.kind.value
        return payload


@dataclass(frozen=True, slots=True)
class InitEvent:
    """Session bootstrap event (``type: system``, ``subtype: init``)."""

    type: ClassVar[str] = "system"

    data: dict[str, Any]

    @property
    def subtype(self) -> str | None:
        return _as_str(self.data.get("subtype"))

    @property
    def session_id(self) -> str | None:
        return _as_str(self.data.get("session_id"))

    @property
    def cwd(self) -> str | None:
        return _as_str(self.data.get("cwd"))

    @property
    def model(self) -> str | None:
        return _as_str(self.data.get("model"))

    @property
    def tools(self) -> list[str]:
        tools = self.data.get("tools")
        return [str(tool) for tool in tools] if isinstance(tools, list) else []

    @property
    def permission_mode(self) -> str | None:
        return _as_str(self.data.get("permissionMode"))

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


@dataclass(frozen=True, slots=True)
class AssistantEvent:
    """One assistant message with content blocks and usage."""

    type: ClassVar[str] = "assistant"

    data: dict[str, Any]

    @property
    def message(self) -> dict[str, Any]:
        message = self.data.get("message")
        return message if isinstance(message, dict) else {}

    @property
    def session_id(self) -> str | None:
        return _as_str(self.data.get("session_id"))

    @property
    def content(self) -> list[dict[str, Any]]:
        blocks = self.message.get("content")
        if not isinstance(blocks, list):
            return []
        return [block for block in blocks if isinstance(block, dict)]

    @property
    def text(self) -> str:
        """Concatenated text of all ``text`` content blocks."""

        return "".join(
            str(block.get("text", ""))
            for block in self.content
            if block.get("type") == "text"
        )

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage.from_payload(self.message.get("usage"))

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


@dataclass(frozen=True, slots=True)
class ResultEvent:
    """Terminal, authoritative event with final text, cost and usage."""

    type: ClassVar[str] = RESULT_EVENT_TYPE

    data: dict[str, Any]

    @property
    def subtype(self) -> str | None:
        return _as_str(self.data.get("subtype"))

    @property
    def is_error(self) -> bool:
        return bool(self.data.get("is_error")) or self.subtype not in (None, "success")

    @property
    def result(self) -> str:
        value = self.data.get("result")
        return value if isinstance(value, str) else ""

    @property
    def session_id(self) -> str | None:
        return _as_str(self.data.get("session_id"))

    @property
    def total_cost_usd(self) -> float:
        return _as_float(self.data.get("total_cost_usd"))

    @property
    def duration_ms(self) -> int:
        return _as_int(self.data.get("duration_ms")) or 0

    @property
    def num_turns(self) -> int:
        return _as_int(self.data.get("num_turns")) or 0

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage.from_payload(self.data.get("usage"))

    @property
    def structured_output(self) -> dict[str, Any] | None:
        value = self.data.get("structured_output")
        return value if isinstance(value, dict) else None

    def to_execution_result(self) -> ExecutionResult:
        return ExecutionResult(
            kind=ResultKind.ERROR if self.is_error else ResultKind.SUCCESS,
            text=self.result,
            session_id=self.session_id,
            total_cost_usd=self.total_cost_usd,
            duration_ms=self.duration_ms,
            num_turns=self.num_turns,
            usage=self.usage,
            structured_output=self.structured_output,
        )

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Tool-level error event."""

    type: ClassVar[str] = "error"

    data: dict[str, Any]

    @property
    def error(self) -> str:
        return str(self.data.get("error", ""))

    @property
    def code(self) -> str | None:
        return _as_str(self.data.get("code"))

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


StreamEvent = InitEvent | AssistantEvent | ResultEvent | ErrorEvent

EVENT_TYPES: dict[str, type[InitEvent | AssistantEvent | ResultEvent | ErrorEvent]] = {
    event_cls.type: event_cls for event_cls in (InitEvent, AssistantEvent, ResultEvent, ErrorEvent)
}


@dataclass(slots=True)
class CliAvailability:
    """Best-effort health probe outcome."""

    available: bool
    version: str | None = None
    error: str | None = None


def _as_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _as_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    return 0.0
