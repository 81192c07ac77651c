"""Concurrent execution core: CLI executor, stream decoder, per-key scheduler."""

from agent_relay.runtime.arguments import QueryRequest, build_cli_args
from agent_relay.runtime.contracts import (
    AssistantEvent,
    CliAvailability,
    ErrorEvent,
    ExecutionOptions,
    ExecutionResult,
    InitEvent,
    ResultEvent,
    ResultKind,
    StreamEvent,
    TokenUsage,
)
from agent_relay.runtime.decoder import LineDecoder, decode_line
from agent_relay.runtime.errors import (
    CliExecutionError,
    CliNoResultError,
    CliOutputError,
    CliProcessFailedError,
    CliSpawnError,
    CliTimeoutError,
    CliUnparsableOutputError,
    TaskCancelledError,
)
from agent_relay.runtime.executor import CliExecutor
from agent_relay.runtime.scheduler import KeySequentialScheduler

__all__ = [
    "AssistantEvent",
    "CliAvailability",
    "CliExecutionError",
    "CliExecutor",
    "CliNoResultError",
    "CliOutputError",
    "CliProcessFailedError",
    "CliSpawnError",
    "CliTimeoutError",
    "CliUnparsableOutputError",
    "ErrorEvent",
    "ExecutionOptions",
    "ExecutionResult",
    "InitEvent",
    "KeySequentialScheduler",
    "LineDecoder",
    "QueryRequest",
    "ResultEvent",
    "ResultKind",
    "StreamEvent",
    "TaskCancelledError",
    "TokenUsage",
    "build_cli_args",
    "decode_line",
]
