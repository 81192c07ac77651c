"""Argument-vector construction for the agent CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

PROMPT_SEPARATOR = "--"


@dataclass(slots=True)
class QueryRequest:
    """Options of one prompt sent to the agent CLI."""

    prompt: str
    model: str | None = None
    fallback_model: str | None = None
    agent: str | None = None
    agents: dict[str, Any] | None = None
    system_prompt: str | None = None
    append_system_prompt: str | None = None
    tools: list[str] = field(default_factory=list)
    allowed_tools: list[str] = field(default_factory=list)
    disallowed_tools: list[str] = field(default_factory=list)
    permission_mode: str | None = None
    json_schema: dict[str, Any] | None = None
    max_budget_usd: float | None = None
    add_dirs: list[str] = field(default_factory=list)
    mcp_config: list[dict[str, Any]] = field(default_factory=list)
    strict_mcp_config: bool = False
    plugin_dirs: list[str] = field(default_factory=list)
    betas: list[str] = field(default_factory=list)
    settings: str | dict[str, Any] | None = None
    setting_sources: list[str] = field(default_factory=list)
    verbose: bool = False
    disable_slash_commands: bool = False
    fork_session: bool = False


def build_cli_args(
    request: QueryRequest,
    *,
    session_id: str | None = None,
    streaming: bool = False,
    is_new_session: bool = True,
) -> list[str]:
    """Render the argument vector; the prompt is always the last element.

    Order: print mode and output format, session flags, feature flags, then
    ``--`` and the prompt.
    """

    args = ["-p", "--output-format", "stream-json" if streaming else "json"]

    if session_id:
        if is_new_session:
            args.extend(["--session-id", session_id])
        else:
            args.extend(["--resume", session_id])
    if request.fork_session:
        args.append("--fork-session")

    _add_option(args, "--model", request.model)
    _add_option(args, "--fallback-model", request.fallback_model)
    _add_option(args, "--agent", request.agent)
    if request.agents:
        args.extend(["--agents", json.dumps(request.agents)])
    _add_option(args, "--system-prompt", request.system_prompt)
    _add_option(args, "--append-system-prompt", request.append_system_prompt)

    _add_variadic(args, "--tools", request.tools)
    _add_variadic(args, "--allowedTools", request.allowed_tools)
    _add_variadic(args, "--disallowedTools", request.disallowed_tools)
    _add_option(args, "--permission-mode", request.permission_mode)

    if request.json_schema:
        args.extend(["--json-schema", json.dumps(request.json_schema)])
    if request.max_budget_usd is not None:
        args.extend(["--max-budget-usd", str(request.max_budget_usd)])

    for directory in request.add_dirs:
        args.extend(["--add-dir", directory])
    for config in request.mcp_config:
        args.extend(["--mcp-config", json.dumps(config)])
    if request.strict_mcp_config:
        args.append("--strict-mcp-config")
    for directory in request.plugin_dirs:
        args.extend(["--plugin-dir", directory])

    _add_variadic(args, "--betas", request.betas)
    if request.settings:
        settings_value = (
            request.settings if isinstance(request.settings, str) else json.dumps(request.settings)
        )
        args.extend(["--settings", settings_value])
    if request.setting_sources:
        args.extend(["--setting-sources", ",".join(request.setting_sources)])

    if request.verbose:
        args.append("--verbose")
    if request.disable_slash_commands:
        args.append("--disable-slash-commands")

    args.extend([PROMPT_SEPARATOR, request.prompt])
    return args


def _add_option(args: list[str], flag: str, value: str | None) -> None:
    if value:
        args.extend([flag, value])


def _add_variadic(args: list[str], flag: str, values: list[str]) -> None:
    if values:
        args.extend([flag, *values])
