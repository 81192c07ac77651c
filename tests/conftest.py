"""Shared test fixtures."""

from __future__ import annotations

import shlex
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from agent_relay.config import CliSettings, Settings
from agent_relay.runtime import echo_agent
from agent_relay.runtime.executor import CliExecutor

ECHO_AGENT_COMMAND = (sys.executable, echo_agent.__file__)


@pytest.fixture()
def echo_executor() -> CliExecutor:
    return CliExecutor(ECHO_AGENT_COMMAND)


@pytest.fixture()
def fake_cli(tmp_path: Path) -> Callable[[str], tuple[str, ...]]:
    """Write a throwaway agent script and return the command that runs it."""

    counter = {"value": 0}

    def _write(body: str) -> tuple[str, ...]:
        counter["value"] += 1
        script = tmp_path / f"fake_cli_{counter['value']}.py"
        script.write_text(textwrap.dedent(body), encoding="utf-8")
        return (sys.executable, str(script))

    return _write


@pytest.fixture()
def relay_settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=tmp_path / "data" / "sessions.db",
        cli=CliSettings(command=ECHO_AGENT_COMMAND, timeout_seconds=30),
    )


@pytest.fixture()
def echo_command_line() -> str:
    """The echo agent command as one shell-style string."""

    return shlex.join(ECHO_AGENT_COMMAND)
