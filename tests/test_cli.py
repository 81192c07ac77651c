from __future__ import annotations

from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from agent_relay.main import agent_relay

pytestmark = [
    allure.epic("Operator CLI"),
    allure.feature("Query & Session Commands"),
]


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cli.db"


def test_health_reports_cli_version(echo_command_line: str) -> None:
    result = CliRunner().invoke(agent_relay, ["health", "--cli-command", echo_command_line])

    assert result.exit_code == 0, result.output
    assert "Version: echo-agent 1.0.0" in result.output


def test_health_fails_for_missing_cli(tmp_path: Path) -> None:
    missing = str(tmp_path / "missing-agent")

    result = CliRunner().invoke(agent_relay, ["health", "--cli-command", missing])

    assert result.exit_code != 0
    assert "CLI unavailable" in result.output


def test_query_prints_result_text_and_summary(echo_command_line: str) -> None:
    result = CliRunner().invoke(
        agent_relay,
        ["query", "What is 2+2?", "--model", "sonnet", "--cli-command", echo_command_line],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "What is 2+2?"
    assert lines[1].startswith("[success] session=")


def test_query_stream_prints_one_line_per_event(echo_command_line: str) -> None:
    result = CliRunner().invoke(
        agent_relay,
        ["query", "hello", "--stream", "--cli-command", echo_command_line],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith("[init] session=")
    assert lines[1] == "[assistant] hello"
    assert lines[2].startswith("[result] success")


def test_query_reports_cli_failure(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        agent_relay,
        ["query", "hi", "--cli-command", str(tmp_path / "missing-agent")],
    )

    assert result.exit_code != 0
    assert "CLI command not found" in result.output


def test_query_rejects_blank_prompt() -> None:
    result = CliRunner().invoke(agent_relay, ["query", "   "])

    assert result.exit_code != 0
    assert "Prompt must not be empty" in result.output


def test_session_commands_round_trip(db_path: Path) -> None:
    runner = CliRunner()
    db_option = ["--db-path", str(db_path)]

    created = runner.invoke(
        agent_relay,
        ["sessions", "create", "--id", "ops-1", "--metadata", '{"team": "ops"}', *db_option],
    )
    assert created.exit_code == 0, created.output
    assert "Session created: ops-1" in created.output

    listed = runner.invoke(agent_relay, ["sessions", "list", *db_option])
    assert listed.exit_code == 0, listed.output
    assert listed.output.startswith("ops-1 messages=0")

    shown = runner.invoke(agent_relay, ["sessions", "show", "ops-1", *db_option])
    assert shown.exit_code == 0, shown.output
    assert 'Metadata: {"team": "ops"}' in shown.output

    deleted = runner.invoke(agent_relay, ["sessions", "delete", "ops-1", *db_option])
    assert deleted.exit_code == 0, deleted.output
    assert "Session deleted: ops-1" in deleted.output

    empty = runner.invoke(agent_relay, ["sessions", "list", *db_option])
    assert "No sessions." in empty.output


def test_session_commands_report_errors(db_path: Path) -> None:
    runner = CliRunner()
    db_option = ["--db-path", str(db_path)]
    runner.invoke(agent_relay, ["sessions", "create", "--id", "dup", *db_option])

    duplicate = runner.invoke(agent_relay, ["sessions", "create", "--id", "dup", *db_option])
    bad_metadata = runner.invoke(
        agent_relay,
        ["sessions", "create", "--metadata", "[1]", *db_option],
    )
    missing = runner.invoke(agent_relay, ["sessions", "show", "ghost", *db_option])
    missing_delete = runner.invoke(agent_relay, ["sessions", "delete", "ghost", *db_option])

    assert duplicate.exit_code != 0
    assert "Session already exists: dup" in duplicate.output
    assert bad_metadata.exit_code != 0
    assert "Metadata must be a JSON object" in bad_metadata.output
    assert missing.exit_code != 0
    assert "Session not found: ghost" in missing.output
    assert missing_delete.exit_code != 0
