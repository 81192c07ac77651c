"""CLI entrypoint for agent-relay."""

from pathlib import Path

import rich_click as click

from agent_relay import __version__
from agent_relay.controllers import (
    AgentRelayCliController,
    HealthCommand,
    QueryCommand,
    ServeCommand,
    SessionCreateCommand,
    SessionDeleteCommand,
    SessionListCommand,
    SessionShowCommand,
)
from agent_relay.runtime.errors import CliExecutionError
from agent_relay.sessions.errors import SessionAlreadyExistsError, SessionNotFoundError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = AgentRelayCliController()

_CLI_COMMAND_HELP = (
    "Agent CLI command line, split shell-style. "
    "If omitted, AGENT_RELAY_CLI_COMMAND or `claude` on PATH is used."
)


@click.group()
@click.version_option(version=__version__, prog_name="agent-relay")
def agent_relay() -> None:
    """Agent relay CLI."""


@agent_relay.command("serve")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--host", default=None, help="Bind address. Defaults to AGENT_RELAY_HOST.")
@click.option(
    "--port",
    type=click.IntRange(min=1, max=65_535),
    default=None,
    help="Bind port. Defaults to AGENT_RELAY_PORT.",
)
@click.option("--cli-command", default=None, help=_CLI_COMMAND_HELP)
def serve(
    db_path: Path | None,
    host: str | None,
    port: int | None,
    cli_command: str | None,
) -> None:
    """Run the HTTP API server."""

    CONTROLLER.serve(
        ServeCommand(db_path=db_path, host=host, port=port, cli_command=cli_command),
    )


@agent_relay.command("health")
@click.option("--cli-command", default=None, help=_CLI_COMMAND_HELP)
def health(cli_command: str | None) -> None:
    """Check that the agent CLI can be started."""

    available, lines = CONTROLLER.health(HealthCommand(cli_command=cli_command))
    _emit_lines(lines)
    if not available:
        raise click.ClickException("Agent CLI is not available.")


@agent_relay.command("query")
@click.argument("prompt")
@click.option("--model", default=None, help="Model alias or full model name.")
@click.option("--stream", is_flag=True, default=False, help="Print events as they arrive.")
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Blocking-mode timeout in seconds. Defaults to AGENT_RELAY_CLI_TIMEOUT_SECONDS.",
)
@click.option("--cli-command", default=None, help=_CLI_COMMAND_HELP)
def query(
    prompt: str,
    model: str | None,
    stream: bool,
    timeout_seconds: float | None,
    cli_command: str | None,
) -> None:
    """Send a one-off prompt without a session."""

    if not prompt.strip():
        raise click.BadParameter("Prompt must not be empty.", param_hint="PROMPT")
    command = QueryCommand(
        prompt=prompt,
        model=model,
        stream=stream,
        timeout_seconds=timeout_seconds,
        cli_command=cli_command,
    )
    try:
        if stream:
            CONTROLLER.stream_query(command, click.echo)
        else:
            _emit_lines(CONTROLLER.query(command))
    except CliExecutionError as error:
        raise click.ClickException(str(error)) from error


@agent_relay.group()
def sessions() -> None:
    """Session store commands."""


@sessions.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def sessions_list(db_path: Path | None) -> None:
    """List sessions, most recently active first."""

    _emit_lines(CONTROLLER.list_sessions(SessionListCommand(db_path=db_path)))


@sessions.command("show")
@click.argument("session_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def sessions_show(session_id: str, db_path: Path | None) -> None:
    """Show one session."""

    try:
        lines = CONTROLLER.show_session(SessionShowCommand(db_path=db_path, session_id=session_id))
    except SessionNotFoundError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@sessions.command("create")
@click.option("--id", "session_id", default=None, help="Session id. Random UUID if omitted.")
@click.option("--metadata", default=None, help="Metadata as a JSON object.")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def sessions_create(session_id: str | None, metadata: str | None, db_path: Path | None) -> None:
    """Create a session."""

    try:
        lines = CONTROLLER.create_session(
            SessionCreateCommand(db_path=db_path, session_id=session_id, metadata=metadata),
        )
    except (SessionAlreadyExistsError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@sessions.command("delete")
@click.argument("session_id")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def sessions_delete(session_id: str, db_path: Path | None) -> None:
    """Delete a session."""

    try:
        lines = CONTROLLER.delete_session(
            SessionDeleteCommand(db_path=db_path, session_id=session_id),
        )
    except SessionNotFoundError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    agent_relay()
