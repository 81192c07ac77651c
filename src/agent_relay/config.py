"""Runtime configuration for the agent relay."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CLI_NAME = "claude"
DEFAULT_ALLOWED_ORIGINS = ("http://localhost:3000",)


@dataclass(slots=True)
class ServerSettings:
    """HTTP façade settings."""

    host: str = "127.0.0.1"
    port: int = 3000
    allowed_origins: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS


@dataclass(slots=True)
class CliSettings:
    """Agent CLI invocation settings."""

    command: tuple[str, ...] = (DEFAULT_CLI_NAME,)
    timeout_seconds: float = 120.0
    default_model: str | None = None


@dataclass(slots=True)
class LoggingSettings:
    """Log level and optional log file."""

    level: str = "INFO"
    file: Path | None = None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path("data/sessions.db")
    server: ServerSettings = field(default_factory=ServerSettings)
    cli: CliSettings = field(default_factory=CliSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        log_file = os.getenv("AGENT_RELAY_LOG_FILE", "").strip()
        return cls(
            db_path=db_path or Path(os.getenv("AGENT_RELAY_DB_PATH", "data/sessions.db")),
            server=ServerSettings(
                host=os.getenv("AGENT_RELAY_HOST", "127.0.0.1"),
                port=int(os.getenv("AGENT_RELAY_PORT", "3000")),
                allowed_origins=_collect_allowed_origins(),
            ),
            cli=CliSettings(
                command=_resolve_cli_command(),
                timeout_seconds=float(os.getenv("AGENT_RELAY_CLI_TIMEOUT_SECONDS", "120")),
                default_model=os.getenv("AGENT_RELAY_DEFAULT_MODEL", "").strip() or None,
            ),
            logging=LoggingSettings(
                level=os.getenv("AGENT_RELAY_LOG_LEVEL", "INFO").strip().upper(),
                file=Path(log_file) if log_file else None,
            ),
        )

    def validate(self) -> None:
        if not 0 < self.server.port < 65_536:
            raise ValueError("AGENT_RELAY_PORT must be between 1 and 65535.")
        if self.cli.timeout_seconds <= 0:
            raise ValueError("AGENT_RELAY_CLI_TIMEOUT_SECONDS must be > 0.")
        if not self.cli.command or not self.cli.command[0]:
            raise ValueError("AGENT_RELAY_CLI_COMMAND must not be empty.")
        if not isinstance(logging.getLevelName(self.logging.level), int):
            raise ValueError(f"Unknown AGENT_RELAY_LOG_LEVEL: {self.logging.level!r}")


def _resolve_cli_command() -> tuple[str, ...]:
    raw = os.getenv("AGENT_RELAY_CLI_COMMAND", "").strip()
    if raw:
        return tuple(shlex.split(raw))
    return (shutil.which(DEFAULT_CLI_NAME) or DEFAULT_CLI_NAME,)


def _collect_allowed_origins() -> tuple[str, ...]:
    raw = os.getenv("AGENT_RELAY_ALLOWED_ORIGINS")
    if raw is None:
        return DEFAULT_ALLOWED_ORIGINS
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())
