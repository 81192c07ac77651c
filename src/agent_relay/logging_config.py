"""Process-wide logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Install console and optional file handlers on the root logger.

    Safe to call repeatedly: handlers installed by an earlier call are replaced.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_agent_relay", False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler._agent_relay = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())
