"""Error taxonomy for CLI agent execution and per-key scheduling."""

from __future__ import annotations


class CliExecutionError(RuntimeError):
    """CLI execution error with retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class CliSpawnError(CliExecutionError):
    """The agent process could not be started (missing binary, no permission)."""


class CliTimeoutError(CliExecutionError):
    """A blocking invocation exceeded its timeout and the process was terminated."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"CLI process timed out after {timeout_seconds:g}s",
            transient=True,
        )
        self.timeout_seconds = timeout_seconds


class CliOutputError(CliExecutionError):
    """The process exited but produced no usable result."""

    def __init__(self, message: str, *, exit_code: int | None, stderr: str) -> None:
        super().__init__(message, transient=False)
        self.exit_code = exit_code
        self.stderr = stderr


class CliUnparsableOutputError(CliOutputError):
    """Standard output was not valid JSON."""

    def __init__(self, *, exit_code: int | None, stderr: str, parse_error: str) -> None:
        if exit_code:
            message = (
                f"CLI process failed with exit code {exit_code}: "
                f"{stderr.strip() or parse_error}"
            )
        else:
            message = f"Failed to parse CLI output: {parse_error}"
        super().__init__(message, exit_code=exit_code, stderr=stderr)
        self.parse_error = parse_error


class CliProcessFailedError(CliOutputError):
    """Nonzero exit and the JSON output carried no result entry."""

    def __init__(self, *, exit_code: int | None, stderr: str) -> None:
        super().__init__(
            f"CLI process failed with exit code {exit_code}: {stderr.strip()}",
            exit_code=exit_code,
            stderr=stderr,
        )


class CliNoResultError(CliOutputError):
    """Zero exit but the JSON output carried no result entry."""

    def __init__(self, *, stderr: str) -> None:
        super().__init__("No result event found in CLI output", exit_code=0, stderr=stderr)


class TaskCancelledError(Exception):
    """A queued task was discarded before it started."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Queued task for {key!r} was cancelled")
        self.key = key
