"""Subprocess executor for CLI agents: blocking, streaming and health probes."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

from agent_relay.runtime.contracts import (
    RESULT_EVENT_TYPE,
    CliAvailability,
    ExecutionOptions,
    ExecutionResult,
    ResultEvent,
    StreamEvent,
)
from agent_relay.runtime.decoder import LineDecoder
from agent_relay.runtime.errors import (
    CliNoResultError,
    CliProcessFailedError,
    CliSpawnError,
    CliTimeoutError,
    CliUnparsableOutputError,
)

logger = logging.getLogger(__name__)

VERSION_FLAG = "--version"

_READ_CHUNK_BYTES = 64 * 1024
_TERMINATE_GRACE_SECONDS = 2.0
_STDERR_PREVIEW_CHARS = 500


class CliExecutor:
    """Spawn the agent CLI with an explicit argument vector, one process per call."""

    def __init__(self, command: str | Sequence[str] = "claude") -> None:
        self.command: tuple[str, ...] = (command,) if isinstance(command, str) else tuple(command)
        if not self.command or not self.command[0]:
            raise ValueError("CLI command must not be empty.")

    async def execute(
        self,
        args: Sequence[str],
        options: ExecutionOptions | None = None,
    ) -> ExecutionResult:
        """Run to completion and return the terminal result.

        The output is parsed regardless of the exit code: the agent reports
        domain failures such as authentication errors as a well-formed result
        entry while exiting nonzero.
        """

        options = options or ExecutionOptions()
        process = await self._spawn(args, options)
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=options.timeout_seconds,
            )
        except TimeoutError:
            await _kill_process(process)
            logger.warning(
                "CLI process pid=%s timed out after %ss",
                process.pid,
                options.timeout_seconds,
            )
            raise CliTimeoutError(options.timeout_seconds or 0) from None
        except asyncio.CancelledError:
            await _terminate_process(process)
            raise

        return parse_blocking_output(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
        )

    async def execute_stream(
        self,
        args: Sequence[str],
        options: ExecutionOptions | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield decoded events as the process writes them.

        A nonzero exit does not raise; every decoded event is surfaced first.
        Closing the iterator early terminates the process.
        """

        options = options or ExecutionOptions()
        process = await self._spawn(args, options)
        if process.stdout is None or process.stderr is None:
            raise RuntimeError("CLI process was spawned without output pipes.")

        stderr_task = asyncio.create_task(_drain(process.stderr))
        decoder = LineDecoder()
        exited = False
        try:
            while True:
                chunk = await process.stdout.read(_READ_CHUNK_BYTES)
                if not chunk:
                    break
                for event in decoder.feed(chunk):
                    yield event
            for event in decoder.flush():
                yield event

            exit_code = await process.wait()
            exited = True
            stderr = await stderr_task
            if exit_code:
                logger.warning(
                    "CLI stream pid=%s exited with code %s: %s",
                    process.pid,
                    exit_code,
                    stderr.strip()[:_STDERR_PREVIEW_CHARS],
                )
        finally:
            if not exited:
                logger.info("CLI stream pid=%s abandoned, terminating", process.pid)
                await _terminate_process(process)
            if not stderr_task.done():
                stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stderr_task

    async def check_availability(self) -> CliAvailability:
        """Probe the CLI with ``--version``."""

        try:
            process = await self._spawn([VERSION_FLAG], ExecutionOptions())
        except CliSpawnError as error:
            return CliAvailability(available=False, error=str(error))

        stdout, _ = await process.communicate()
        if process.returncode == 0:
            return CliAvailability(
                available=True,
                version=stdout.decode("utf-8", errors="replace").strip(),
            )
        return CliAvailability(
            available=False,
            error=f"CLI returned non-zero exit code {process.returncode}",
        )

    async def _spawn(
        self,
        args: Sequence[str],
        options: ExecutionOptions,
    ) -> asyncio.subprocess.Process:
        argv = [*self.command, *args]
        cwd = options.working_directory
        if cwd is not None and not cwd.is_dir():
            raise CliSpawnError(f"CLI working directory does not exist: {cwd}", transient=False)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except FileNotFoundError as error:
            raise CliSpawnError(
                f"CLI command not found: {self.command[0]}",
                transient=False,
            ) from error
        except PermissionError as error:
            raise CliSpawnError(
                f"CLI command is not executable: {self.command[0]}",
                transient=False,
            ) from error
        except OSError as error:
            raise CliSpawnError(f"CLI failed to start: {error}", transient=True) from error

        logger.debug("Spawned CLI pid=%s with %d args", process.pid, len(args))
        return process


def parse_blocking_output(*, stdout: str, stderr: str, exit_code: int | None) -> ExecutionResult:
    """Select the result entry from ``--output-format json`` output."""

    try:
        payload = json.loads(stdout.strip())
    except json.JSONDecodeError as error:
        raise CliUnparsableOutputError(
            exit_code=exit_code,
            stderr=stderr,
            parse_error=str(error),
        ) from error

    entry = _find_result_entry(payload)
    if entry is None:
        if exit_code:
            raise CliProcessFailedError(exit_code=exit_code, stderr=stderr)
        raise CliNoResultError(stderr=stderr)

    if exit_code:
        logger.info("CLI exited with code %s but reported a result entry", exit_code)
    return ResultEvent(data=entry).to_execution_result()


def _find_result_entry(payload: Any) -> dict[str, Any] | None:
    if isinstance(payload, list):
        for entry in payload:
            if isinstance(entry, dict) and entry.get("type") == RESULT_EVENT_TYPE:
                return entry
        return None
    if isinstance(payload, dict) and payload.get("type") == RESULT_EVENT_TYPE:
        return payload
    return None


async def _drain(stream: asyncio.StreamReader) -> str:
    data = await stream.read()
    return data.decode("utf-8", errors="replace")


async def _terminate_process(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.terminate()
    except OSError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=_TERMINATE_GRACE_SECONDS)
    except TimeoutError:
        try:
            process.kill()
        except OSError:
            return
        await process.wait()


async def _kill_process(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except OSError:
        return
    await process.wait()
