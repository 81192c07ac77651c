"""Per-key sequential scheduler for asynchronous units of work.

At most one task runs per key; tasks under different keys run concurrently
with no global ceiling. Queues are created lazily on first submission and
stay registered while idle; ``clear`` is the only removal path.

All registry mutations happen in synchronous sections of the event loop, so
two tasks of one key can never be started concurrently. The scheduler must be
used from the loop that runs it.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from agent_relay.runtime.errors import TaskCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class _Task:
    key: str
    work: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]


@dataclass(slots=True)
class _KeyQueue:
    pending: deque[_Task] = field(default_factory=deque)
    running: bool = False


class KeySequentialScheduler:
    """FIFO execution per key, full concurrency across keys."""

    def __init__(self) -> None:
        self._queues: dict[str, _KeyQueue] = {}
        self._runners: set[asyncio.Task[None]] = set()

    def submit(self, key: str, work: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Enqueue ``work`` under ``key`` and return its completion future."""

        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        queue = self._queues.get(key)
        if queue is None:
            queue = _KeyQueue()
            self._queues[key] = queue
        queue.pending.append(_Task(key=key, work=work, future=future))
        if not queue.running:
            self._start_next(key, queue)
        return future

    def queue_depth(self, key: str) -> int:
        """Running plus pending tasks for ``key``; 0 for unknown keys."""

        queue = self._queues.get(key)
        if queue is None:
            return 0
        return len(queue.pending) + (1 if queue.running else 0)

    def clear(self, key: str) -> int:
        """Reject all pending tasks of ``key`` and drop its queue.

        A running task is not interrupted; it still resolves its own future
        but schedules no successor. Returns the number of rejected tasks.
        """

        queue = self._queues.pop(key, None)
        if queue is None:
            return 0
        rejected = 0
        while queue.pending:
            task = queue.pending.popleft()
            if not task.future.done():
                task.future.set_exception(TaskCancelledError(key))
                rejected += 1
        if rejected:
            logger.info("Cleared queue key=%s rejected=%d", key, rejected)
        return rejected

    def active_key_count(self) -> int:
        """Registered queues, idle ones included."""

        return len(self._queues)

    @asynccontextmanager
    async def reserve(self, key: str) -> AsyncIterator[None]:
        """Hold ``key``'s turn for the duration of the ``async with`` block.

        Raises ``TaskCancelledError`` if the key is cleared while waiting.
        """

        loop = asyncio.get_running_loop()
        turn: asyncio.Future[None] = loop.create_future()
        released = asyncio.Event()

        async def _hold() -> None:
            if turn.done():
                return
            turn.set_result(None)
            await released.wait()

        completion = self.submit(key, _hold)
        try:
            await asyncio.wait((turn, completion), return_when=asyncio.FIRST_COMPLETED)
            if not turn.done():
                completion.result()
            yield
        finally:
            released.set()
            if not turn.done():
                turn.cancel()
                completion.cancel()

    def _start_next(self, key: str, queue: _KeyQueue) -> None:
        while queue.pending:
            task = queue.pending.popleft()
            if task.future.done():
                # Caller gave up before the turn arrived.
                continue
            queue.running = True
            runner = asyncio.create_task(self._run(queue, task), name=f"key-task:{key}")
            self._runners.add(runner)
            runner.add_done_callback(self._runners.discard)
            return

    async def _run(self, queue: _KeyQueue, task: _Task) -> None:
        try:
            result = await task.work()
        except asyncio.CancelledError:
            if not task.future.done():
                task.future.cancel()
            raise
        except Exception as error:  # noqa: BLE001
            if not task.future.done():
                task.future.set_exception(error)
        else:
            if not task.future.done():
                task.future.set_result(result)
        finally:
            queue.running = False
            if self._queues.get(task.key) is queue:
                self._start_next(task.key, queue)
