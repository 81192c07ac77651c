from __future__ import annotations

import asyncio

import allure
import pytest

from agent_relay.runtime.errors import TaskCancelledError
from agent_relay.runtime.scheduler import KeySequentialScheduler

pytestmark = [
    allure.epic("Agent Runtime"),
    allure.feature("Per-Session Sequencing"),
]


def _recording_work(log: list[str], label: str, delay: float = 0.01):
    async def _work() -> str:
        log.append(f"{label}-start")
        await asyncio.sleep(delay)
        log.append(f"{label}-end")
        return label

    return _work


@pytest.mark.asyncio
async def test_tasks_of_one_key_run_in_submission_order_without_overlap() -> None:
    scheduler = KeySequentialScheduler()
    log: list[str] = []

    futures = [scheduler.submit("s", _recording_work(log, str(index))) for index in (1, 2, 3)]
    results = await asyncio.gather(*futures)

    assert results == ["1", "2", "3"]
    assert log == ["1-start", "1-end", "2-start", "2-end", "3-start", "3-end"]


@pytest.mark.asyncio
async def test_different_keys_run_concurrently() -> None:
    scheduler = KeySequentialScheduler()
    log: list[str] = []

    first = scheduler.submit("a", _recording_work(log, "a", delay=0.05))
    second = scheduler.submit("b", _recording_work(log, "b", delay=0.05))
    await asyncio.gather(first, second)

    assert log[:2] == ["a-start", "b-start"]


@pytest.mark.asyncio
async def test_failure_reaches_only_its_caller_and_queue_continues() -> None:
    scheduler = KeySequentialScheduler()

    async def _fail() -> str:
        raise ValueError("boom")

    async def _ok() -> str:
        return "fine"

    failing = scheduler.submit("s", _fail)
    following = scheduler.submit("s", _ok)

    with pytest.raises(ValueError, match="boom"):
        await failing
    assert await following == "fine"


@pytest.mark.asyncio
async def test_queue_depth_counts_running_and_pending_tasks() -> None:
    scheduler = KeySequentialScheduler()
    gate = asyncio.Event()

    async def _blocked() -> None:
        await gate.wait()

    assert scheduler.queue_depth("s") == 0
    futures = [scheduler.submit("s", _blocked) for _ in range(3)]
    await asyncio.sleep(0)

    assert scheduler.queue_depth("s") == 3
    assert scheduler.queue_depth("other") == 0

    gate.set()
    await asyncio.gather(*futures)
    assert scheduler.queue_depth("s") == 0
    assert scheduler.active_key_count() == 1


@pytest.mark.asyncio
async def test_clear_rejects_pending_tasks_and_lets_running_task_finish() -> None:
    scheduler = KeySequentialScheduler()
    gate = asyncio.Event()
    started: list[str] = []

    async def _running() -> str:
        started.append("running")
        await gate.wait()
        return "finished"

    async def _pending() -> str:
        started.append("pending")
        return "never"

    running = scheduler.submit("s", _running)
    pending = [scheduler.submit("s", _pending) for _ in range(2)]
    await asyncio.sleep(0)

    assert scheduler.clear("s") == 2
    assert scheduler.active_key_count() == 0

    gate.set()
    assert await running == "finished"
    for future in pending:
        with pytest.raises(TaskCancelledError):
            await future
    assert started == ["running"]
    assert scheduler.clear("s") == 0


@pytest.mark.asyncio
async def test_submission_after_clear_starts_a_fresh_queue() -> None:
    scheduler = KeySequentialScheduler()
    gate = asyncio.Event()
    log: list[str] = []

    async def _old() -> None:
        log.append("old-start")
        await gate.wait()
        log.append("old-end")

    old = scheduler.submit("s", _old)
    await asyncio.sleep(0)
    scheduler.clear("s")

    fresh = scheduler.submit("s", _recording_work(log, "new"))
    assert await fresh == "new"

    gate.set()
    await old
    assert log == ["old-start", "new-start", "new-end", "old-end"]


@pytest.mark.asyncio
async def test_cancelled_caller_skips_its_queued_task() -> None:
    scheduler = KeySequentialScheduler()
    gate = asyncio.Event()
    ran: list[str] = []

    async def _blocker() -> None:
        await gate.wait()

    async def _skipped() -> None:
        ran.append("skipped")

    blocker = scheduler.submit("s", _blocker)
    skipped = scheduler.submit("s", _skipped)
    skipped.cancel()

    gate.set()
    await blocker
    await asyncio.sleep(0.01)

    assert ran == []
    assert scheduler.queue_depth("s") == 0


@pytest.mark.asyncio
async def test_reserve_holds_the_turn_until_the_block_exits() -> None:
    scheduler = KeySequentialScheduler()
    log: list[str] = []

    async def _reserved() -> None:
        async with scheduler.reserve("s"):
            log.append("reserved-start")
            await asyncio.sleep(0.02)
            log.append("reserved-end")

    holder = asyncio.create_task(_reserved())
    await asyncio.sleep(0)
    follower = scheduler.submit("s", _recording_work(log, "next"))
    await asyncio.gather(holder, follower)

    assert log == ["reserved-start", "reserved-end", "next-start", "next-end"]


@pytest.mark.asyncio
async def test_reserve_waits_for_earlier_tasks() -> None:
    scheduler = KeySequentialScheduler()
    log: list[str] = []

    earlier = scheduler.submit("s", _recording_work(log, "earlier", delay=0.02))
    async with scheduler.reserve("s"):
        log.append("reserved")
    await earlier

    assert log == ["earlier-start", "earlier-end", "reserved"]


@pytest.mark.asyncio
async def test_reserve_raises_when_key_is_cleared_while_waiting() -> None:
    scheduler = KeySequentialScheduler()
    gate = asyncio.Event()

    async def _blocker() -> None:
        await gate.wait()

    async def _reserve() -> None:
        async with scheduler.reserve("s"):
            pytest.fail("turn must not arrive after clear")

    blocker = scheduler.submit("s", _blocker)
    waiter = asyncio.create_task(_reserve())
    await asyncio.sleep(0)

    scheduler.clear("s")
    with pytest.raises(TaskCancelledError):
        await waiter

    gate.set()
    await blocker


@pytest.mark.asyncio
async def test_reserve_releases_the_turn_when_block_raises() -> None:
    scheduler = KeySequentialScheduler()

    with pytest.raises(RuntimeError, match="inside"):
        async with scheduler.reserve("s"):
            raise RuntimeError("inside")

    async def _after() -> str:
        return "after"

    assert await asyncio.wait_for(scheduler.submit("s", _after), timeout=1) == "after"
