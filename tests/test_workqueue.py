"""Tests for the work queue."""

import asyncio

import pytest

from marketplace_operator.exceptions import WorkQueueShutdown
from marketplace_operator.workqueue import WorkQueue


async def test_add_coalesces() -> None:
    """Test a key queued twice is handed out once."""
    queue: WorkQueue[str] = WorkQueue()
    queue.add("a")
    queue.add("b")
    queue.add("a")
    assert len(queue) == 2
    assert await queue.get() == "a"
    assert await queue.get() == "b"
    assert len(queue) == 0


async def test_add_while_processing() -> None:
    """Test a key added while in flight is requeued after done."""
    queue: WorkQueue[str] = WorkQueue()
    queue.add("a")
    key = await queue.get()
    queue.add("a")
    assert len(queue) == 0
    assert queue.processing == 1
    queue.done(key)
    assert len(queue) == 1
    assert await queue.get() == "a"
    queue.done("a")
    assert len(queue) == 0
    assert queue.processing == 0


async def test_get_waits() -> None:
    """Test get blocks until a key is added."""
    queue: WorkQueue[str] = WorkQueue()
    task = asyncio.create_task(queue.get())
    await asyncio.sleep(0)
    assert not task.done()
    queue.add("a")
    assert await asyncio.wait_for(task, 1) == "a"


async def test_rate_limited_backoff() -> None:
    """Test the requeue delay doubles with each failure."""
    queue: WorkQueue[str] = WorkQueue(base_delay=0.01, max_delay=0.02)
    queue.add_rate_limited("a")
    assert queue.num_requeues("a") == 1
    assert len(queue) == 0
    assert await asyncio.wait_for(queue.get(), 1) == "a"
    queue.done("a")

    queue.add_rate_limited("a")
    queue.add_rate_limited("a")
    assert queue.num_requeues("a") == 3
    queue.forget("a")
    assert queue.num_requeues("a") == 0
    queue.shutdown()


async def test_add_after() -> None:
    """Test delayed adds."""
    queue: WorkQueue[str] = WorkQueue()
    queue.add_after("a", 0)
    assert len(queue) == 1
    queue.add_after("b", 0.01)
    assert len(queue) == 1
    await asyncio.sleep(0.05)
    assert len(queue) == 2


async def test_shutdown() -> None:
    """Test waiting workers are released on shutdown."""
    queue: WorkQueue[str] = WorkQueue()
    task = asyncio.create_task(queue.get())
    await asyncio.sleep(0)
    queue.add_after("b", 0.01)
    queue.shutdown()
    with pytest.raises(WorkQueueShutdown):
        await asyncio.wait_for(task, 1)
    queue.add("a")
    await asyncio.sleep(0.02)
    assert len(queue) == 0
    assert queue.shutting_down
