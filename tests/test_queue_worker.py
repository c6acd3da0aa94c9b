"""Tests for the periodic queue worker."""

import asyncio
from unittest.mock import Mock

import pytest

from courier.services.email_queue import EmailQueue
from courier.tasks.queue_worker import run_queue_worker


@pytest.mark.asyncio
async def test_worker_processes_until_stopped() -> None:
    queue = Mock(spec=EmailQueue)
    stop_event = asyncio.Event()
    task = asyncio.create_task(run_queue_worker(queue, 0.01, stop_event))

    while queue.process_pending.call_count < 3:
        await asyncio.sleep(0.01)
    stop_event.set()
    await asyncio.wait_for(task, timeout=1)

    assert task.done()
    assert queue.process_pending.call_count >= 3


@pytest.mark.asyncio
async def test_worker_runs_one_pass_then_exits_when_stopped() -> None:
    queue = Mock(spec=EmailQueue)
    stop_event = asyncio.Event()

    async def stop_soon() -> None:
        await asyncio.sleep(0)
        stop_event.set()

    await asyncio.gather(run_queue_worker(queue, 60, stop_event), stop_soon())

    queue.process_pending.assert_called_once_with()


@pytest.mark.asyncio
async def test_worker_does_not_start_when_already_stopped() -> None:
    queue = Mock(spec=EmailQueue)
    stop_event = asyncio.Event()
    stop_event.set()

    await run_queue_worker(queue, 60, stop_event)

    queue.process_pending.assert_not_called()


@pytest.mark.asyncio
async def test_worker_drains_real_queue(email_queue, queue_store, transport, message) -> None:
    email_queue.enqueue(message)
    stop_event = asyncio.Event()
    task = asyncio.create_task(run_queue_worker(email_queue, 0.01, stop_event))

    while transport.send.call_count < 1:
        await asyncio.sleep(0.01)
    stop_event.set()
    await task

    assert email_queue.get_stats().sent == 1
