"""Periodic trigger for the delivery queue.

Runs ``EmailQueue.process_pending`` in a worker thread on a fixed interval
until the stop event is set. One worker per process; overlapping passes
from other processes are tolerated by the at-least-once design.
"""

from __future__ import annotations

import asyncio
import logging

from courier.services.email_queue import EmailQueue

logger = logging.getLogger(__name__)


async def run_queue_worker(
    queue: EmailQueue,
    interval_seconds: float,
    stop_event: asyncio.Event,
) -> None:
    """Process the queue every ``interval_seconds`` until ``stop_event`` is set."""
    logger.info("queue_worker.started", extra={"interval_s": interval_seconds})
    while not stop_event.is_set():
        # process_pending never raises, so one bad pass cannot stop the loop.
        await asyncio.to_thread(queue.process_pending)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
    logger.info("queue_worker.stopped")
