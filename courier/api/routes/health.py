from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from courier.core.container import get_email_queue
from courier.services.email_queue import EmailQueue

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and monitoring."""

    return {"status": "ok"}


@router.get("/health/queue")
async def queue_health(queue: EmailQueue = Depends(get_email_queue)) -> dict:
    """Queue depth by status.

    Counts are all zero when the queue store is unreachable.
    """

    stats = await run_in_threadpool(queue.get_stats)
    return {"status": "ok", "queue": stats.model_dump()}
