from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from courier.core.auth import verify_admin_key
from courier.core.container import get_email_queue
from courier.core.errors import ValidationAppError
from courier.core.rate_limit import rate_limit
from courier.schemas.admin import (
    QueueActionRequest,
    QueueActionResponse,
    QueueItemView,
    QueueOverviewResponse,
)
from courier.services.email_queue import EmailQueue
from courier.services.rate_limiter import ADMIN_LIMITER

router = APIRouter(
    prefix="/admin/email-queue",
    tags=["Email queue"],
    dependencies=[Depends(verify_admin_key), Depends(rate_limit(ADMIN_LIMITER))],
)

RECENT_ITEMS_LIMIT = 20


@router.get("", response_model=QueueOverviewResponse, response_model_by_alias=True)
async def queue_overview(
    queue: EmailQueue = Depends(get_email_queue),
) -> QueueOverviewResponse:
    """Queue statistics and the most recently created items.

    Both reads are best-effort: a store outage yields zero counts and an
    empty item list rather than an error.
    """
    stats = await run_in_threadpool(queue.get_stats)
    recent = await run_in_threadpool(queue.recent_items, RECENT_ITEMS_LIMIT)
    return QueueOverviewResponse(
        stats=stats,
        recent_items=[QueueItemView.from_item(item) for item in recent],
        timestamp=datetime.now(timezone.utc),
    )


@router.post("", response_model=QueueActionResponse, response_model_exclude_none=True)
async def queue_action(
    body: QueueActionRequest,
    queue: EmailQueue = Depends(get_email_queue),
) -> QueueActionResponse:
    """Run an operator action against the queue.

    Actions:
        retry-failed: reset every failed item to pending.
        retry-single: reset one sent or failed item (``emailId``) to pending.
        process-queue: run one processing pass immediately.

    Raises:
        ValidationAppError: 400 for a missing or unknown action.
        HTTPException: 404 when retry-single matches no resettable item.
        PersistenceError: 503 when the store rejects a requeue.
    """
    if not body.action:
        raise ValidationAppError(
            code="missing_action",
            message="Missing required field: action",
        )

    if body.action == "retry-failed":
        count = await run_in_threadpool(queue.requeue_failed)
        return QueueActionResponse(
            message="All failed emails have been queued for retry",
            affected=count,
        )

    if body.action == "retry-single" and body.email_id:
        reset = await run_in_threadpool(queue.requeue, body.email_id)
        if not reset:
            raise HTTPException(
                status_code=404,
                detail="Queue item not found or not in a sent/failed state",
            )
        return QueueActionResponse(message="Email has been queued for retry", affected=1)

    if body.action == "process-queue":
        summary = await run_in_threadpool(queue.process_pending_summary)
        return QueueActionResponse(
            message="Email queue processing completed",
            summary=summary,
        )

    raise ValidationAppError(code="invalid_action", message="Invalid action")
