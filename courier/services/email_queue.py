"""Durable, retrying delivery queue for outbound transactional email.

Items move through a small state machine:

- ``pending -> sent`` when the transport accepts the message
- ``pending -> pending`` when an attempt fails and retries remain
  (the next attempt waits ``base_delay * 2^(attempts-1)``)
- ``pending -> failed`` once ``attempts`` reaches ``max_retries``

Nothing leaves ``sent`` or ``failed`` except the administrative requeue.
Delivery is at-least-once: processing passes do not lease items, so two
overlapping passes may dispatch the same item twice.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from courier.adapters.mail.base import AbstractMailTransport
from courier.adapters.queue_store.base import AbstractQueueStore
from courier.core.errors import DispatchError, PersistenceError, ValidationAppError
from courier.schemas.email import (
    EmailMessage,
    ProcessSummary,
    QueueItem,
    QueueStats,
    QueueStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = timedelta(minutes=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_backoff(attempt: int, base: timedelta = DEFAULT_BASE_DELAY) -> timedelta:
    """Delay before the retry that follows failed attempt number ``attempt``.

    5m, 10m, 20m, 40m, ... for the default base.
    """
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    return base * (2 ** (attempt - 1))


class EmailQueue:
    """Delivery queue over a queue store and a mail transport.

    Attributes:
        batch_size: Maximum number of due items handled per processing pass.
        default_max_retries: Attempts allowed for items enqueued without an
            explicit ``max_retries``.
        base_delay: Backoff base for retry scheduling.
    """

    def __init__(
        self,
        store: AbstractQueueStore,
        transport: AbstractMailTransport,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        default_max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: timedelta = DEFAULT_BASE_DELAY,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if default_max_retries < 1:
            raise ValueError("default_max_retries must be >= 1")
        self._store = store
        self._transport = transport
        self.batch_size = batch_size
        self.default_max_retries = default_max_retries
        self.base_delay = base_delay
        self._clock = clock

    def enqueue(self, message: EmailMessage, max_retries: int | None = None) -> str:
        """Persist a message as a new pending item.

        Args:
            message: Message to deliver.
            max_retries: Attempts allowed before the item is marked failed;
                defaults to ``default_max_retries``.

        Returns:
            Id of the new queue item.

        Raises:
            ValidationAppError: If max_retries is below 1.
            PersistenceError: If the store rejects the write. The message is
                not queued; the caller decides whether to alert or drop it.
        """
        if max_retries is None:
            max_retries = self.default_max_retries
        if max_retries < 1:
            raise ValidationAppError(
                code="invalid_max_retries",
                message="max_retries must be >= 1",
            )

        now = self._clock()
        item = QueueItem(
            recipients=message.to,
            subject=message.subject,
            html_body=message.html,
            text_body=message.text,
            status=QueueStatus.PENDING,
            attempts=0,
            max_retries=max_retries,
            next_retry_at=now,
            created_at=now,
        )
        try:
            item_id = self._store.insert(item)
        except PersistenceError as exc:
            logger.error(
                "email_queue.enqueue_failed",
                extra={"error_code": exc.code, "recipient_count": len(message.to)},
            )
            raise

        logger.info(
            "email_queue.enqueued",
            extra={
                "item_id": item_id,
                "recipient_count": len(message.to),
                "max_retries": max_retries,
            },
        )
        return item_id

    def process_pending(self) -> None:
        """Dispatch every due item of one batch. Never raises."""
        self.process_pending_summary()

    def process_pending_summary(self) -> ProcessSummary:
        """Run one processing pass and report what happened to each item."""
        summary = ProcessSummary()
        try:
            items = self._store.select_due(self._clock(), self.batch_size)
        except Exception as exc:
            logger.error(
                "email_queue.select_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return summary

        summary.selected = len(items)
        if not items:
            logger.debug("email_queue.nothing_due")
            return summary

        logger.info("email_queue.processing", extra={"batch": len(items)})
        for item in items:
            try:
                outcome = self._process_item(item)
            except Exception as exc:
                # Bookkeeping write failed; the item keeps its prior state and
                # is picked up again by a later pass.
                summary.errors += 1
                logger.error(
                    "email_queue.bookkeeping_failed",
                    extra={
                        "item_id": item.id,
                        "error_type": type(exc).__name__,
                        "error_msg": str(exc),
                    },
                )
                continue
            setattr(summary, outcome, getattr(summary, outcome) + 1)
        return summary

    def _process_item(self, item: QueueItem) -> str:
        try:
            result = self._transport.send(item.to_outbound())
        except Exception as exc:
            error = DispatchError(code="transport_exception", message=str(exc) or type(exc).__name__)
        else:
            if result.success:
                self._store.update(
                    item.id,
                    status=QueueStatus.SENT,
                    sent_at=self._clock(),
                    last_error=None,
                )
                logger.info(
                    "email_queue.sent",
                    extra={"item_id": item.id, "message_id": result.message_id},
                )
                return "sent"
            error = DispatchError(code="transport_rejected", message=result.error or "")

        return self._handle_retry(item, error)

    def _handle_retry(self, item: QueueItem, error: DispatchError) -> str:
        attempts = item.attempts + 1

        if attempts >= item.max_retries:
            last_error = error.message or "Max retries exceeded"
            self._store.update(
                item.id,
                status=QueueStatus.FAILED,
                attempts=attempts,
                last_error=last_error,
            )
            logger.error(
                "email_queue.failed",
                extra={"item_id": item.id, "attempts": attempts, "error_msg": last_error},
            )
            return "failed"

        next_retry_at = self._clock() + compute_backoff(attempts, self.base_delay)
        # Never move an item's due time backwards.
        next_retry_at = max(next_retry_at, item.next_retry_at)
        self._store.update(
            item.id,
            attempts=attempts,
            next_retry_at=next_retry_at,
            last_error=error.message or "Retry scheduled",
        )
        logger.warning(
            "email_queue.retry_scheduled",
            extra={
                "item_id": item.id,
                "attempt": attempts,
                "next_retry_at": next_retry_at.isoformat(),
                "error_code": error.code,
            },
        )
        return "retried"

    def get_stats(self) -> QueueStats:
        """Count items by status. Returns all zeros if the store fails."""
        try:
            statuses = self._store.select_statuses()
        except Exception as exc:
            logger.error(
                "email_queue.stats_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return QueueStats()

        stats = QueueStats(total=len(statuses))
        for status in statuses:
            if status == QueueStatus.PENDING:
                stats.pending += 1
            elif status == QueueStatus.SENT:
                stats.sent += 1
            elif status == QueueStatus.FAILED:
                stats.failed += 1
        return stats

    def recent_items(self, limit: int = 20) -> list[QueueItem]:
        """Most recently created items for the admin view (empty on failure)."""
        try:
            return self._store.list_recent(limit)
        except Exception as exc:
            logger.error(
                "email_queue.recent_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return []

    def requeue(self, item_id: str) -> bool:
        """Operator override: reset one sent or failed item to pending.

        Returns:
            True if the item was reset.

        Raises:
            PersistenceError: If the store rejects the write.
        """
        count = self._store.requeue(
            self._clock(),
            item_id=item_id,
            statuses=(QueueStatus.FAILED, QueueStatus.SENT),
        )
        logger.info("email_queue.requeued", extra={"item_id": item_id, "reset": count})
        return count > 0

    def requeue_failed(self) -> int:
        """Operator override: reset every failed item to pending.

        Raises:
            PersistenceError: If the store rejects the write.
        """
        count = self._store.requeue(self._clock(), statuses=(QueueStatus.FAILED,))
        logger.info("email_queue.requeued_failed", extra={"reset": count})
        return count
