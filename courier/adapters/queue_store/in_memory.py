"""In-memory queue store.

Used by tests and local development. Thread-safe, per-process only, and
lost on restart, so it is never the production backend.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Any

from courier.adapters.queue_store.base import AbstractQueueStore
from courier.core.errors import PersistenceError
from courier.schemas.email import QueueItem, QueueStatus


class InMemoryQueueStore(AbstractQueueStore):
    """Dict-backed queue store keyed by item id."""

    def __init__(self) -> None:
        self._rows: dict[str, QueueItem] = {}
        self._lock = threading.RLock()

    def insert(self, item: QueueItem) -> str:
        item_id = item.id or str(uuid.uuid4())
        with self._lock:
            if item_id in self._rows:
                raise PersistenceError(
                    code="duplicate_item",
                    message=f"Queue item {item_id} already exists",
                    details={"item_id": item_id, "operation": "insert"},
                )
            self._rows[item_id] = item.model_copy(update={"id": item_id}, deep=True)
        return item_id

    def update(self, item_id: str, **fields: Any) -> None:
        with self._lock:
            row = self._rows.get(item_id)
            if row is None:
                raise PersistenceError(
                    code="item_not_found",
                    message=f"Queue item {item_id} does not exist",
                    details={"item_id": item_id, "operation": "update"},
                )
            self._rows[item_id] = row.model_copy(update=fields)

    def get(self, item_id: str) -> QueueItem | None:
        with self._lock:
            row = self._rows.get(item_id)
            return row.model_copy(deep=True) if row else None

    def select_due(self, now: datetime, limit: int) -> list[QueueItem]:
        with self._lock:
            due = [
                row
                for row in self._rows.values()
                if row.status == QueueStatus.PENDING and row.next_retry_at <= now
            ]
            due.sort(key=lambda row: row.created_at)
            return [row.model_copy(deep=True) for row in due[:limit]]

    def select_statuses(self) -> list[QueueStatus]:
        with self._lock:
            return [row.status for row in self._rows.values()]

    def list_recent(self, limit: int) -> list[QueueItem]:
        with self._lock:
            rows = sorted(self._rows.values(), key=lambda row: row.created_at, reverse=True)
            return [row.model_copy(deep=True) for row in rows[:limit]]

    def requeue(
        self,
        now: datetime,
        *,
        item_id: str | None = None,
        statuses: tuple[QueueStatus, ...] = (QueueStatus.FAILED,),
    ) -> int:
        reset = {
            "status": QueueStatus.PENDING,
            "attempts": 0,
            "next_retry_at": now,
            "last_error": None,
        }
        count = 0
        with self._lock:
            for key, row in list(self._rows.items()):
                if item_id is not None and key != item_id:
                    continue
                if row.status not in statuses:
                    continue
                self._rows[key] = row.model_copy(update=reset)
                count += 1
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
