"""Queue store interface.

The delivery queue only talks to the durable store through this interface,
so the SQLAlchemy backend can be replaced by an in-memory fake in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from courier.schemas.email import QueueItem, QueueStatus


class AbstractQueueStore(ABC):
    """Row-oriented persistence for queue items.

    Every method raises ``PersistenceError`` when the store rejects the
    operation.
    """

    @abstractmethod
    def insert(self, item: QueueItem) -> str:
        """Persist a new item and return its assigned id."""
        raise NotImplementedError

    @abstractmethod
    def update(self, item_id: str, **fields: Any) -> None:
        """Update the given columns of one item, keyed by id.

        Raises:
            PersistenceError: If no such item exists or the write fails.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, item_id: str) -> QueueItem | None:
        raise NotImplementedError

    @abstractmethod
    def select_due(self, now: datetime, limit: int) -> list[QueueItem]:
        """Pending items with ``next_retry_at <= now``, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def select_statuses(self) -> list[QueueStatus]:
        """Status of every row in the store."""
        raise NotImplementedError

    @abstractmethod
    def list_recent(self, limit: int) -> list[QueueItem]:
        """Most recently created items, newest first."""
        raise NotImplementedError

    @abstractmethod
    def requeue(
        self,
        now: datetime,
        *,
        item_id: str | None = None,
        statuses: tuple[QueueStatus, ...] = (QueueStatus.FAILED,),
    ) -> int:
        """Reset matching items to a fresh pending state.

        Args:
            now: New ``next_retry_at`` of the reset items.
            item_id: Restrict the reset to one item.
            statuses: Only items currently in one of these states are reset.

        Returns:
            Number of items reset.
        """
        raise NotImplementedError
