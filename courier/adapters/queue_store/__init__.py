"""Queue store adapters for the delivery queue."""

from courier.adapters.queue_store.base import AbstractQueueStore
from courier.adapters.queue_store.in_memory import InMemoryQueueStore
from courier.adapters.queue_store.sqlalchemy_store import (
    EmailQueueRow,
    SQLAlchemyQueueStore,
    build_engine,
    init_db,
)

__all__ = [
    "AbstractQueueStore",
    "EmailQueueRow",
    "InMemoryQueueStore",
    "SQLAlchemyQueueStore",
    "build_engine",
    "init_db",
]
