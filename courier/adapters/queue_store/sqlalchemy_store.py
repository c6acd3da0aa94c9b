"""SQLAlchemy-backed queue store (the durable production backend)."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, create_engine, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from courier.adapters.queue_store.base import AbstractQueueStore
from courier.core.errors import PersistenceError
from courier.schemas.email import QueueItem, QueueStatus

logger = logging.getLogger(__name__)

Base = declarative_base()


class EmailQueueRow(Base):
    """One queued outbound email."""

    __tablename__ = "email_queue"

    id = Column(String(36), primary_key=True)
    recipients = Column(JSON, nullable=False)
    subject = Column(String(998), nullable=False)
    html_body = Column(Text, nullable=True)
    text_body = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default=QueueStatus.PENDING.value, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=False, default=3)
    next_retry_at = Column(DateTime(timezone=True), nullable=False, index=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)


def build_engine(database_url: str) -> Engine:
    """Create the queue database engine."""
    return create_engine(database_url, pool_pre_ping=True, pool_recycle=3600)


def init_db(engine: Engine) -> None:
    """Create the queue table if it does not exist."""
    Base.metadata.create_all(bind=engine)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; every stored timestamp is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_item(row: EmailQueueRow) -> QueueItem:
    return QueueItem(
        id=row.id,
        recipients=list(row.recipients),
        subject=row.subject,
        html_body=row.html_body,
        text_body=row.text_body,
        status=QueueStatus(row.status),
        attempts=row.attempts,
        max_retries=row.max_retries,
        next_retry_at=_as_utc(row.next_retry_at),
        last_error=row.last_error,
        created_at=_as_utc(row.created_at),
        sent_at=_as_utc(row.sent_at),
    )


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    columns = dict(fields)
    if isinstance(columns.get("status"), QueueStatus):
        columns["status"] = columns["status"].value
    if "recipients" in columns:
        columns["recipients"] = list(columns["recipients"])
    return columns


class SQLAlchemyQueueStore(AbstractQueueStore):
    """Queue store on a relational database through SQLAlchemy.

    Every ``SQLAlchemyError`` is converted into ``PersistenceError``.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: Engine) -> SQLAlchemyQueueStore:
        return cls(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False))

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(
                code="queue_store_error",
                message=f"Queue store {operation} failed: {type(exc).__name__}",
                details={"operation": operation},
            ) from exc
        finally:
            session.close()

    def insert(self, item: QueueItem) -> str:
        item_id = item.id or str(uuid.uuid4())
        columns = _to_columns(item.model_dump(exclude={"id"}))
        with self._session("insert") as session:
            session.add(EmailQueueRow(id=item_id, **columns))
        return item_id

    def update(self, item_id: str, **fields: Any) -> None:
        with self._session("update") as session:
            result = session.execute(
                update(EmailQueueRow)
                .where(EmailQueueRow.id == item_id)
                .values(**_to_columns(fields))
            )
            matched = result.rowcount
        if matched == 0:
            raise PersistenceError(
                code="item_not_found",
                message=f"Queue item {item_id} does not exist",
                details={"item_id": item_id, "operation": "update"},
            )

    def get(self, item_id: str) -> QueueItem | None:
        with self._session("get") as session:
            row = session.get(EmailQueueRow, item_id)
            return _to_item(row) if row else None

    def select_due(self, now: datetime, limit: int) -> list[QueueItem]:
        stmt = (
            select(EmailQueueRow)
            .where(EmailQueueRow.status == QueueStatus.PENDING.value)
            .where(EmailQueueRow.next_retry_at <= now)
            .order_by(EmailQueueRow.created_at.asc())
            .limit(limit)
        )
        with self._session("select_due") as session:
            return [_to_item(row) for row in session.scalars(stmt)]

    def select_statuses(self) -> list[QueueStatus]:
        with self._session("select_statuses") as session:
            return [QueueStatus(status) for status in session.scalars(select(EmailQueueRow.status))]

    def list_recent(self, limit: int) -> list[QueueItem]:
        stmt = select(EmailQueueRow).order_by(EmailQueueRow.created_at.desc()).limit(limit)
        with self._session("list_recent") as session:
            return [_to_item(row) for row in session.scalars(stmt)]

    def requeue(
        self,
        now: datetime,
        *,
        item_id: str | None = None,
        statuses: tuple[QueueStatus, ...] = (QueueStatus.FAILED,),
    ) -> int:
        stmt = (
            update(EmailQueueRow)
            .where(EmailQueueRow.status.in_([status.value for status in statuses]))
            .values(
                status=QueueStatus.PENDING.value,
                attempts=0,
                next_retry_at=now,
                last_error=None,
            )
        )
        if item_id is not None:
            stmt = stmt.where(EmailQueueRow.id == item_id)
        with self._session("requeue") as session:
            result = session.execute(stmt)
            return result.rowcount
