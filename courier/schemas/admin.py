"""Request/response schemas of the admin email queue endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from courier.schemas.email import ProcessSummary, QueueItem, QueueStats


class QueueActionRequest(BaseModel):
    """Body of ``POST /v1/admin/email-queue``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    action: str | None = Field(
        None,
        description="One of retry-failed, retry-single, process-queue",
    )
    email_id: str | None = Field(
        None,
        description="Queue item id (required for retry-single)",
    )


class QueueItemView(BaseModel):
    """Queue item as shown on the admin dashboard (bodies omitted).

    Serialized in camelCase like the rest of the admin payload.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    recipients: list[str]
    subject: str
    status: str
    attempts: int
    max_retries: int
    next_retry_at: datetime
    last_error: str | None = None
    created_at: datetime
    sent_at: datetime | None = None

    @classmethod
    def from_item(cls, item: QueueItem) -> QueueItemView:
        return cls(
            id=item.id,
            recipients=item.recipients,
            subject=item.subject,
            status=item.status.value,
            attempts=item.attempts,
            max_retries=item.max_retries,
            next_retry_at=item.next_retry_at,
            last_error=item.last_error,
            created_at=item.created_at,
            sent_at=item.sent_at,
        )


class QueueOverviewResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    stats: QueueStats
    recent_items: list[QueueItemView] = Field(default_factory=list)
    timestamp: datetime


class QueueActionResponse(BaseModel):
    success: bool = True
    message: str
    affected: int | None = None
    summary: ProcessSummary | None = None
