"""Queue item, message and statistics schemas for the delivery queue."""

from __future__ import annotations

from datetime import datetime
from email.utils import formataddr, getaddresses
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QueueStatus(str, Enum):
    """Lifecycle state of a queued message."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class EmailMessage(BaseModel):
    """Outbound message as handed to ``EmailQueue.enqueue``.

    ``to`` accepts a list of addresses, or a single header-style string that
    is split on the commas between addresses (quoted display names such as
    ``"Doe, Jane" <jane@example.com>`` stay whole). List entries are kept
    as given.
    """

    to: list[str] = Field(..., description="One or more recipient addresses")
    subject: str = Field(..., min_length=1)
    html: str | None = None
    text: str | None = None

    @field_validator("to", mode="before")
    @classmethod
    def _normalize_recipients(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            value = [formataddr(pair) for pair in getaddresses([value]) if pair[1]]
        recipients = [addr.strip() for addr in value if addr and addr.strip()]
        if not recipients:
            raise ValueError("at least one recipient is required")
        return recipients

    @model_validator(mode="after")
    def _require_body(self) -> EmailMessage:
        if not self.html and not self.text:
            raise ValueError("either html or text body is required")
        return self


class QueueItem(BaseModel):
    """One row of the delivery queue."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    recipients: list[str]
    subject: str
    html_body: str | None = None
    text_body: str | None = None
    status: QueueStatus = QueueStatus.PENDING
    attempts: int = Field(0, ge=0)
    max_retries: int = Field(3, ge=1)
    next_retry_at: datetime
    last_error: str | None = None
    created_at: datetime
    sent_at: datetime | None = None

    def to_outbound(self) -> OutboundEmail:
        return OutboundEmail(
            recipients=list(self.recipients),
            subject=self.subject,
            html_body=self.html_body,
            text_body=self.text_body,
        )


class OutboundEmail(BaseModel):
    """Payload handed to the mail transport."""

    recipients: list[str]
    subject: str
    html_body: str | None = None
    text_body: str | None = None


class DispatchResult(BaseModel):
    """Outcome of one transport attempt."""

    success: bool
    error: str | None = None
    message_id: str | None = None


class QueueStats(BaseModel):
    """Point-in-time count of queue rows by status."""

    pending: int = 0
    sent: int = 0
    failed: int = 0
    total: int = 0


class ProcessSummary(BaseModel):
    """Outcome counts of one processing pass."""

    selected: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0
    errors: int = 0
