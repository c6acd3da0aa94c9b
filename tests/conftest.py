"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``courier.core.config``
so the global settings object is built from test values.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("APP_ADMIN_KEY_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key,other-admin-key")
os.environ.setdefault("MAIL_API_KEY", "re_test_key")
os.environ.setdefault("STORAGE_DATABASE_URL", "sqlite://")
os.environ.setdefault("QUEUE_WORKER_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from courier.adapters.mail.base import AbstractMailTransport
from courier.adapters.queue_store.in_memory import InMemoryQueueStore
from courier.adapters.rate_limit.in_memory import InMemoryCounterStore
from courier.schemas.email import DispatchResult, EmailMessage
from courier.services.email_queue import EmailQueue
from courier.services.rate_limiter import ResilientRateLimiter


class FrozenClock:
    """Datetime clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def epoch_clock() -> Mock:
    """Float UNIX-time clock for the limiter and counter stores."""
    return Mock(return_value=1_000_000.0)


@pytest.fixture
def transport() -> Mock:
    mock = Mock(spec=AbstractMailTransport)
    mock.send.return_value = DispatchResult(success=True, message_id="msg-1")
    return mock


@pytest.fixture
def queue_store() -> InMemoryQueueStore:
    return InMemoryQueueStore()


@pytest.fixture
def email_queue(queue_store: InMemoryQueueStore, transport: Mock, clock: FrozenClock) -> EmailQueue:
    return EmailQueue(queue_store, transport, clock=clock)


@pytest.fixture
def rate_limiter(epoch_clock: Mock) -> ResilientRateLimiter:
    return ResilientRateLimiter(
        InMemoryCounterStore(clock=epoch_clock),
        InMemoryCounterStore(clock=epoch_clock),
        clock=epoch_clock,
    )


@pytest.fixture
def message() -> EmailMessage:
    return EmailMessage(
        to=["jane@example.com", "ops@example.com"],
        subject="Your letter was approved",
        html="<p>Approved</p>",
        text="Approved",
    )
