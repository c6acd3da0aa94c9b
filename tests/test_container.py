"""Tests for production service wiring."""

from courier.core.config import Settings
from courier.core.container import build_container
from courier.services.rate_limiter import ResilientRateLimiter


def test_build_container_applies_queue_settings(monkeypatch) -> None:
    monkeypatch.setenv("QUEUE_DEFAULT_MAX_RETRIES", "6")
    monkeypatch.setenv("QUEUE_BATCH_SIZE", "7")
    monkeypatch.setenv("STORAGE_DATABASE_URL", "sqlite://")

    container = build_container(Settings())

    queue = container.email_queue
    assert queue.default_max_retries == 6
    assert queue.batch_size == 7
    assert isinstance(container.rate_limiter, ResilientRateLimiter)
