"""Process-wide service wiring.

The delivery queue and the admission limiter are constructed once at
startup and stored on ``app.state``; routes reach them through the
dependency helpers below instead of module-level singletons.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request

from courier.adapters.mail.factory import create_mail_transport
from courier.adapters.queue_store.sqlalchemy_store import (
    SQLAlchemyQueueStore,
    build_engine,
    init_db,
)
from courier.adapters.rate_limit.in_memory import InMemoryCounterStore
from courier.adapters.rate_limit.redis_store import RedisCounterStore, create_redis_client
from courier.core.config import Settings, settings
from courier.services.email_queue import EmailQueue
from courier.services.rate_limiter import ResilientRateLimiter

logger = logging.getLogger(__name__)


@dataclass
class Container:
    email_queue: EmailQueue
    rate_limiter: ResilientRateLimiter


def build_container(cfg: Settings | None = None) -> Container:
    """Construct production services from configuration.

    Raises:
        ConfigurationError: If the mail transport is misconfigured.
    """
    cfg = cfg or settings

    engine = build_engine(cfg.storage.database_url)
    init_db(engine)
    email_queue = EmailQueue(
        SQLAlchemyQueueStore.from_engine(engine),
        create_mail_transport(cfg.mail),
        batch_size=cfg.queue.batch_size,
        default_max_retries=cfg.queue.default_max_retries,
        base_delay=timedelta(seconds=cfg.queue.base_delay_seconds),
    )

    redis_client = create_redis_client(
        cfg.storage.redis_url,
        socket_timeout=cfg.storage.redis_socket_timeout_seconds,
    )
    rate_limiter = ResilientRateLimiter(
        RedisCounterStore(redis_client),
        InMemoryCounterStore(),
        default_window_seconds=cfg.rate_limit.fallback_default_window_seconds,
    )

    logger.info(
        "container.built",
        extra={"batch_size": cfg.queue.batch_size, "mail_provider": cfg.mail.provider},
    )
    return Container(email_queue=email_queue, rate_limiter=rate_limiter)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_email_queue(request: Request) -> EmailQueue:
    return get_container(request).email_queue


def get_rate_limiter(request: Request) -> ResilientRateLimiter:
    return get_container(request).rate_limiter
