"""Rate limiting dependency for FastAPI routes.

This module wires the admission limiter into the HTTP layer.

Design goals:
- Minimal coupling: routes declare ``Depends(rate_limit(SOME_LIMITER))``.
- Swap-friendly: the limiter instance comes from the application container,
  so tests can inject in-memory counter stores.
- Safe defaults: limiter failures never surface as errors (see
  ``ResilientRateLimiter``).

Identifier strategy: client network address, taken from proxy headers first.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable

from fastapi import Request
from fastapi.concurrency import run_in_threadpool

from courier.core.config import settings
from courier.core.container import get_rate_limiter
from courier.core.errors import RateLimitExceeded
from courier.services.rate_limiter import LimiterConfig

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_client_identifier(request: Request) -> str:
    """Best-effort client address of the request.

    Checks ``X-Forwarded-For`` (first hop), ``X-Real-IP`` and
    ``CF-Connecting-IP`` in that order, then the socket peer address.

    Returns:
        str: Client address, or ``"unknown"`` when none is available.
    """

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def _hash_identifier(identifier: str) -> str:
    """Hash the identifier for logging without exposing client addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def rate_limit(config: LimiterConfig) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing ``config`` per client address.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limit(AUTH_LIMITER))])

    Raises (from the dependency):
        RateLimitExceeded: Rendered as HTTP 429 by the exception handlers.
    """

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.rate_limit.enabled:
            return

        limiter = get_rate_limiter(request)
        identifier = get_client_identifier(request)
        result = await run_in_threadpool(limiter.check, config, identifier)

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "limiter": config.name,
                    "key_hash": _hash_identifier(identifier),
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "limiter": config.name,
                "key_hash": _hash_identifier(identifier),
                "limit": result.limit,
                "remaining": result.remaining,
                "retry_after_s": result.retry_after_seconds,
            },
        )
        raise RateLimitExceeded(result, limiter=config.name)

    return enforce_rate_limit
