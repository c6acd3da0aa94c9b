"""Redis-backed fixed-window counter store (shared across instances)."""

from __future__ import annotations

import logging
import time
from typing import Callable

import redis
from redis.exceptions import RedisError

from courier.adapters.rate_limit.base import AbstractCounterStore, WindowState
from courier.core.errors import LimiterUnavailable

logger = logging.getLogger(__name__)

# Increment the counter and start the window expiry on the first hit of a
# window. A key that lost its TTL is re-armed so it cannot count forever.
# Returns {count, remaining_ms}.
_INCREMENT_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
local ttl = redis.call('PTTL', KEYS[1])
if count == 1 or ttl < 0 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
    ttl = tonumber(ARGV[1])
end
return {count, ttl}
"""

KEY_PREFIX = "ratelimit"


def create_redis_client(url: str, *, socket_timeout: float) -> redis.Redis:
    """Build a Redis client without connecting (connections are lazy)."""
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )


class RedisCounterStore(AbstractCounterStore):
    """Counter store using one expiring Redis key per window.

    The whole increment runs as a single Lua script, so concurrent callers on
    any instance observe a consistent post-increment count.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._clock = clock

    @staticmethod
    def build_key(limiter_name: str, identifier: str) -> str:
        return f"{KEY_PREFIX}:{limiter_name}:{identifier}"

    def increment_and_get(
        self,
        limiter_name: str,
        identifier: str,
        *,
        limit: int,
        window_seconds: int,
    ) -> WindowState:
        key = self.build_key(limiter_name, identifier)
        try:
            count, ttl_ms = self._client.eval(
                _INCREMENT_SCRIPT, 1, key, int(window_seconds * 1000)
            )
        except RedisError as exc:
            raise LimiterUnavailable(
                code="counter_store_unavailable",
                message=f"Counter store call failed: {type(exc).__name__}",
                details={"limiter": limiter_name},
            ) from exc

        now = self._clock()
        return WindowState(
            count=int(count),
            limit=limit,
            reset_at=now + int(ttl_ms) / 1000,
        )
