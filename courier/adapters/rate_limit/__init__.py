"""Counter store adapters for the admission limiter.

The shared Redis store is the primary backend; the in-memory store is the
process-local fallback used when Redis cannot be reached.
"""

from courier.adapters.rate_limit.base import (
    AbstractCounterStore,
    RateLimitResult,
    WindowState,
)
from courier.adapters.rate_limit.in_memory import InMemoryCounterStore
from courier.adapters.rate_limit.redis_store import RedisCounterStore, create_redis_client

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RateLimitResult",
    "RedisCounterStore",
    "WindowState",
    "create_redis_client",
]
