"""Tests for the Redis counter store against fakeredis."""

from unittest.mock import Mock

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from courier.adapters.rate_limit.redis_store import RedisCounterStore
from courier.core.errors import LimiterUnavailable


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(fake_redis) -> RedisCounterStore:
    return RedisCounterStore(fake_redis, clock=Mock(return_value=1000.0))


def test_increments_and_reports_limit(store: RedisCounterStore) -> None:
    states = [
        store.increment_and_get("auth", "203.0.113.7", limit=5, window_seconds=900)
        for _ in range(3)
    ]

    assert [s.count for s in states] == [1, 2, 3]
    assert all(s.limit == 5 for s in states)


def test_sets_expiry_on_first_hit(store: RedisCounterStore, fake_redis) -> None:
    state = store.increment_and_get("auth", "203.0.113.7", limit=5, window_seconds=900)

    ttl_ms = fake_redis.pttl("ratelimit:auth:203.0.113.7")
    assert 0 < ttl_ms <= 900_000
    assert 1000.0 < state.reset_at <= 1900.0


def test_keys_namespaced_by_limiter(store: RedisCounterStore, fake_redis) -> None:
    store.increment_and_get("auth", "1.2.3.4", limit=5, window_seconds=60)
    store.increment_and_get("auth", "1.2.3.4", limit=5, window_seconds=60)
    state = store.increment_and_get("admin", "1.2.3.4", limit=10, window_seconds=60)

    assert state.count == 1
    assert fake_redis.get("ratelimit:auth:1.2.3.4") == "2"


def test_expired_window_starts_over(store: RedisCounterStore, fake_redis) -> None:
    store.increment_and_get("api", "k", limit=1, window_seconds=60)
    fake_redis.delete("ratelimit:api:k")

    assert store.increment_and_get("api", "k", limit=1, window_seconds=60).count == 1


def test_key_without_ttl_is_rearmed(store: RedisCounterStore, fake_redis) -> None:
    fake_redis.set("ratelimit:api:k", 4)

    state = store.increment_and_get("api", "k", limit=10, window_seconds=60)

    assert state.count == 5
    assert fake_redis.pttl("ratelimit:api:k") > 0


@pytest.mark.parametrize("error", [RedisConnectionError("refused"), RedisTimeoutError("timed out")])
def test_store_errors_raise_limiter_unavailable(error: Exception) -> None:
    client = Mock()
    client.eval.side_effect = error
    store = RedisCounterStore(client)

    with pytest.raises(LimiterUnavailable) as exc_info:
        store.increment_and_get("auth", "k", limit=5, window_seconds=60)

    assert exc_info.value.code == "counter_store_unavailable"
    assert exc_info.value.__cause__ is error
