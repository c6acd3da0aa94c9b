"""Admission limiter with named configurations and degraded-mode fallback.

Each protected operation gets a ``LimiterConfig`` (name, limit, window).
``ResilientRateLimiter.check`` counts the request against the shared counter
store and, when that store is unreachable, against a process-local store
using the same fixed-window algorithm. Callers always get a decision back.

Fixed windows let up to ``2 * limit`` requests through around a window
boundary. Use a stricter limit where bursts matter.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable

from courier.adapters.rate_limit.base import AbstractCounterStore, RateLimitResult
from courier.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60

_WINDOW_PATTERN = re.compile(r"^(\d+)\s*([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


def parse_window(window: str) -> int:
    """Parse a duration string such as ``"15 m"`` or ``"1h"`` into seconds.

    Raises:
        ConfigurationError: If the string is not ``<digits><space?><s|m|h|d>``
            or describes a zero-length window.
    """
    match = _WINDOW_PATTERN.match(window.strip()) if window else None
    if not match:
        raise ConfigurationError(
            code="invalid_window",
            message=f"Invalid window duration: {window!r}",
            details={"window": str(window), "hint": "Use e.g. '30 s', '15 m', '1 h', '1 d'"},
        )
    amount, unit = match.groups()
    seconds = int(amount) * _UNIT_SECONDS[unit]
    if seconds < 1:
        raise ConfigurationError(
            code="invalid_window",
            message=f"Window duration must be positive: {window!r}",
            details={"window": window},
        )
    return seconds


def window_seconds_or_default(window: str, default: int = DEFAULT_WINDOW_SECONDS) -> int:
    """Like ``parse_window`` but falls back to ``default`` on malformed input."""
    try:
        return parse_window(window)
    except ConfigurationError as exc:
        logger.warning(
            "rate_limit.invalid_window",
            extra={"window": window, "default_s": default, "error_code": exc.code},
        )
        return default


@dataclass(frozen=True)
class LimiterConfig:
    """Configuration of one protected operation.

    Attributes:
        name: Limiter name; also namespaces the counters.
        limit: Maximum requests per window.
        window: Duration string of the window (e.g. ``"15 m"``).
        fallback_limit: Limit enforced while degraded (defaults to ``limit``).
        fallback_window: Window used while degraded (defaults to ``window``).
    """

    name: str
    limit: int
    window: str
    fallback_limit: int | None = None
    fallback_window: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("limiter name must be non-empty")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.fallback_limit is not None and self.fallback_limit < 1:
            raise ValueError("fallback_limit must be >= 1")

    def with_fallback(self, limit: int, window: str) -> LimiterConfig:
        """Copy of this config with a call-site specific fallback policy."""
        return LimiterConfig(
            name=self.name,
            limit=self.limit,
            window=self.window,
            fallback_limit=limit,
            fallback_window=window,
        )


AUTH_LIMITER = LimiterConfig(name="auth", limit=5, window="15 m")
API_LIMITER = LimiterConfig(name="api", limit=100, window="1 m")
ADMIN_LIMITER = LimiterConfig(name="admin", limit=10, window="15 m")
LETTER_GENERATION_LIMITER = LimiterConfig(name="letter-gen", limit=5, window="1 h")
SUBSCRIPTION_LIMITER = LimiterConfig(name="subscription", limit=3, window="1 h")

LIMITERS: dict[str, LimiterConfig] = {
    cfg.name: cfg
    for cfg in (
        AUTH_LIMITER,
        API_LIMITER,
        ADMIN_LIMITER,
        LETTER_GENERATION_LIMITER,
        SUBSCRIPTION_LIMITER,
    )
}


class ResilientRateLimiter:
    """Fixed-window admission limiter over a primary and a fallback store.

    Primary store failures switch the call to the fallback store; if that
    also fails the request is admitted (fail-open). ``check`` never raises.
    """

    def __init__(
        self,
        primary: AbstractCounterStore,
        fallback: AbstractCounterStore,
        *,
        default_window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._default_window_seconds = default_window_seconds
        self._clock = clock

    def check(self, config: LimiterConfig, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether to admit it.

        Args:
            config: Limiter configuration of the protected operation.
            identifier: Caller identity, usually the client address.

        Returns:
            RateLimitResult; ``allowed`` is False once the post-increment
            count exceeds the configured limit within the active window.
        """
        identifier = identifier or "unknown"
        window_seconds = window_seconds_or_default(
            config.window, self._default_window_seconds
        )
        try:
            state = self._primary.increment_and_get(
                config.name,
                identifier,
                limit=config.limit,
                window_seconds=window_seconds,
            )
            return RateLimitResult.from_window(state, now=self._clock())
        except Exception as exc:
            logger.warning(
                "rate_limit.fallback",
                extra={
                    "limiter": config.name,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

        return self._check_fallback(config, identifier)

    def _check_fallback(self, config: LimiterConfig, identifier: str) -> RateLimitResult:
        limit = config.fallback_limit or config.limit
        window_seconds = window_seconds_or_default(
            config.fallback_window or config.window, self._default_window_seconds
        )
        try:
            state = self._fallback.increment_and_get(
                config.name,
                identifier,
                limit=limit,
                window_seconds=window_seconds,
            )
            return RateLimitResult.from_window(state, now=self._clock())
        except Exception as exc:
            logger.error(
                "rate_limit.fail_open",
                extra={
                    "limiter": config.name,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

        now = self._clock()
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=limit,
            reset_at=int((now + window_seconds) * 1000),
            retry_after_seconds=None,
        )
