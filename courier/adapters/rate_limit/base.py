"""Counter store interfaces.

The admission limiter depends on this abstraction (not a concrete backend)
so the shared Redis store and the process-local fallback are interchangeable,
and tests can substitute either one.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowState:
    """Counter state right after an increment.

    Attributes:
        count: Requests observed in the current window, including this one.
        limit: Maximum allowed count in the window.
        reset_at: UNIX epoch seconds when the window ends.
    """

    count: int
    limit: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    """Result of an admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch milliseconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None

    @classmethod
    def from_window(cls, state: WindowState, *, now: float) -> RateLimitResult:
        """Turn a post-increment window into an allow/deny decision."""
        allowed = state.count <= state.limit
        retry_after = None
        if not allowed:
            retry_after = max(1, int(math.ceil(state.reset_at - now)))
        return cls(
            allowed=allowed,
            limit=state.limit,
            remaining=max(0, state.limit - state.count),
            reset_at=int(state.reset_at * 1000),
            retry_after_seconds=retry_after,
        )

    def headers(self) -> dict[str, str]:
        """Standard rate limit response headers for this decision."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if self.retry_after_seconds is not None:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


class AbstractCounterStore(ABC):
    """Interface for fixed-window counter stores."""

    @abstractmethod
    def increment_and_get(
        self,
        limiter_name: str,
        identifier: str,
        *,
        limit: int,
        window_seconds: int,
    ) -> WindowState:
        """Atomically count one request and return the window state.

        Args:
            limiter_name: Name of the limiter configuration; windows of
                different limiters never share counters.
            identifier: Caller identity (e.g., client IP address).
            limit: Maximum allowed count per window.
            window_seconds: Window length in seconds.

        Returns:
            WindowState after the increment.

        Raises:
            LimiterUnavailable: If the backing store cannot be reached.
        """
        raise NotImplementedError
