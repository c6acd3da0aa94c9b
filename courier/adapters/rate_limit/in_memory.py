"""In-memory fixed-window counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from courier.adapters.rate_limit.base import AbstractCounterStore, WindowState


@dataclass
class _WindowState:
    count: int
    reset_at: float


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping one fixed window per (limiter, identifier).

    The window is anchored at the first request seen after the previous
    window expired, so ``reset_at = window_start + window_seconds``.

    Important:
        This store is per-process only. It is the degraded-mode fallback for
        the shared counter store and does not coordinate across instances.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[tuple[str, str], _WindowState] = {}

    def increment_and_get(
        self,
        limiter_name: str,
        identifier: str,
        *,
        limit: int,
        window_seconds: int,
    ) -> WindowState:
        """Count one request for the pair and return the resulting window.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        key = (limiter_name, identifier)
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = _WindowState(count=0, reset_at=now + window_seconds)
                self._windows[key] = window
            window.count += 1
            return WindowState(count=window.count, limit=limit, reset_at=window.reset_at)

    def clear(self) -> None:
        """Drop every window (used between tests and on operator reset)."""
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
