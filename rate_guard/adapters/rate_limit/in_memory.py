"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock guards the identifier -> timestamps mapping, so
  the check-then-append step of an admission is atomic.
- All timestamps are epoch milliseconds.
"""

from __future__ import annotations

import bisect
import logging
import math
import random as _random
import threading
import time
from typing import Callable

from rate_guard.adapters.rate_limit.base import (
    AbstractRateLimiter,
    LimiterStats,
    RateLimitDecision,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_MS = 60_000


def now_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter tracking admitted-request timestamps per identifier.

    A request is admitted when fewer than ``max_requests`` admitted requests
    fall inside the open window ``(now - window_ms, now]``. Expired timestamps
    are ignored at decision time and pruned lazily, so calling
    :meth:`cleanup` is purely a memory concern and never changes an outcome.

    Degenerate configuration is accepted as-is:
        - ``max_requests <= 0`` refuses every request.
        - ``window_ms <= 0`` places every earlier timestamp outside the window,
          so every request is admitted (the limiter is effectively unlimited).

    Important:
        Outcomes assume ``now`` never moves backwards for a given identifier.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        *,
        clock: Callable[[], float] = now_ms,
        cleanup_probability: float = 0.0,
        random: Callable[[], float] = _random.random,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_requests: Quota per window.
            window_ms: Window length in milliseconds.
            clock: Time source returning epoch milliseconds.
            cleanup_probability: Chance of running a full sweep after each
                admitted request (0 disables the inline sweep).
            random: Source of uniform floats in [0, 1) for the inline sweep.
        """
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._clock = clock
        self._cleanup_probability = cleanup_probability
        self._random = random
        self._lock = threading.RLock()
        self._requests: dict[str, list[float]] = {}

        if max_requests <= 0 or window_ms <= 0:
            logger.warning(
                "rate_limit.degenerate_config",
                extra={
                    "max_requests": max_requests,
                    "window_ms": window_ms,
                    "effect": "refuse_all" if max_requests <= 0 else "unlimited",
                },
            )

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SlidingWindowRateLimiter(max_requests={self._max_requests}, "
            f"window_ms={self._window_ms}, tracked={len(self._requests)})"
        )

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def _resolve_now(self, now: float | None) -> float:
        return self._clock() if now is None else now

    def _prune_locked(self, identifier: str, window_start: float) -> list[float]:
        """Drop expired timestamps for ``identifier`` in place.

        Returns:
            The stored (pruned) sequence, or a fresh empty list when the
            identifier is not tracked. The fresh list is not stored.
        """
        timestamps = self._requests.get(identifier)
        if timestamps is None:
            return []
        expired = bisect.bisect_right(timestamps, window_start)
        if expired:
            del timestamps[:expired]
        return timestamps

    def _retry_after_locked(self, in_window: list[float], now: float) -> int:
        """Milliseconds until the earliest in-window entry ages out."""
        if len(in_window) < self._max_requests:
            return 0
        if not in_window:
            # Non-positive quota: waiting never frees a slot.
            return max(1, self._window_ms)
        return max(0, int(math.ceil(in_window[0] + self._window_ms - now)))

    def _cleanup_locked(self, now: float) -> int:
        window_start = now - self._window_ms
        removed = 0
        for identifier in list(self._requests):
            if not self._prune_locked(identifier, window_start):
                del self._requests[identifier]
                removed += 1
        return removed

    def consume(self, identifier: str, now: float | None = None) -> RateLimitDecision:
        """Attempt one request for ``identifier``.

        Refusal is a normal outcome and is reported through ``allowed``; the
        timestamp of a refused attempt is not recorded.

        Args:
            identifier: Key partitioning independent quotas.
            now: Current time in epoch milliseconds (defaults to the clock).

        Returns:
            RateLimitDecision with the admission result and quota metadata.
        """
        now = self._resolve_now(now)
        window_start = now - self._window_ms

        with self._lock:
            timestamps = self._prune_locked(identifier, window_start)

            if len(timestamps) >= self._max_requests:
                return RateLimitDecision(
                    allowed=False,
                    limit=self._max_requests,
                    remaining=0,
                    retry_after_ms=self._retry_after_locked(timestamps, now),
                )

            if identifier not in self._requests:
                self._requests[identifier] = timestamps
            bisect.insort(timestamps, now)

            decision = RateLimitDecision(
                allowed=True,
                limit=self._max_requests,
                remaining=max(0, self._max_requests - len(timestamps)),
                retry_after_ms=self._retry_after_locked(timestamps, now),
            )

            if self._cleanup_probability > 0 and self._random() < self._cleanup_probability:
                removed = self._cleanup_locked(now)
                logger.debug(
                    "limiter.inline_sweep",
                    extra={"removed": removed, "tracked": len(self._requests)},
                )

            return decision

    def get_remaining_requests(self, identifier: str, now: float | None = None) -> int:
        """Return how many more requests would be admitted right now.

        Read-only: the stored sequence is not modified.
        """
        now = self._resolve_now(now)
        window_start = now - self._window_ms

        with self._lock:
            timestamps = self._requests.get(identifier, [])
            in_window = len(timestamps) - bisect.bisect_right(timestamps, window_start)
            return max(0, self._max_requests - in_window)

    def get_retry_after(self, identifier: str, now: float | None = None) -> int:
        """Return milliseconds until the next request would be admitted.

        Returns 0 exactly when :meth:`try_request` would currently admit.
        Read-only: the stored sequence is not modified.
        """
        now = self._resolve_now(now)
        window_start = now - self._window_ms

        with self._lock:
            timestamps = self._requests.get(identifier, [])
            start = bisect.bisect_right(timestamps, window_start)
            return self._retry_after_locked(timestamps[start:], now)

    def reset(self, identifier: str) -> None:
        """Forget all recorded requests for ``identifier`` (no-op if absent)."""
        with self._lock:
            self._requests.pop(identifier, None)

    def cleanup(self, now: float | None = None) -> int:
        """Prune expired timestamps and drop identifiers left with none.

        Returns:
            Number of identifiers removed.
        """
        now = self._resolve_now(now)
        with self._lock:
            removed = self._cleanup_locked(now)
            tracked = len(self._requests)

        logger.debug("limiter.sweep", extra={"removed": removed, "tracked": tracked})
        return removed

    def stats(self) -> LimiterStats:
        with self._lock:
            return LimiterStats(
                tracked_identifiers=len(self._requests),
                max_requests=self._max_requests,
                window_ms=self._window_ms,
            )
