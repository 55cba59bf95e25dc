"""Rate limiter interfaces.

Callers (HTTP dependencies, operations routes, the sweeper) depend on this
abstraction rather than the concrete store, so the in-memory registry can be
replaced by a shared backend later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of an admission attempt.

    Attributes:
        allowed: Whether the request was admitted (and recorded).
        limit: Max requests per window.
        remaining: Requests still available in the window after this attempt.
        retry_after_ms: Milliseconds until the next attempt could be admitted
            (0 when another attempt would already succeed).
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_ms: int


@dataclass(frozen=True)
class LimiterStats:
    """Read-only snapshot of a limiter."""

    tracked_identifiers: int
    max_requests: int
    window_ms: int

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class AbstractRateLimiter(ABC):
    """Interface for per-identifier rate limiters.

    Timestamps are epoch milliseconds. Every ``now`` argument is optional;
    implementations fall back to their own clock when it is omitted.
    """

    @abstractmethod
    def consume(self, identifier: str, now: float | None = None) -> RateLimitDecision:
        """Attempt one request for ``identifier`` and describe the outcome.

        Args:
            identifier: Key partitioning independent quotas (user, IP, route).
            now: Current time in epoch milliseconds.

        Returns:
            RateLimitDecision for this attempt.
        """
        raise NotImplementedError

    def try_request(self, identifier: str, now: float | None = None) -> bool:
        """Return True if the request is admitted, False if refused."""
        return self.consume(identifier, now).allowed

    @abstractmethod
    def get_remaining_requests(self, identifier: str, now: float | None = None) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_retry_after(self, identifier: str, now: float | None = None) -> int:
        raise NotImplementedError

    @abstractmethod
    def reset(self, identifier: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def cleanup(self, now: float | None = None) -> int:
        """Drop identifiers with no in-window activity.

        Returns:
            Number of identifiers removed.
        """
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> LimiterStats:
        raise NotImplementedError

    def bind(self, identifier: str) -> "BoundLimiter":
        """Return a handle scoped to a single identifier."""
        return BoundLimiter(self, identifier)


class BoundLimiter:
    """A limiter view fixed to one identifier.

    Useful for callers that always act on behalf of the same user or route and
    should not have to thread the identifier through every call.
    """

    def __init__(self, limiter: AbstractRateLimiter, identifier: str) -> None:
        self._limiter = limiter
        self.identifier = identifier

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"BoundLimiter(identifier={self.identifier!r}, limiter={self._limiter!r})"

    def can_make_request(self, now: float | None = None) -> bool:
        return self._limiter.try_request(self.identifier, now)

    def get_remaining_requests(self, now: float | None = None) -> int:
        return self._limiter.get_remaining_requests(self.identifier, now)

    def get_retry_after(self, now: float | None = None) -> int:
        return self._limiter.get_retry_after(self.identifier, now)

    def reset(self) -> None:
        self._limiter.reset(self.identifier)
