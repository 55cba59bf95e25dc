"""Named groups of independently configured limiters.

A ``NamedLimiterSet`` maps an operation class (``"ai"``, ``"search"``, ...) to
its own limiter. It is built once at startup and handed to callers
explicitly; members share no state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Callable

from pydantic import BaseModel, Field

from rate_guard.adapters.rate_limit.base import AbstractRateLimiter, LimiterStats
from rate_guard.adapters.rate_limit.in_memory import (
    DEFAULT_MAX_REQUESTS,
    DEFAULT_WINDOW_MS,
    SlidingWindowRateLimiter,
    now_ms,
)
from rate_guard.core.errors import UnknownLimiterError, ValidationAppError

logger = logging.getLogger(__name__)


class LimitRule(BaseModel):
    """Quota for one operation class."""

    max_requests: int = Field(
        DEFAULT_MAX_REQUESTS,
        description="Maximum admitted requests per window",
    )
    window_ms: int = Field(
        DEFAULT_WINDOW_MS,
        description="Window length in milliseconds",
    )


def default_rules() -> dict[str, LimitRule]:
    """Built-in operation classes."""
    return {
        "ai": LimitRule(max_requests=5, window_ms=60_000),
        "search": LimitRule(max_requests=30, window_ms=60_000),
        "mutations": LimitRule(max_requests=20, window_ms=60_000),
        "uploads": LimitRule(max_requests=10, window_ms=3_600_000),
    }


class NamedLimiterSet(Mapping[str, AbstractRateLimiter]):
    """Read-only mapping from operation class to limiter."""

    def __init__(self, limiters: Mapping[str, AbstractRateLimiter]) -> None:
        self._limiters = dict(limiters)

    def __getitem__(self, operation: str) -> AbstractRateLimiter:
        try:
            return self._limiters[operation]
        except KeyError:
            raise UnknownLimiterError(
                code="unknown_operation_class",
                message=f"No rate limiter configured for operation '{operation}'",
                details={
                    "operation": operation,
                    "hint": f"Known operations: {', '.join(sorted(self._limiters))}",
                },
            ) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._limiters)

    def __len__(self) -> int:
        return len(self._limiters)

    def __contains__(self, operation: object) -> bool:
        return operation in self._limiters

    def get(self, operation: str, default: AbstractRateLimiter | None = None) -> AbstractRateLimiter | None:
        return self._limiters.get(operation, default)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"NamedLimiterSet({sorted(self._limiters)})"

    def cleanup_all(self, now: float | None = None) -> dict[str, int]:
        """Sweep every member limiter.

        Returns:
            Identifiers removed per operation class.
        """
        return {name: limiter.cleanup(now) for name, limiter in self._limiters.items()}

    def stats(self) -> dict[str, LimiterStats]:
        return {name: limiter.stats() for name, limiter in self._limiters.items()}


def build_limiter_set(
    rules: Mapping[str, LimitRule] | None = None,
    *,
    clock: Callable[[], float] = now_ms,
    cleanup_probability: float = 0.0,
) -> NamedLimiterSet:
    """Construct one independent sliding-window limiter per rule.

    Args:
        rules: Operation class -> quota. Defaults to :func:`default_rules`.
        clock: Time source shared by all members (epoch milliseconds).
        cleanup_probability: Inline sweep probability for every member.

    Returns:
        NamedLimiterSet with a fresh limiter per operation class.

    Raises:
        ValidationAppError: If an operation class name is empty or blank.
    """
    resolved = default_rules() if rules is None else rules
    for name in resolved:
        if not name.strip():
            raise ValidationAppError(
                code="invalid_operation_class",
                message="Operation class names must be non-empty",
                details={
                    "operation": name,
                    "hint": "Check the keys of RATE_LIMIT_OPERATIONS",
                },
            )
    limiters = {
        name: SlidingWindowRateLimiter(
            max_requests=rule.max_requests,
            window_ms=rule.window_ms,
            clock=clock,
            cleanup_probability=cleanup_probability,
        )
        for name, rule in resolved.items()
    }

    logger.info(
        "limiters.built",
        extra={
            "operations": {
                name: {"max_requests": rule.max_requests, "window_ms": rule.window_ms}
                for name, rule in resolved.items()
            },
        },
    )
    return NamedLimiterSet(limiters)
