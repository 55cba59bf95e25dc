"""Rate limiting adapters.

This package provides the sliding-window limiter, named limiter groups, and a
small abstraction layer so the in-memory store can later be swapped for Redis
or another shared store without changing the API layer.
"""

from rate_guard.adapters.rate_limit.base import (
    AbstractRateLimiter,
    BoundLimiter,
    LimiterStats,
    RateLimitDecision,
)
from rate_guard.adapters.rate_limit.in_memory import SlidingWindowRateLimiter
from rate_guard.adapters.rate_limit.named import (
    LimitRule,
    NamedLimiterSet,
    build_limiter_set,
    default_rules,
)

__all__ = [
    "AbstractRateLimiter",
    "BoundLimiter",
    "LimitRule",
    "LimiterStats",
    "NamedLimiterSet",
    "RateLimitDecision",
    "SlidingWindowRateLimiter",
    "build_limiter_set",
    "default_rules",
]
