"""Rate limiting dependency for FastAPI routes.

This module wires the named limiters into the HTTP layer.

Design goals:
- Minimal coupling: routes declare ``Depends(rate_limited("ai"))`` only.
- No module-level limiter: the NamedLimiterSet lives on ``app.state`` and is
  resolved per request, so tests can swap it with dependency overrides.
- Safe to disable: ``RATE_LIMIT_ENABLED=false`` turns every guard into a no-op.

Keying strategy:
- Per API key when the X-API-Key header is present.
- Otherwise per client IP.
"""

from __future__ import annotations

import logging
import math
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Header, HTTPException, Request, status

from rate_guard.adapters.rate_limit.base import RateLimitDecision
from rate_guard.adapters.rate_limit.named import NamedLimiterSet
from rate_guard.core.config import settings
from rate_guard.core.logging import hash_identifier

logger = logging.getLogger(__name__)

DEFAULT_OPERATION = "default"


def get_limiters(request: Request) -> NamedLimiterSet:
    """Return the limiter set built at application startup."""

    return request.app.state.limiters


def build_rate_limit_key(request: Request, x_api_key: str | None) -> str:
    """Build the limiter identifier for the current request.

    Args:
        request: FastAPI request.
        x_api_key: API key value from the X-API-Key header.

    Returns:
        str: Namespaced identifier (``api_key:...`` or ``ip:...``).
    """

    if x_api_key:
        return f"api_key:{x_api_key}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def build_throttle_headers(decision: RateLimitDecision) -> dict[str, str]:
    """Headers describing a refused attempt.

    ``Retry-After`` is whole seconds (rounded up) per HTTP semantics; the
    exact delay is exposed in milliseconds as well.
    """

    return {
        "Retry-After": str(math.ceil(decision.retry_after_ms / 1000)),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Retry-After-ms": str(decision.retry_after_ms),
    }


def rate_limited(
    operation: str = DEFAULT_OPERATION,
    *,
    optional: bool = False,
) -> Callable[..., Awaitable[None]]:
    """Create a dependency that consumes one unit of ``operation``'s quota.

    Args:
        operation: Operation class name in the NamedLimiterSet.
        optional: When ``operation`` is not configured, charge the ``default``
            class instead, or skip limiting if that is missing too. Without
            it, an unconfigured class surfaces as UnknownLimiterError (404).

    Returns:
        Async FastAPI dependency raising HTTP 429 when the quota is exhausted.
    """

    async def enforce_rate_limit(
        request: Request,
        limiters: Annotated[NamedLimiterSet, Depends(get_limiters)],
        x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
    ) -> None:
        if not settings.rate_limit.enabled:
            return

        resolved = operation
        if optional and operation not in limiters:
            if DEFAULT_OPERATION not in limiters:
                logger.debug("rate_limit.skipped", extra={"operation": operation, "reason": "not_configured"})
                return
            resolved = DEFAULT_OPERATION

        limiter = limiters[resolved]
        key = build_rate_limit_key(request, x_api_key)
        log_context = {
            "operation": resolved,
            "key_type": "api_key" if x_api_key else "ip",
            "key_hash": hash_identifier(key),
        }

        decision = limiter.consume(key)
        if decision.allowed:
            logger.info(
                "rate_limit.allowed",
                extra={**log_context, "limit": decision.limit, "remaining": decision.remaining},
            )
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                **log_context,
                "limit": decision.limit,
                "retry_after_ms": decision.retry_after_ms,
            },
        )

        headers = build_throttle_headers(decision) if settings.rate_limit.include_headers else None
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Try again later.",
            headers=headers,
        )

    enforce_rate_limit.__name__ = f"enforce_rate_limit_{operation}"
    return enforce_rate_limit
