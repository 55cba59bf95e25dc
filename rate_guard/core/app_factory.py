"""Application factory for the FastAPI app.

Centralizes app construction (limiters, sweeper lifecycle, middleware,
handlers, routers) so tests can build isolated instances with their own
limiters and clock.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from rate_guard.adapters.rate_limit.named import LimitRule, NamedLimiterSet, build_limiter_set
from rate_guard.api.routes import health_router, limits_router
from rate_guard.core.config import RateLimitSettings, settings
from rate_guard.core.exception_handlers import setup_exception_handlers
from rate_guard.core.logging import configure_logging
from rate_guard.core.middleware import request_id_middleware
from rate_guard.core.openapi import apply_openapi_customizations
from rate_guard.core.rate_limit import DEFAULT_OPERATION
from rate_guard.services.sweeper import LimiterSweeper

logger = logging.getLogger(__name__)


def limiters_from_settings(rate_limit_settings: RateLimitSettings) -> NamedLimiterSet:
    """Build the limiter set described by configuration.

    A ``default`` operation class built from the default quota is always
    present unless configuration defines one explicitly.
    """
    rules = {
        DEFAULT_OPERATION: LimitRule(
            max_requests=rate_limit_settings.default_max_requests,
            window_ms=rate_limit_settings.default_window_ms,
        ),
        **rate_limit_settings.operations,
    }
    return build_limiter_set(
        rules,
        cleanup_probability=rate_limit_settings.cleanup_probability,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the background sweeper for the lifetime of the app."""
    sweeper: LimiterSweeper = app.state.sweeper
    await sweeper.start_background()
    try:
        yield
    finally:
        await sweeper.stop_background()


def create_app(limiters: NamedLimiterSet | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        limiters: Pre-built limiter set; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Rate Guard",
        description=(
            "Per-identifier sliding-window rate limiting. Named operation classes "
            "(ai, search, mutations, uploads, ...) each keep an independent quota; "
            "operations endpoints expose remaining quota, retry delays, resets and "
            "on-demand sweeps."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiters = limiters if limiters is not None else limiters_from_settings(settings.rate_limit)
    app.state.sweeper = LimiterSweeper(
        app.state.limiters,
        interval_seconds=settings.rate_limit.cleanup_interval_seconds,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "operations": sorted(app.state.limiters),
            "rate_limit_enabled": settings.rate_limit.enabled,
        },
    )
    return app
