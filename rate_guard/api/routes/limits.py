"""Operations endpoints for inspecting and administering limiters.

Every route resolves the NamedLimiterSet from ``app.state``; unknown operation
classes surface as 404 through the global AppError handler.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from rate_guard.adapters.rate_limit.named import NamedLimiterSet
from rate_guard.core.auth import verify_api_key
from rate_guard.core.rate_limit import get_limiters, rate_limited
from rate_guard.schemas.limits import (
    AttemptResponse,
    CleanupResponse,
    LimiterStatsResponse,
    LimitsOverviewResponse,
    QuotaStatusResponse,
)
from rate_guard.services.sweeper import LimiterSweeper
from rate_guard.utils.retry_format import format_retry_time

router = APIRouter(tags=["Limits"], dependencies=[Depends(verify_api_key)])

Limiters = Annotated[NamedLimiterSet, Depends(get_limiters)]


def get_sweeper(request: Request) -> LimiterSweeper:
    return request.app.state.sweeper


@router.get("/limits", response_model=LimitsOverviewResponse)
async def list_limits(limiters: Limiters) -> LimitsOverviewResponse:
    """Return configuration and tracked identifier counts per operation class."""

    return LimitsOverviewResponse(
        operations={
            name: LimiterStatsResponse(**stats.as_dict())
            for name, stats in limiters.stats().items()
        }
    )


@router.post(
    "/limits/cleanup",
    response_model=CleanupResponse,
    dependencies=[Depends(rate_limited("mutations", optional=True))],
)
async def run_cleanup(
    sweeper: Annotated[LimiterSweeper, Depends(get_sweeper)],
) -> CleanupResponse:
    """Sweep idle identifiers from every limiter now."""

    return CleanupResponse(removed=sweeper.sweep_once())


@router.get("/limits/{operation}/{identifier}", response_model=QuotaStatusResponse)
async def get_quota(operation: str, identifier: str, limiters: Limiters) -> QuotaStatusResponse:
    """Report remaining quota and retry delay without consuming anything."""

    limiter = limiters[operation]
    retry_after_ms = limiter.get_retry_after(identifier)
    return QuotaStatusResponse(
        operation=operation,
        remaining=limiter.get_remaining_requests(identifier),
        retry_after_ms=retry_after_ms,
        retry_after=format_retry_time(retry_after_ms),
    )


@router.post("/limits/{operation}/{identifier}/attempt", response_model=AttemptResponse)
async def attempt_request(operation: str, identifier: str, limiters: Limiters) -> AttemptResponse:
    """Run an admission decision for ``identifier``.

    Responds 200 in both cases: a refusal is a normal outcome for the caller
    to act on (typically by waiting ``retry_after_ms``).
    """

    decision = limiters[operation].consume(identifier)
    return AttemptResponse(
        operation=operation,
        allowed=decision.allowed,
        limit=decision.limit,
        remaining=decision.remaining,
        retry_after_ms=decision.retry_after_ms,
    )


@router.delete(
    "/limits/{operation}/{identifier}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limited("mutations", optional=True))],
)
async def reset_quota(operation: str, identifier: str, limiters: Limiters) -> Response:
    """Forget every recorded request of ``identifier`` for ``operation``."""

    limiters[operation].reset(identifier)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
