from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, unauthenticated and never rate limited.

    Returns:
        dict: ``status`` plus the configured operation classes and whether
        the background sweeper is running.
    """

    limiters = getattr(request.app.state, "limiters", None)
    sweeper = getattr(request.app.state, "sweeper", None)
    return {
        "status": "ok",
        "operations": sorted(limiters) if limiters is not None else [],
        "sweeper_running": bool(sweeper and sweeper.running),
    }
