from __future__ import annotations

from rate_guard.api.routes.health import router as health_router
from rate_guard.api.routes.limits import router as limits_router

__all__ = ["health_router", "limits_router"]
