"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the persistence store is unreachable (readiness)
    - Readiness also reports the sync queue state and routable namespaces
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from crossapp.api.dependencies import get_context
from crossapp.services.context import CrossAppContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "crossapp-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(ctx: CrossAppContext = Depends(get_context)):
    """Readiness probe: database connectivity plus queue and routing state."""
    db_ok = await ctx.db.health_check() if ctx.db else True
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "sync_queue": ctx.queue.status(),
        "namespaces": ctx.router.namespaces(),
        "default_connection": ctx.registry.default_handle is not None,
    }
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "checks": checks,
            },
        )
    return {"status": "ready", "checks": checks}
