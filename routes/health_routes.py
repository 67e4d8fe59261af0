"""
Health check endpoint.

GET /health checks MongoDB and Redis connectivity and the dispatcher.
Rules:
- MongoDB failure → "unhealthy" (503), notifications cannot be stored.
- Redis failure or absence → "degraded" (200), verification falls back to
  process memory.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    redis = request.app.state.redis
    if redis is None:
        checks["redis"] = "not_configured"
        if overall == "healthy":
            overall = "degraded"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "error"
            if overall == "healthy":
                overall = "degraded"

    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        checks["dispatcher"] = "disabled"
    else:
        checks["dispatcher"] = "running" if dispatcher.running else "stopped"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content=HealthResponse(status=overall, checks=checks).model_dump(),
    )
