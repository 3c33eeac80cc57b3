"""
Health Check Endpoints

Liveness, readiness and a detailed dependency report.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from partshop.config import get_settings
from partshop.serving.api.dependencies import Commerce, get_commerce

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    commerce: Commerce = Depends(get_commerce),
) -> HealthResponse:
    """
    Dependency report for operators.

    Checks:
    - Database connectivity
    - Redis connectivity (the product cache is optional, so a failure only
      degrades the status)
    """
    settings = get_settings()
    checks = {}
    overall_status = "healthy"

    db_health = await commerce.database.health()
    checks["database"] = db_health
    if db_health.get("status") != "healthy":
        overall_status = "unhealthy"

    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        checks["redis"] = {"status": "disabled"}
    else:
        try:
            await redis.ping()
            checks["redis"] = {"status": "healthy"}
        except Exception as e:
            checks["redis"] = {"status": "unhealthy", "error": str(e)}
            if overall_status == "healthy":
                overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness probe: the process is up and serving."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    commerce: Commerce = Depends(get_commerce),
) -> Dict[str, str]:
    """Readiness probe: 200 once the database accepts queries, 503 otherwise."""
    db_health = await commerce.database.health()
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}
