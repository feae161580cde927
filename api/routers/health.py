"""
Health check endpoint.
"""

import time

from fastapi import APIRouter, Depends
from sqlalchemy import text

from api.dependencies import ServiceContainer, get_services
from api.schemas.common import ComponentHealth, HealthResponse, HealthStatus
from core.config import Settings, get_settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Health check with database status, for load balancers.",
)
async def health_check(
    services: ServiceContainer = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """
    Health check with component status.

    Checks the database and reports whether a shared key and durable storage
    are configured.
    """
    components = {}
    overall_status = HealthStatus.HEALTHY

    start = time.time()
    try:
        async with services.database.session() as session:
            await session.execute(text("SELECT 1"))
        components["database"] = ComponentHealth(
            status=HealthStatus.HEALTHY,
            latency_ms=round((time.time() - start) * 1000, 2),
        )
    except Exception as e:
        components["database"] = ComponentHealth(status=HealthStatus.UNHEALTHY, error=str(e)[:100])
        overall_status = HealthStatus.UNHEALTHY

    components["shared_credential"] = ComponentHealth(
        status=HealthStatus.HEALTHY if settings.has_shared_credential else HealthStatus.DEGRADED,
        error=None if settings.has_shared_credential else "GEMINI_API_KEY not configured",
    )
    components["storage"] = ComponentHealth(
        status=HealthStatus.HEALTHY if services.storage else HealthStatus.DEGRADED,
        error=None if services.storage else "Images stored inline",
    )

    if overall_status == HealthStatus.HEALTHY and any(
        c.status != HealthStatus.HEALTHY for c in components.values()
    ):
        overall_status = HealthStatus.DEGRADED

    return HealthResponse(
        status=overall_status,
        version=settings.app_version,
        environment=settings.environment,
        components=components,
    )
