"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection
from app.dependencies import ClockDep

router = APIRouter()


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    service: str
    version: str
    environment: str
    timestamp: datetime


class DetailedHealthResponse(HealthResponse):
    """Readiness response including backing services."""

    database: str
    cache: str


def _state(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check(clock: ClockDep) -> HealthResponse:
    """Report that the API process is up."""
    return HealthResponse(
        status="healthy",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        timestamp=clock.now(),
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check(clock: ClockDep) -> DetailedHealthResponse:
    """
    Check PostgreSQL and Redis.

    The cache is optional for serving requests, so only a database outage
    marks the service unhealthy; a cache outage marks it degraded.
    """
    db_healthy = await check_database_connection()
    cache_healthy = await check_redis_connection()

    if not db_healthy:
        overall = "unhealthy"
    elif not cache_healthy:
        overall = "degraded"
    else:
        overall = "healthy"

    return DetailedHealthResponse(
        status=overall,
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        timestamp=clock.now(),
        database=_state(db_healthy),
        cache=_state(cache_healthy),
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
