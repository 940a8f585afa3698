"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection
from app.utils.time_slots import clinic_now

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    clinic_timezone: str
    clinic_time: datetime


class DetailedHealthResponse(HealthResponse):
    """Health check including backing services."""

    database: str
    redis: str


def _base_health(overall: str) -> dict:
    return {
        "status": overall,
        "version": settings.app_version,
        "environment": settings.environment,
        "clinic_timezone": settings.clinic_timezone,
        "clinic_time": clinic_now(),
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Reports the clinic-local clock so front desk clients can spot a wrong
    ``CLINIC_TIMEZONE`` before "today" listings look off.
    """
    return HealthResponse(**_base_health("healthy"))


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """Health check with database and Redis status."""
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    return DetailedHealthResponse(
        **_base_health("healthy" if db_healthy and redis_healthy else "degraded"),
        database="healthy" if db_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
    )
