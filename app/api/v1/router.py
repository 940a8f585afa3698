"""API v1 router configuration."""

from fastapi import APIRouter, Depends

from app.api.v1.endpoints import appointments, health, patients, queue
from app.dependencies import enforce_rate_limit

api_router = APIRouter()

# Rate limited per caller on every authenticated router
rate_limited = [Depends(enforce_rate_limit)]

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(
    appointments.router,
    prefix="/appointments",
    tags=["Appointments"],
    dependencies=rate_limited,
)
api_router.include_router(
    queue.router,
    prefix="/queue",
    tags=["Queue"],
    dependencies=rate_limited,
)
api_router.include_router(
    patients.router,
    prefix="/patients",
    tags=["Patients"],
    dependencies=rate_limited,
)
