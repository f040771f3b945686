"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    appointments,
    auth,
    billing,
    dashboard,
    doctors,
    health,
    patients,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(doctors.router)
api_router.include_router(patients.router)
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(billing.router)
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
