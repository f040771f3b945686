"""Admin dashboard endpoints."""

from fastapi import APIRouter, status

from app.dependencies import AdminUser, DatabaseSession
from app.schemas.dashboard import DashboardStatsResponse
from app.services.dashboard_service import get_dashboard_stats

router = APIRouter()


@router.get(
    "/stats",
    response_model=DashboardStatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Dashboard statistics",
)
async def dashboard_stats(_: AdminUser, db: DatabaseSession) -> DashboardStatsResponse:
    """
    Headline numbers for the admin dashboard.

    Returns:
        Patient, active doctor and appointment totals plus paid revenue
    """
    return await get_dashboard_stats(db)
