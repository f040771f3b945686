"""Dashboard schemas."""

from pydantic import BaseModel


class DashboardStatsResponse(BaseModel):
    """Headline counts for the admin dashboard."""

    total_patients: int
    total_doctors: int
    total_appointments: int
    total_revenue: float
