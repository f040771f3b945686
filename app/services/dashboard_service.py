"""Dashboard aggregates across patients, doctors, appointments and bills."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointments
from app.models.bills import bills
from app.models.doctors import doctors
from app.models.patients import patients
from app.schemas.billing import BillStatus
from app.schemas.dashboard import DashboardStatsResponse
from app.schemas.doctors import DoctorStatus


async def get_dashboard_stats(db: AsyncSession) -> DashboardStatsResponse:
    """Headline numbers for the admin dashboard; revenue counts paid bills only."""
    total_patients = await db.scalar(select(func.count()).select_from(patients))
    total_doctors = await db.scalar(
        select(func.count())
        .select_from(doctors)
        .where(doctors.c.status == DoctorStatus.ACTIVE.value)
    )
    total_appointments = await db.scalar(select(func.count()).select_from(appointments))
    total_revenue = await db.scalar(
        select(func.coalesce(func.sum(bills.c.total_amount), 0)).where(
            bills.c.status == BillStatus.PAID.value
        )
    )

    return DashboardStatsResponse(
        total_patients=total_patients or 0,
        total_doctors=total_doctors or 0,
        total_appointments=total_appointments or 0,
        total_revenue=float(total_revenue or 0),
    )
