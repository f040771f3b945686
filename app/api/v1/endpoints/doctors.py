"""Doctor endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.config import settings
from app.dependencies import AdminUser, CacheManagerDep, ClockDep, DatabaseSession, StaffUser
from app.schemas.doctors import (
    AvailableDoctorsResponse,
    DoctorCreate,
    DoctorListResponse,
    DoctorResponse,
    DoctorSlotsResponse,
    DoctorStatsResponse,
    DoctorStatus,
    DoctorUpdate,
)
from app.services.appointment_service import AppointmentService
from app.services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("/available", response_model=AvailableDoctorsResponse)
async def list_available_doctors(
    db: DatabaseSession,
    cache: CacheManagerDep,
    on_date: date | None = Query(None, alias="date", description="Only doctors working that day"),
    specialization: str | None = Query(None),
    department: str | None = Query(None),
    search: str | None = Query(None, min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=100),
):
    """Active doctors open for booking, for the patient-facing booking form."""
    return await DoctorService(cache).list_available_doctors(
        db,
        on_date=on_date,
        specialization=specialization,
        department=department,
        search=search,
        limit=limit,
    )


@router.get("/stats/overview", response_model=DoctorStatsResponse)
async def get_doctor_stats(_: StaffUser, db: DatabaseSession, cache: CacheManagerDep):
    """Doctor counts by status, department and specialization."""
    return await DoctorService(cache).get_stats(db)


@router.get("", response_model=DoctorListResponse)
async def list_doctors(
    _: StaffUser,
    db: DatabaseSession,
    cache: CacheManagerDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, min_length=1, max_length=100),
    department: str | None = Query(None),
    status_filter: DoctorStatus | None = Query(None, alias="status"),
):
    """List doctors with search, filters and pagination."""
    return await DoctorService(cache).list_doctors(
        db,
        page=page,
        page_size=page_size,
        search=search,
        department=department,
        status=status_filter,
    )


@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    doctor_data: DoctorCreate,
    _: AdminUser,
    db: DatabaseSession,
    cache: CacheManagerDep,
):
    """Create a doctor profile with weekly availability."""
    return await DoctorService(cache).create_doctor(db, doctor_data)


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(doctor_id: UUID, db: DatabaseSession, cache: CacheManagerDep):
    """Get a doctor profile by ID."""
    return await DoctorService(cache).get_doctor(db, doctor_id)


@router.get("/{doctor_id}/slots", response_model=DoctorSlotsResponse)
async def get_doctor_slots(
    doctor_id: UUID,
    db: DatabaseSession,
    cache: CacheManagerDep,
    clock: ClockDep,
    on_date: date = Query(..., alias="date"),
    slot_minutes: int = Query(settings.default_slot_minutes, ge=5, le=180),
):
    """
    Free slots of a doctor on a date.

    Slots already held by a scheduled, confirmed or in-progress appointment,
    and slots that have already started, are left out.
    """
    service = AppointmentService(db, clock, cache)
    return await service.available_slots(doctor_id, on_date, slot_minutes)


@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: UUID,
    doctor_data: DoctorUpdate,
    _: AdminUser,
    db: DatabaseSession,
    cache: CacheManagerDep,
):
    """Update a doctor profile, including availability and status."""
    return await DoctorService(cache).update_doctor(db, doctor_id, doctor_data)


@router.delete("/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_doctor(
    doctor_id: UUID,
    _: AdminUser,
    db: DatabaseSession,
    cache: CacheManagerDep,
) -> None:
    """Delete a doctor profile."""
    await DoctorService(cache).delete_doctor(db, doctor_id)
