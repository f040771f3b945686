"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CacheManagerDep, ClockDep, CurrentUser, DatabaseSession, StaffUser
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatsResponse,
    AppointmentStatus,
    AppointmentUpdate,
    AvailabilityCheck,
    AvailabilityCheckResponse,
    PatientAppointmentCreate,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "/check-availability",
    response_model=AvailabilityCheckResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Check whether a slot can be booked",
)
async def check_availability(
    data: AvailabilityCheck,
    _: CurrentUser,
    db: DatabaseSession,
    clock: ClockDep,
    cache: CacheManagerDep,
) -> AvailabilityCheckResponse:
    """
    Run the booking checks for a doctor, date and time without booking.

    A rejected slot answers with the same error the booking itself would give.
    """
    return await AppointmentService(db, clock, cache).check_availability(data)


@router.post(
    "/patient",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment for yourself",
)
async def book_own_appointment(
    data: PatientAppointmentCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
    clock: ClockDep,
    cache: CacheManagerDep,
) -> AppointmentResponse:
    """
    Book an appointment for the patient linked to the authenticated user.

    Args:
        data: Appointment details
        current_user: Authenticated user
        db: Database session
        clock: Time source for the past-time check
        cache: Cache manager for doctor lookups

    Returns:
        Created appointment
    """
    return await AppointmentService(db, clock, cache).book_for_user(current_user, data)


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create appointment for a patient",
)
async def create_appointment(
    data: AppointmentCreate,
    _: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
    cache: CacheManagerDep,
) -> AppointmentResponse:
    """Staff booking on behalf of any patient."""
    return await AppointmentService(db, clock, cache).create_appointment(data)


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    _: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    doctor_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    on_date: date | None = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List all appointments with filtering.

    Args:
        status_filter: Filter by status
        doctor_id: Filter by doctor ID
        patient_id: Filter by patient ID
        on_date: Filter by appointment date
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        doctor_id=doctor_id,
        patient_id=patient_id,
        on_date=on_date,
        page=page,
        page_size=page_size,
    )
    return await AppointmentService(db, clock).list_appointments(filters)


@router.get(
    "/stats/overview",
    response_model=AppointmentStatsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Appointment statistics",
)
async def get_appointment_stats(
    _: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
) -> AppointmentStatsResponse:
    """Counts for today, this week and by status."""
    return await AppointmentService(db, clock).get_stats()


@router.get(
    "/patient/{patient_id}",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Appointments of a patient",
)
async def list_patient_appointments(
    patient_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    clock: ClockDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
) -> AppointmentListResponse:
    """Appointment history of one patient; patients may only ask about themselves."""
    return await AppointmentService(db, clock).list_patient_appointments(
        patient_id, current_user, status=status_filter, page=page, page_size=page_size
    )


@router.get(
    "/upcoming/{patient_id}",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Upcoming appointments of a patient",
)
async def list_upcoming_appointments(
    patient_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    clock: ClockDep,
    limit: int = Query(5, ge=1, le=50),
) -> list[AppointmentResponse]:
    """Next scheduled or confirmed appointments, soonest first."""
    return await AppointmentService(db, clock).list_upcoming(patient_id, current_user, limit)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    clock: ClockDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Args:
        appointment_id: Appointment ID
        current_user: Authenticated user
        db: Database session
        clock: Time source for the derived fields

    Returns:
        Appointment details
    """
    return await AppointmentService(db, clock).get_appointment(appointment_id, current_user)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    current_user: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
    cache: CacheManagerDep,
) -> AppointmentResponse:
    """
    Update an appointment's details, slot or status.

    Moving to another slot re-runs the booking checks; status changes must
    follow the appointment lifecycle.
    """
    return await AppointmentService(db, clock, cache).update_appointment(
        appointment_id, data, current_user
    )


@router.put(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    data: AppointmentCancel,
    current_user: CurrentUser,
    db: DatabaseSession,
    clock: ClockDep,
) -> AppointmentResponse:
    """Cancel an appointment; patients may only cancel their own."""
    return await AppointmentService(db, clock).cancel_appointment(
        appointment_id, current_user, data.cancellation_reason
    )


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    _: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
) -> None:
    """
    Permanently delete an appointment.

    Args:
        appointment_id: Appointment ID
    """
    await AppointmentService(db, clock).delete_appointment(appointment_id)
