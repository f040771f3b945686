"""Patient endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.exceptions import ForbiddenException, NotFoundException
from app.dependencies import (
    ClockDep,
    CurrentUser,
    DatabaseSession,
    StaffUser,
    is_staff,
    user_id_of,
)
from app.schemas.patients import (
    PatientCreate,
    PatientListResponse,
    PatientResponse,
    PatientStatsResponse,
    PatientStatus,
    PatientUpdate,
)
from app.services.patient_service import PatientService

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.get("", response_model=PatientListResponse)
async def list_patients(
    _: StaffUser,
    db: DatabaseSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, min_length=1, max_length=100),
    status_filter: PatientStatus | None = Query(None, alias="status"),
    assigned_doctor_id: UUID | None = Query(None),
):
    """List and search patient records."""
    return await PatientService().list_patients(
        db,
        page=page,
        page_size=page_size,
        search=search,
        status=status_filter,
        assigned_doctor_id=assigned_doctor_id,
    )


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(patient_data: PatientCreate, _: StaffUser, db: DatabaseSession):
    """Create a patient record, optionally linking it to a user account."""
    return await PatientService().create_patient(db, patient_data)


@router.get("/me", response_model=PatientResponse)
async def get_my_patient_record(current_user: CurrentUser, db: DatabaseSession):
    """The patient record linked to the current user."""
    patient = await PatientService().get_patient_by_user_id(db, user_id_of(current_user))
    if not patient:
        raise NotFoundException("Patient profile not found")
    return PatientResponse.model_validate(patient)


@router.get("/stats/overview", response_model=PatientStatsResponse)
async def get_patient_stats(_: StaffUser, db: DatabaseSession, clock: ClockDep):
    """Totals by admission status and the last week of admissions."""
    return await PatientService().get_stats(db, clock.now())


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(patient_id: UUID, current_user: CurrentUser, db: DatabaseSession):
    """Get a patient record; patients may only read their own."""
    patient = await PatientService().get_patient(db, patient_id)
    if not is_staff(current_user) and patient.user_id != user_id_of(current_user):
        raise ForbiddenException("Access denied to this patient record")
    return patient


@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: UUID,
    patient_data: PatientUpdate,
    _: StaffUser,
    db: DatabaseSession,
):
    """Update a patient record."""
    return await PatientService().update_patient(db, patient_id, patient_data)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(patient_id: UUID, _: StaffUser, db: DatabaseSession) -> None:
    """Delete a patient record."""
    await PatientService().delete_patient(db, patient_id)
