"""Patient service for business logic."""

import math
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictException, NotFoundException
from app.models.patients import patients
from app.schemas.patients import (
    DailyAdmissions,
    PatientCreate,
    PatientListResponse,
    PatientResponse,
    PatientStatsResponse,
    PatientStatus,
    PatientUpdate,
)

logger = structlog.get_logger()

JSON_FIELDS = {"address", "emergency_contact", "medical_history"}


def _row_values(data: BaseModel, **dump_options: bool) -> dict:
    """Column values for a patient payload; JSON columns get JSON-safe content."""
    values = data.model_dump(**dump_options)
    values.update(
        data.model_dump(mode="json", include=JSON_FIELDS & values.keys(), **dump_options)
    )
    return {k: v.value if isinstance(v, Enum) else v for k, v in values.items()}


class PatientService:
    """Service for patient record operations."""

    async def create_patient(
        self, db: AsyncSession, patient_data: PatientCreate
    ) -> PatientResponse:
        """Create a patient record, optionally linked to a user account."""
        values = _row_values(patient_data)

        try:
            result = await db.execute(patients.insert().values(**values).returning(patients))
        except IntegrityError:
            await db.rollback()
            raise ConflictException("This user already has a patient record")
        await db.commit()

        patient = result.mappings().first()
        if not patient:
            raise ValueError("Failed to create patient")

        logger.info("patient_created", patient_id=str(patient["id"]))
        return PatientResponse.model_validate(dict(patient))

    async def get_patient_by_id(self, db: AsyncSession, patient_id: UUID) -> dict | None:
        """Get patient by ID."""
        result = await db.execute(select(patients).where(patients.c.id == patient_id))
        patient = result.mappings().first()
        return dict(patient) if patient else None

    async def get_patient_by_user_id(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get the patient record linked to a user account."""
        result = await db.execute(select(patients).where(patients.c.user_id == user_id))
        patient = result.mappings().first()
        return dict(patient) if patient else None

    async def get_patient(self, db: AsyncSession, patient_id: UUID) -> PatientResponse:
        """
        Get a patient or fail.

        Raises:
            NotFoundException: If patient not found
        """
        patient = await self.get_patient_by_id(db, patient_id)
        if not patient:
            raise NotFoundException("Patient not found")
        return PatientResponse.model_validate(patient)

    async def list_patients(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: str | None = None,
        status: PatientStatus | None = None,
        assigned_doctor_id: UUID | None = None,
    ) -> PatientListResponse:
        """List patients with search over name, contact and disease."""
        conditions: list = []

        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    patients.c.name.ilike(pattern),
                    patients.c.email.ilike(pattern),
                    patients.c.contact_number.ilike(pattern),
                    patients.c.current_disease.ilike(pattern),
                )
            )

        if status:
            conditions.append(patients.c.status == status.value)

        if assigned_doctor_id:
            conditions.append(patients.c.assigned_doctor_id == assigned_doctor_id)

        where = and_(*conditions) if conditions else True

        total = (
            await db.execute(select(func.count()).select_from(patients).where(where))
        ).scalar() or 0

        stmt = (
            select(patients)
            .where(where)
            .order_by(patients.c.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = (await db.execute(stmt)).mappings().all()

        return PatientListResponse(
            total=total,
            page=page,
            page_size=page_size,
            pages=math.ceil(total / page_size),
            items=[PatientResponse.model_validate(dict(row)) for row in rows],
        )

    async def update_patient(
        self, db: AsyncSession, patient_id: UUID, patient_data: PatientUpdate
    ) -> PatientResponse:
        """
        Update a patient record.

        Raises:
            NotFoundException: If patient not found
        """
        update_values = _row_values(patient_data, exclude_unset=True)
        if not update_values:
            return await self.get_patient(db, patient_id)

        update_values["updated_at"] = datetime.now(UTC)

        result = await db.execute(
            update(patients)
            .where(patients.c.id == patient_id)
            .values(**update_values)
            .returning(patients)
        )
        patient = result.mappings().first()
        await db.commit()

        if not patient:
            raise NotFoundException("Patient not found")

        logger.info("patient_updated", patient_id=str(patient_id))
        return PatientResponse.model_validate(dict(patient))

    async def delete_patient(self, db: AsyncSession, patient_id: UUID) -> None:
        """
        Delete a patient record.

        Raises:
            NotFoundException: If patient not found
        """
        result = await db.execute(delete(patients).where(patients.c.id == patient_id))
        await db.commit()

        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise NotFoundException("Patient not found")

        logger.info("patient_deleted", patient_id=str(patient_id))

    async def get_stats(self, db: AsyncSession, now: datetime) -> PatientStatsResponse:
        """Patient counts by admission status and admissions over the last seven days."""
        today = now.astimezone(ZoneInfo(settings.hospital_timezone)).date()
        week_start = today - timedelta(days=6)

        status_rows = await db.execute(
            select(patients.c.status, func.count()).group_by(patients.c.status)
        )
        by_status = dict(status_rows.all())

        daily_rows = await db.execute(
            select(patients.c.admitted_date, func.count())
            .where(patients.c.admitted_date.between(week_start, today))
            .group_by(patients.c.admitted_date)
        )
        daily = dict(daily_rows.all())

        return PatientStatsResponse(
            total_patients=sum(by_status.values()),
            admitted_patients=by_status.get(PatientStatus.ADMITTED.value, 0),
            discharged_patients=by_status.get(PatientStatus.DISCHARGED.value, 0),
            under_observation_patients=by_status.get(PatientStatus.UNDER_OBSERVATION.value, 0),
            weekly_admissions=[
                DailyAdmissions(date=day, count=daily.get(day, 0))
                for day in (week_start + timedelta(days=offset) for offset in range(7))
            ],
        )
