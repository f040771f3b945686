"""Doctor service for business logic."""

import math
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.core.redis_client import CacheManager
from app.engines.availability import is_day_available
from app.models.doctors import doctors
from app.schemas.doctors import (
    AvailableDoctorsResponse,
    DoctorCreate,
    DoctorFilterOptions,
    DoctorListResponse,
    DoctorResponse,
    DoctorStatsResponse,
    DoctorStatus,
    DoctorUpdate,
    GroupCount,
)

logger = structlog.get_logger()


class DoctorService:
    """Service for doctor operations."""

    # Cache TTL in seconds
    DOCTOR_CACHE_TTL = 900  # 15 minutes for individual doctors
    DOCTOR_LIST_CACHE_TTL = 300  # 5 minutes for available-doctor listings

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_doctor_cache_key(doctor_id: UUID) -> str:
        """Generate cache key for doctor."""
        return f"doctor:{doctor_id}"

    @staticmethod
    def _get_available_cache_key(
        on_date: date | None,
        specialization: str | None,
        department: str | None,
        search: str | None,
        limit: int,
    ) -> str:
        """Generate cache key for an available-doctor listing."""
        parts = (on_date, specialization, department, search, limit)
        return "doctor:list:available:" + ":".join("" if p is None else str(p) for p in parts)

    def _invalidate(self, doctor_id: UUID | None = None) -> None:
        if self.cache:
            if doctor_id is not None:
                self.cache.delete(self._get_doctor_cache_key(doctor_id))
            self.cache.delete_pattern("doctor:list:*")

    async def create_doctor(self, db: AsyncSession, doctor_data: DoctorCreate) -> DoctorResponse:
        """Create a new doctor profile."""
        values = doctor_data.model_dump(mode="json", exclude={"consultation_fee"})
        values["consultation_fee"] = doctor_data.consultation_fee
        values["email"] = values["email"].lower()

        query = doctors.insert().values(**values).returning(doctors)

        try:
            result = await db.execute(query)
        except IntegrityError:
            await db.rollback()
            raise ConflictException("A doctor with this email or license number already exists")
        await db.commit()

        doctor = result.mappings().first()
        if not doctor:
            raise ValueError("Failed to create doctor")

        self._invalidate()
        logger.info("doctor_created", doctor_id=str(doctor["id"]))
        return DoctorResponse.model_validate(dict(doctor))

    async def get_doctor_by_id(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """Get doctor by ID with caching."""
        if self.cache:
            cached = self.cache.get_json(self._get_doctor_cache_key(doctor_id))
            if cached:
                return cached

        query = select(doctors).where(doctors.c.id == doctor_id)
        result = await db.execute(query)
        doctor = result.mappings().first()

        if not doctor:
            return None

        doctor_dict = dict(doctor)

        if self.cache:
            self.cache.set_json(
                self._get_doctor_cache_key(doctor_id), doctor_dict, ttl=self.DOCTOR_CACHE_TTL
            )

        return doctor_dict

    async def get_doctor(self, db: AsyncSession, doctor_id: UUID) -> DoctorResponse:
        """
        Get a doctor or fail.

        Raises:
            NotFoundException: If doctor not found
        """
        doctor = await self.get_doctor_by_id(db, doctor_id)
        if not doctor:
            raise NotFoundException("Doctor not found")
        return DoctorResponse.model_validate(doctor)

    async def list_doctors(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: str | None = None,
        department: str | None = None,
        status: DoctorStatus | None = None,
    ) -> DoctorListResponse:
        """List doctors with search, filters and pagination."""
        conditions: list = []

        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    doctors.c.name.ilike(pattern),
                    doctors.c.specialization.ilike(pattern),
                    doctors.c.email.ilike(pattern),
                )
            )

        if department:
            conditions.append(doctors.c.department == department)

        if status:
            conditions.append(doctors.c.status == status.value)

        where = and_(*conditions) if conditions else True

        count_stmt = select(func.count()).select_from(doctors).where(where)
        total = (await db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(doctors)
            .where(where)
            .order_by(doctors.c.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = (await db.execute(stmt)).mappings().all()

        return DoctorListResponse(
            total=total,
            page=page,
            page_size=page_size,
            pages=math.ceil(total / page_size),
            items=[DoctorResponse.model_validate(dict(row)) for row in rows],
        )

    async def list_available_doctors(
        self,
        db: AsyncSession,
        on_date: date | None = None,
        specialization: str | None = None,
        department: str | None = None,
        search: str | None = None,
        limit: int = 20,
    ) -> AvailableDoctorsResponse:
        """Active doctors open for booking, narrowed to those working on ``on_date``."""
        cache_key = self._get_available_cache_key(
            on_date, specialization, department, search, limit
        )
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached:
                return AvailableDoctorsResponse.model_validate(cached)

        conditions: list[Any] = [doctors.c.status == DoctorStatus.ACTIVE.value]

        if specialization:
            conditions.append(doctors.c.specialization.ilike(f"%{specialization}%"))

        if department:
            conditions.append(doctors.c.department.ilike(f"%{department}%"))

        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    doctors.c.name.ilike(pattern),
                    doctors.c.specialization.ilike(pattern),
                    doctors.c.department.ilike(pattern),
                )
            )

        stmt = select(doctors).where(and_(*conditions)).order_by(doctors.c.name).limit(limit)
        rows = [dict(row) for row in (await db.execute(stmt)).mappings().all()]

        if on_date is not None:
            rows = [row for row in rows if is_day_available(row["availability"], on_date)]

        available = AvailableDoctorsResponse(
            total=len(rows),
            items=[DoctorResponse.model_validate(row) for row in rows],
            filters=await self.get_filter_options(db),
        )

        if self.cache:
            self.cache.set_json(
                cache_key, available.model_dump(mode="json"), ttl=self.DOCTOR_LIST_CACHE_TTL
            )

        return available

    async def get_filter_options(self, db: AsyncSession) -> DoctorFilterOptions:
        """Distinct specializations and departments among active doctors."""
        active = doctors.c.status == DoctorStatus.ACTIVE.value
        specializations = await db.execute(
            select(doctors.c.specialization).where(active).distinct()
        )
        departments = await db.execute(select(doctors.c.department).where(active).distinct())
        return DoctorFilterOptions(
            specializations=sorted(specializations.scalars().all()),
            departments=sorted(departments.scalars().all()),
        )

    async def update_doctor(
        self, db: AsyncSession, doctor_id: UUID, doctor_data: DoctorUpdate
    ) -> DoctorResponse:
        """
        Update doctor information.

        Raises:
            NotFoundException: If doctor not found
        """
        update_values = doctor_data.model_dump(
            mode="json", exclude_unset=True, exclude={"consultation_fee"}
        )
        if doctor_data.consultation_fee is not None:
            update_values["consultation_fee"] = doctor_data.consultation_fee
        update_values = {k: v for k, v in update_values.items() if v is not None}

        if not update_values:
            return await self.get_doctor(db, doctor_id)

        update_values["updated_at"] = datetime.now(UTC)

        query = (
            update(doctors)
            .where(doctors.c.id == doctor_id)
            .values(**update_values)
            .returning(doctors)
        )

        result = await db.execute(query)
        updated_doctor = result.mappings().first()
        await db.commit()

        if not updated_doctor:
            raise NotFoundException("Doctor not found")

        self._invalidate(doctor_id)
        logger.info("doctor_updated", doctor_id=str(doctor_id), fields=sorted(update_values))
        return DoctorResponse.model_validate(dict(updated_doctor))

    async def delete_doctor(self, db: AsyncSession, doctor_id: UUID) -> None:
        """
        Delete a doctor.

        Raises:
            NotFoundException: If doctor not found
        """
        result = await db.execute(delete(doctors).where(doctors.c.id == doctor_id))
        await db.commit()

        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise NotFoundException("Doctor not found")

        self._invalidate(doctor_id)
        logger.info("doctor_deleted", doctor_id=str(doctor_id))

    async def get_stats(self, db: AsyncSession) -> DoctorStatsResponse:
        """Doctor counts overall, by status, department and specialization."""
        status_rows = await db.execute(
            select(doctors.c.status, func.count()).group_by(doctors.c.status)
        )
        by_status = dict(status_rows.all())

        async def grouped(column: Any) -> list[GroupCount]:
            rows = await db.execute(
                select(column, func.count().label("count"))
                .group_by(column)
                .order_by(func.count().desc())
            )
            return [GroupCount(name=name, count=count) for name, count in rows.all()]

        return DoctorStatsResponse(
            total_doctors=sum(by_status.values()),
            active_doctors=by_status.get(DoctorStatus.ACTIVE.value, 0),
            on_leave_doctors=by_status.get(DoctorStatus.ON_LEAVE.value, 0),
            doctors_by_department=await grouped(doctors.c.department),
            doctors_by_specialization=await grouped(doctors.c.specialization),
        )
