"""Appointment service for business logic."""

import math
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import Clock
from app.core.exceptions import (
    BadRequestException,
    BookingRejectedException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from app.core.redis_client import CacheManager
from app.engines.appointments import can_transition, is_past, is_terminal, is_today
from app.engines.availability import (
    BLOCKING_STATUSES,
    AppointmentDraft,
    AppointmentRequest,
    BookedSlot,
    BookingError,
    BookingOutcome,
    check_conflict,
    free_slots,
    try_book,
)
from app.models.appointments import SLOT_INDEX_NAME, appointments
from app.schemas.appointments import (
    AppointmentBase,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatsResponse,
    AppointmentStatus,
    AppointmentUpdate,
    AvailabilityCheck,
    AvailabilityCheckResponse,
    DailyCount,
    StatusCount,
)
from app.schemas.doctors import DoctorSlotsResponse, DoctorStatus
from app.schemas.users import STAFF_ROLES
from app.services.doctor_service import DoctorService
from app.services.patient_service import PatientService

logger = structlog.get_logger()

SLOT_FIELDS = ("doctor_id", "appointment_date", "appointment_time", "duration_minutes")
BLOCKING_VALUES = sorted(status.value for status in BLOCKING_STATUSES)


def _slot_conflict() -> BookingRejectedException:
    return BookingRejectedException(BookingOutcome(error=BookingError.SLOT_CONFLICT))


def _integrity_failure(exc: IntegrityError) -> BookingRejectedException | ConflictException:
    """Slot index violations read as a slot conflict; anything else is a bad reference."""
    if SLOT_INDEX_NAME in str(exc.orig):
        return _slot_conflict()
    return ConflictException("Appointment could not be saved; check the referenced records")


class AppointmentService:
    """Service for booking and managing appointments."""

    def __init__(self, db: AsyncSession, clock: Clock, cache_manager: CacheManager | None = None):
        """Initialize service with database session, clock and optional cache."""
        self.db = db
        self.clock = clock
        self.doctors = DoctorService(cache_manager)
        self.patients = PatientService()

    def _now(self) -> datetime:
        """Current time in the hospital's timezone, where appointment times live."""
        return self.clock.now().astimezone(ZoneInfo(settings.hospital_timezone))

    def _to_response(self, row: Mapping[str, Any]) -> AppointmentResponse:
        now = self._now()
        data = dict(row)
        data["is_past"] = is_past(data["appointment_date"], data["appointment_time"], now)
        data["is_today"] = is_today(data["appointment_date"], now)
        return AppointmentResponse.model_validate(data)

    async def _booked_slots(
        self, doctor_id: UUID, day: date, exclude_id: UUID | None = None
    ) -> list[BookedSlot]:
        """Blocking appointments a doctor already holds on ``day``."""
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_date == day,
            appointments.c.status.in_(BLOCKING_VALUES),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = select(
            appointments.c.doctor_id,
            appointments.c.appointment_date,
            appointments.c.appointment_time,
            appointments.c.status,
        ).where(and_(*conditions))
        rows = (await self.db.execute(stmt)).all()
        return [
            BookedSlot(
                doctor_id=row.doctor_id,
                date=row.appointment_date,
                time=row.appointment_time,
                status=AppointmentStatus(row.status),
            )
            for row in rows
        ]

    async def _run_booking_checks(
        self,
        doctor_id: UUID,
        day: date,
        at: time,
        duration_minutes: int,
        exclude_id: UUID | None = None,
    ) -> tuple[dict, AppointmentDraft]:
        """
        Evaluate a candidate slot against the doctor's schedule and bookings.

        Raises:
            BookingRejectedException: On the first failed check
        """
        doctor = await self.doctors.get_doctor_by_id(self.db, doctor_id)
        request = AppointmentRequest(
            doctor_id=doctor_id, date=day, time=at, duration_minutes=duration_minutes
        )
        existing = await self._booked_slots(doctor_id, day, exclude_id) if doctor else []

        outcome = try_book(
            request,
            doctor["status"] if doctor else None,
            doctor["availability"] if doctor else None,
            existing,
            self._now(),
        )
        if not outcome.ok or outcome.appointment is None or doctor is None:
            logger.info(
                "appointment_rejected",
                doctor_id=str(doctor_id),
                date=day.isoformat(),
                time=at.isoformat(),
                reason=outcome.error.value if outcome.error else None,
            )
            raise BookingRejectedException(outcome)
        return doctor, outcome.appointment

    async def _patient_id_for(self, user: Mapping[str, Any]) -> UUID | None:
        patient = await self.patients.get_patient_by_user_id(self.db, UUID(str(user["id"])))
        return patient["id"] if patient else None

    async def _ensure_patient_access(self, patient_id: UUID, user: Mapping[str, Any]) -> None:
        """
        Staff see every patient; patients only themselves.

        Raises:
            ForbiddenException: If the user is a patient asking about someone else
        """
        if user.get("role") in STAFF_ROLES:
            return
        if await self._patient_id_for(user) != patient_id:
            raise ForbiddenException("Access denied to this appointment")

    async def _get_row(self, appointment_id: UUID) -> dict:
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    async def check_availability(self, data: AvailabilityCheck) -> AvailabilityCheckResponse:
        """
        Run the booking checks for a default-length slot without booking it.

        Raises:
            BookingRejectedException: If the slot cannot be booked
        """
        doctor, _ = await self._run_booking_checks(
            data.doctor_id,
            data.appointment_date,
            data.appointment_time,
            settings.default_slot_minutes,
        )
        return AvailabilityCheckResponse(
            available=True,
            doctor_name=doctor["name"],
            specialization=doctor["specialization"],
            consultation_fee=float(doctor["consultation_fee"]),
        )

    async def book_appointment(
        self, patient_id: UUID, data: AppointmentBase
    ) -> AppointmentResponse:
        """
        Book an appointment for a patient.

        The pre-check gives early feedback; the partial unique index on the
        doctor's slot settles races between concurrent bookings.

        Raises:
            BookingRejectedException: If the slot is rejected or taken concurrently
        """
        _, draft = await self._run_booking_checks(
            data.doctor_id, data.appointment_date, data.appointment_time, data.duration_minutes
        )

        values = {
            "patient_id": patient_id,
            "doctor_id": draft.doctor_id,
            "appointment_date": draft.date,
            "appointment_time": draft.time,
            "duration_minutes": draft.duration_minutes,
            "status": draft.status.value,
            "type": data.type.value,
            "priority": data.priority.value,
            "reason": data.reason,
            "notes": data.notes,
            "symptoms": data.symptoms,
        }

        try:
            result = await self.db.execute(
                insert(appointments).values(**values).returning(appointments)
            )
        except IntegrityError as e:
            await self.db.rollback()
            failure = _integrity_failure(e)
            reason = (
                failure.reason.value
                if isinstance(failure, BookingRejectedException)
                else "invalid_reference"
            )
            logger.info(
                "appointment_rejected",
                doctor_id=str(draft.doctor_id),
                reason=reason,
                source="integrity_error",
            )
            raise failure
        await self.db.commit()

        row = result.mappings().one()
        logger.info(
            "appointment_booked",
            appointment_id=str(row["id"]),
            patient_id=str(patient_id),
            doctor_id=str(draft.doctor_id),
        )
        return self._to_response(row)

    async def book_for_user(
        self, user: Mapping[str, Any], data: AppointmentBase
    ) -> AppointmentResponse:
        """
        Book on behalf of the patient linked to ``user``.

        Raises:
            NotFoundException: If the user has no patient record
        """
        patient_id = await self._patient_id_for(user)
        if patient_id is None:
            raise NotFoundException("Patient profile not found")
        return await self.book_appointment(patient_id, data)

    async def create_appointment(self, data: AppointmentCreate) -> AppointmentResponse:
        """
        Staff booking for any patient.

        Raises:
            NotFoundException: If the patient does not exist
        """
        if not await self.patients.get_patient_by_id(self.db, data.patient_id):
            raise NotFoundException("Patient not found")
        return await self.book_appointment(data.patient_id, data)

    async def get_appointment(
        self, appointment_id: UUID, user: Mapping[str, Any]
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user doesn't have access
        """
        row = await self._get_row(appointment_id)
        await self._ensure_patient_access(row["patient_id"], user)
        return self._to_response(row)

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments
        """
        conditions: list = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.on_date:
            conditions.append(appointments.c.appointment_date == filters.on_date)

        return await self._paginate(
            conditions,
            filters.page,
            filters.page_size,
            appointments.c.appointment_date.desc(),
            appointments.c.appointment_time.desc(),
        )

    async def _paginate(
        self, conditions: list, page: int, page_size: int, *order_by: Any
    ) -> AppointmentListResponse:
        where = and_(*conditions) if conditions else True

        count_stmt = select(func.count()).select_from(appointments).where(where)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(appointments)
            .where(where)
            .order_by(*order_by)
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = (await self.db.execute(stmt)).mappings().all()

        return AppointmentListResponse(
            total=total,
            page=page,
            page_size=page_size,
            pages=math.ceil(total / page_size),
            items=[self._to_response(row) for row in rows],
        )

    async def list_patient_appointments(
        self,
        patient_id: UUID,
        user: Mapping[str, Any],
        status: AppointmentStatus | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> AppointmentListResponse:
        """All appointments of one patient, newest first."""
        await self._ensure_patient_access(patient_id, user)

        conditions = [appointments.c.patient_id == patient_id]
        if status:
            conditions.append(appointments.c.status == status.value)

        return await self._paginate(
            conditions,
            page,
            page_size,
            appointments.c.appointment_date.desc(),
            appointments.c.appointment_time.desc(),
        )

    async def list_upcoming(
        self, patient_id: UUID, user: Mapping[str, Any], limit: int = 5
    ) -> list[AppointmentResponse]:
        """Next scheduled or confirmed appointments of a patient, soonest first."""
        await self._ensure_patient_access(patient_id, user)

        now = self._now()
        today = now.date()
        stmt = (
            select(appointments)
            .where(
                and_(
                    appointments.c.patient_id == patient_id,
                    appointments.c.status.in_(
                        [AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value]
                    ),
                    or_(
                        appointments.c.appointment_date > today,
                        and_(
                            appointments.c.appointment_date == today,
                            appointments.c.appointment_time >= now.time(),
                        ),
                    ),
                )
            )
            .order_by(appointments.c.appointment_date, appointments.c.appointment_time)
            .limit(limit)
        )
        rows = (await self.db.execute(stmt)).mappings().all()
        return [self._to_response(row) for row in rows]

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
        user: Mapping[str, Any],
    ) -> AppointmentResponse:
        """
        Staff edit of an appointment.

        Status moves must follow the lifecycle; moving the slot re-runs every
        booking check against the new slot.

        Raises:
            NotFoundException: If appointment not found
            BadRequestException: If the status move is not allowed
            BookingRejectedException: If the new slot cannot be booked
        """
        row = await self._get_row(appointment_id)
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not changes:
            return self._to_response(row)

        current = AppointmentStatus(row["status"])
        target = AppointmentStatus(changes.get("status", current))

        if not can_transition(current, target):
            raise BadRequestException(
                f"Cannot change appointment status from {current.value} to {target.value}"
            )

        slot_changed = any(
            field in changes and changes[field] != row[field] for field in SLOT_FIELDS
        )
        if slot_changed and is_terminal(target):
            raise BadRequestException("Completed or cancelled appointments cannot be rescheduled")

        doctor_id = changes.get("doctor_id", row["doctor_id"])
        day = changes.get("appointment_date", row["appointment_date"])
        at = changes.get("appointment_time", row["appointment_time"])

        if slot_changed:
            await self._run_booking_checks(
                doctor_id,
                day,
                at,
                changes.get("duration_minutes", row["duration_minutes"]),
                exclude_id=appointment_id,
            )
        elif target in BLOCKING_STATUSES and current not in BLOCKING_STATUSES:
            # Re-opening a no-show takes the slot again
            existing = await self._booked_slots(doctor_id, day, exclude_id=appointment_id)
            if check_conflict(existing, doctor_id, day, at):
                raise _slot_conflict()

        update_values: dict[str, Any] = {
            field: value.value if isinstance(value, AppointmentStatus) else value
            for field, value in changes.items()
        }
        for field in ("type", "priority"):
            if field in update_values:
                update_values[field] = changes[field].value

        now = self.clock.now()
        if target == AppointmentStatus.CANCELLED and current != target:
            update_values["cancelled_at"] = now
            update_values["cancelled_by"] = UUID(str(user["id"]))
        update_values["updated_at"] = now

        try:
            result = await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(**update_values)
                .returning(appointments)
            )
        except IntegrityError as e:
            await self.db.rollback()
            raise _integrity_failure(e)
        await self.db.commit()

        updated = result.mappings().one()
        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            old_status=current.value,
            new_status=target.value,
            rescheduled=slot_changed,
        )
        return self._to_response(updated)

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        user: Mapping[str, Any],
        reason: str | None = None,
    ) -> AppointmentResponse:
        """
        Cancel an appointment as its patient or as staff.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If a patient cancels someone else's appointment
            BadRequestException: If the appointment is already completed or cancelled
        """
        row = await self._get_row(appointment_id)
        await self._ensure_patient_access(row["patient_id"], user)

        if is_terminal(row["status"]):
            raise BadRequestException("This appointment cannot be cancelled")

        now = self.clock.now()
        result = await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(
                status=AppointmentStatus.CANCELLED.value,
                cancellation_reason=reason,
                cancelled_by=UUID(str(user["id"])),
                cancelled_at=now,
                updated_at=now,
            )
            .returning(appointments)
        )
        await self.db.commit()

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            cancelled_by=str(user["id"]),
        )
        return self._to_response(result.mappings().one())

    async def delete_appointment(self, appointment_id: UUID) -> None:
        """
        Permanently delete an appointment.

        Raises:
            NotFoundException: If appointment not found
        """
        result = await self.db.execute(
            delete(appointments).where(appointments.c.id == appointment_id)
        )
        await self.db.commit()

        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise NotFoundException("Appointment not found")

        logger.info("appointment_deleted", appointment_id=str(appointment_id))

    async def available_slots(
        self, doctor_id: UUID, day: date, slot_minutes: int
    ) -> DoctorSlotsResponse:
        """
        Free slots of a doctor on ``day``, excluding booked and past ones.

        Raises:
            NotFoundException: If doctor not found
        """
        doctor = await self.doctors.get_doctor_by_id(self.db, doctor_id)
        if not doctor:
            raise NotFoundException("Doctor not found")

        slots: list[time] = []
        if doctor["status"] == DoctorStatus.ACTIVE:
            slots = free_slots(
                doctor["availability"],
                day,
                await self._booked_slots(doctor_id, day),
                doctor_id,
                slot_minutes=slot_minutes,
                not_before=self._now(),
            )

        return DoctorSlotsResponse(
            doctor_id=doctor_id,
            date=day,
            slot_minutes=slot_minutes,
            available=bool(slots),
            slots=[slot.strftime("%H:%M") for slot in slots],
        )

    async def get_stats(self) -> AppointmentStatsResponse:
        """Appointment counts for dashboards."""
        today = self._now().date()
        week_start = today - timedelta(days=6)

        status_rows = await self.db.execute(
            select(appointments.c.status, func.count()).group_by(appointments.c.status)
        )
        by_status = dict(status_rows.all())

        today_count = (
            await self.db.execute(
                select(func.count())
                .select_from(appointments)
                .where(appointments.c.appointment_date == today)
            )
        ).scalar() or 0

        daily_rows = await self.db.execute(
            select(appointments.c.appointment_date, func.count())
            .where(appointments.c.appointment_date.between(week_start, today))
            .group_by(appointments.c.appointment_date)
        )
        daily = dict(daily_rows.all())

        return AppointmentStatsResponse(
            total_appointments=sum(by_status.values()),
            today_appointments=today_count,
            pending_appointments=by_status.get(AppointmentStatus.SCHEDULED.value, 0)
            + by_status.get(AppointmentStatus.CONFIRMED.value, 0),
            completed_appointments=by_status.get(AppointmentStatus.COMPLETED.value, 0),
            weekly_appointments=[
                DailyCount(date=day, count=daily.get(day, 0))
                for day in (week_start + timedelta(days=offset) for offset in range(7))
            ],
            appointments_by_status=[
                StatusCount(status=status, count=count)
                for status, count in sorted(by_status.items())
            ],
        )
