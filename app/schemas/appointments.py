"""Appointment schemas for request/response validation."""

import datetime as dt
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentType(str, Enum):
    """Appointment type enumeration."""

    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    EMERGENCY = "emergency"
    ROUTINE_CHECKUP = "routine_checkup"


class AppointmentPriority(str, Enum):
    """Appointment priority enumeration."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AvailabilityCheck(BaseModel):
    """Schema for checking a slot before booking."""

    doctor_id: UUID
    appointment_date: dt.date
    appointment_time: dt.time


class AvailabilityCheckResponse(BaseModel):
    """Schema for a successful availability check."""

    available: bool
    doctor_name: str
    specialization: str
    consultation_fee: float


class AppointmentBase(BaseModel):
    """Base appointment schema with common fields."""

    doctor_id: UUID
    appointment_date: dt.date
    appointment_time: dt.time
    duration_minutes: int = Field(default=30, ge=15, le=180)
    type: AppointmentType = AppointmentType.CONSULTATION
    priority: AppointmentPriority = AppointmentPriority.MEDIUM
    reason: str = Field(..., min_length=1, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    symptoms: list[str] = Field(default_factory=list)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        """Reject reasons that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Appointment reason is required")
        return v

    @field_validator("symptoms")
    @classmethod
    def validate_symptoms(cls, v: list[str]) -> list[str]:
        """Trim symptoms and cap their length."""
        cleaned = [s.strip() for s in v if s and s.strip()]
        if any(len(s) > 100 for s in cleaned):
            raise ValueError("Symptom cannot exceed 100 characters")
        return cleaned


class PatientAppointmentCreate(AppointmentBase):
    """Schema for a patient booking for themselves."""


class AppointmentCreate(AppointmentBase):
    """Schema for staff creating an appointment for any patient."""

    patient_id: UUID


class AppointmentUpdate(BaseModel):
    """Schema for staff updating an existing appointment."""

    doctor_id: UUID | None = None
    appointment_date: dt.date | None = None
    appointment_time: dt.time | None = None
    duration_minutes: int | None = Field(None, ge=15, le=180)
    status: AppointmentStatus | None = None
    type: AppointmentType | None = None
    priority: AppointmentPriority | None = None
    reason: str | None = Field(None, min_length=1, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    symptoms: list[str] | None = None


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""

    cancellation_reason: str | None = Field(None, max_length=200)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    appointment_date: dt.date
    appointment_time: dt.time
    duration_minutes: int
    status: AppointmentStatus
    type: AppointmentType
    priority: AppointmentPriority
    reason: str
    notes: str | None = None
    symptoms: list[str] | None = None
    cancellation_reason: str | None = None
    cancelled_by: UUID | None = None
    cancelled_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime
    is_past: bool = False
    is_today: bool = False

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    pages: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    on_date: dt.date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


class DailyCount(BaseModel):
    """Number of appointments on one day."""

    date: dt.date
    count: int


class StatusCount(BaseModel):
    """Number of appointments in one status."""

    status: str
    count: int


class AppointmentStatsResponse(BaseModel):
    """Appointment statistics for dashboards."""

    total_appointments: int
    today_appointments: int
    pending_appointments: int
    completed_appointments: int
    weekly_appointments: list[DailyCount]
    appointments_by_status: list[StatusCount]
