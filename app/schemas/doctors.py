"""Doctor schemas for request/response validation."""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_serializer, model_validator

# ============================================================================
# Availability Schemas
# ============================================================================


class DoctorStatus(str, Enum):
    """Doctor employment status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"


class DayAvailability(BaseModel):
    """Working window for one weekday."""

    available: bool = True
    start: dt.time | None = None
    end: dt.time | None = None

    @model_validator(mode="after")
    def validate_window(self) -> "DayAvailability":
        """An available day needs a same-day start before its end."""
        if self.available:
            if self.start is None or self.end is None:
                raise ValueError("Available days need both start and end times")
            if self.start >= self.end:
                raise ValueError("Start time must be before end time")
        return self

    @field_serializer("start", "end")
    def serialize_time(self, value: dt.time | None) -> str | None:
        """Store times as HH:MM strings."""
        return value.strftime("%H:%M") if value is not None else None


def _weekday(available: bool) -> DayAvailability:
    if available:
        return DayAvailability(available=True, start=dt.time(9), end=dt.time(17))
    return DayAvailability(available=False)


class WeeklyAvailability(BaseModel):
    """Availability for the seven fixed weekdays."""

    monday: DayAvailability = Field(default_factory=lambda: _weekday(True))
    tuesday: DayAvailability = Field(default_factory=lambda: _weekday(True))
    wednesday: DayAvailability = Field(default_factory=lambda: _weekday(True))
    thursday: DayAvailability = Field(default_factory=lambda: _weekday(True))
    friday: DayAvailability = Field(default_factory=lambda: _weekday(True))
    saturday: DayAvailability = Field(default_factory=lambda: _weekday(False))
    sunday: DayAvailability = Field(default_factory=lambda: _weekday(False))


class Education(BaseModel):
    """One degree held by a doctor."""

    degree: str
    institution: str
    year: int | None = Field(None, ge=1900, le=2100)


# ============================================================================
# Doctor Base Schemas
# ============================================================================


class DoctorBase(BaseModel):
    """Base schema for doctor."""

    name: str = Field(..., min_length=1, max_length=100)
    specialization: str = Field(..., min_length=1, max_length=200)
    department: str = Field(..., min_length=1, max_length=200)
    contact_number: str = Field(..., pattern=r"^\+?[1-9]\d{0,15}$")
    email: EmailStr
    license_number: str = Field(..., min_length=1, max_length=100)
    experience_years: int | None = Field(None, ge=0, le=50)
    education: list[Education] = Field(default_factory=list)
    consultation_fee: Decimal = Field(..., ge=0, decimal_places=2)
    bio: str | None = Field(None, max_length=500)
    avatar: str | None = None


class DoctorCreate(DoctorBase):
    """Schema for creating a doctor."""

    availability: WeeklyAvailability = Field(default_factory=WeeklyAvailability)
    status: DoctorStatus = DoctorStatus.ACTIVE


class DoctorUpdate(BaseModel):
    """Schema for updating a doctor."""

    name: str | None = Field(None, min_length=1, max_length=100)
    specialization: str | None = Field(None, min_length=1, max_length=200)
    department: str | None = Field(None, min_length=1, max_length=200)
    contact_number: str | None = Field(None, pattern=r"^\+?[1-9]\d{0,15}$")
    experience_years: int | None = Field(None, ge=0, le=50)
    education: list[Education] | None = None
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    availability: WeeklyAvailability | None = None
    status: DoctorStatus | None = None
    bio: str | None = Field(None, max_length=500)
    avatar: str | None = None


class DoctorResponse(DoctorBase):
    """Doctor response schema."""

    id: UUID
    availability: dict
    status: DoctorStatus
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class DoctorListResponse(BaseModel):
    """Paginated doctor list."""

    total: int
    page: int
    page_size: int
    pages: int
    items: list[DoctorResponse]


class DoctorFilterOptions(BaseModel):
    """Distinct values usable as filters in the booking UI."""

    specializations: list[str]
    departments: list[str]


class AvailableDoctorsResponse(BaseModel):
    """Doctors open for booking, optionally on a given date."""

    total: int
    items: list[DoctorResponse]
    filters: DoctorFilterOptions


class DoctorSlotsResponse(BaseModel):
    """Free slots for one doctor on one date."""

    doctor_id: UUID
    date: dt.date
    slot_minutes: int
    available: bool
    slots: list[str]


class GroupCount(BaseModel):
    """Count of doctors sharing one attribute value."""

    name: str
    count: int


class DoctorStatsResponse(BaseModel):
    """Doctor statistics for dashboards."""

    total_doctors: int
    active_doctors: int
    on_leave_doctors: int
    doctors_by_department: list[GroupCount]
    doctors_by_specialization: list[GroupCount]
