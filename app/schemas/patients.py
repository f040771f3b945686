"""Patient schemas for request/response validation."""

import datetime as dt
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class Gender(str, Enum):
    """Patient gender."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class BloodGroup(str, Enum):
    """ABO/Rh blood group."""

    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


class PatientStatus(str, Enum):
    """Admission status."""

    ADMITTED = "admitted"
    DISCHARGED = "discharged"
    TRANSFERRED = "transferred"
    UNDER_OBSERVATION = "under_observation"


class Address(BaseModel):
    """Postal address."""

    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None


class EmergencyContact(BaseModel):
    """Person to call in an emergency."""

    name: str | None = None
    relationship: str | None = None
    phone: str | None = None


class MedicalCondition(BaseModel):
    """One entry of the medical history."""

    condition: str
    diagnosed_date: dt.date | None = None
    status: str = Field(default="active", pattern="^(active|resolved|chronic)$")


class PatientBase(BaseModel):
    """Base patient schema with common fields."""

    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=0, le=150)
    gender: Gender
    contact_number: str = Field(..., pattern=r"^\+?[1-9]\d{0,15}$")
    email: EmailStr | None = None
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    blood_group: BloodGroup | None = None
    medical_history: list[MedicalCondition] = Field(default_factory=list)
    current_disease: str = Field(..., min_length=1)
    admitted_date: dt.date
    discharge_date: dt.date | None = None
    room_number: str | None = None
    bed_number: str | None = None
    assigned_doctor_id: UUID | None = None
    status: PatientStatus = PatientStatus.ADMITTED
    notes: str | None = Field(None, max_length=500)


class PatientCreate(PatientBase):
    """Schema for creating a patient record."""

    user_id: UUID | None = None


class PatientUpdate(BaseModel):
    """Schema for updating a patient record."""

    name: str | None = Field(None, min_length=1, max_length=100)
    age: int | None = Field(None, ge=0, le=150)
    gender: Gender | None = None
    contact_number: str | None = Field(None, pattern=r"^\+?[1-9]\d{0,15}$")
    email: EmailStr | None = None
    address: Address | None = None
    emergency_contact: EmergencyContact | None = None
    blood_group: BloodGroup | None = None
    medical_history: list[MedicalCondition] | None = None
    current_disease: str | None = Field(None, min_length=1)
    discharge_date: dt.date | None = None
    room_number: str | None = None
    bed_number: str | None = None
    assigned_doctor_id: UUID | None = None
    status: PatientStatus | None = None
    notes: str | None = Field(None, max_length=500)


class PatientResponse(PatientBase):
    """Schema for patient response."""

    id: UUID
    user_id: UUID | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class PatientListResponse(BaseModel):
    """Schema for paginated patient list response."""

    total: int
    page: int
    page_size: int
    pages: int
    items: list[PatientResponse]


class DailyAdmissions(BaseModel):
    """Number of patients admitted on one day."""

    date: dt.date
    count: int


class PatientStatsResponse(BaseModel):
    """Patient statistics for dashboards."""

    total_patients: int
    admitted_patients: int
    discharged_patients: int
    under_observation_patients: int
    weekly_admissions: list[DailyAdmissions]
