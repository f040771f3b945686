"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.metadata import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True,
    ),
    # Personal information
    Column("name", String(100), nullable=False, index=True),
    Column("age", Integer, nullable=False),
    Column("gender", String(20), nullable=False),
    Column("contact_number", String(20), nullable=False),
    Column("email", Text),
    Column("blood_group", String(5)),
    # Address and emergency contact (JSON for flexibility)
    Column("address", JSON),
    Column("emergency_contact", JSON),
    # Medical information
    Column("medical_history", JSON),
    Column("current_disease", Text, nullable=False),
    # Admission
    Column("admitted_date", Date, nullable=False, index=True),
    Column("discharge_date", Date),
    Column("room_number", String(20)),
    Column("bed_number", String(20)),
    Column(
        "assigned_doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="SET NULL"),
        index=True,
    ),
    Column("status", Text, nullable=False, server_default=text("'admitted'")),
    Column("notes", Text),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "status IN ('admitted', 'discharged', 'transferred', 'under_observation')",
        name="patients_status_check",
    ),
    CheckConstraint("age >= 0 AND age <= 150", name="patients_age_check"),
)
