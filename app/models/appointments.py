"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    Time,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.metadata import metadata

# Statuses that hold a slot; must match app.engines.availability.BLOCKING_STATUSES
BLOCKING_STATUS_SQL = "status IN ('scheduled', 'confirmed', 'in_progress')"
SLOT_INDEX_NAME = "uq_appointments_doctor_slot"

appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # Ownership / references
    Column(
        "patient_id",
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Slot
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    Column("duration_minutes", Integer, nullable=False, server_default=text("30")),
    # Appointment details
    Column("type", Text, nullable=False, server_default="consultation"),
    Column("priority", Text, nullable=False, server_default="medium"),
    Column("reason", Text, nullable=False),
    Column("notes", Text, nullable=True),
    Column("symptoms", JSON, nullable=True),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="scheduled",
    ),
    Column("reminder_sent", Boolean, nullable=False, server_default=text("false")),
    Column("reminder_date", TIMESTAMP(timezone=True), nullable=True),
    Column("cancellation_reason", Text, nullable=True),
    Column("cancelled_by", UUID(as_uuid=True), nullable=True),
    Column("cancelled_at", TIMESTAMP(timezone=True), nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "type IN ('consultation', 'follow_up', 'emergency', 'routine_checkup')",
        name="appointments_type_check",
    ),
    CheckConstraint(
        "priority IN ('low', 'medium', 'high', 'urgent')",
        name="appointments_priority_check",
    ),
    CheckConstraint(
        "duration_minutes BETWEEN 15 AND 180",
        name="appointments_duration_check",
    ),
)

Index("ix_appointments_patient_date", appointments.c.patient_id, appointments.c.appointment_date)
Index("ix_appointments_doctor_date", appointments.c.doctor_id, appointments.c.appointment_date)
Index("ix_appointments_status_date", appointments.c.status, appointments.c.appointment_date)

# Authoritative double-booking guard; the service pre-check only gives early feedback.
Index(
    SLOT_INDEX_NAME,
    appointments.c.doctor_id,
    appointments.c.appointment_date,
    appointments.c.appointment_time,
    unique=True,
    postgresql_where=text(BLOCKING_STATUS_SQL),
)
