"""Create appointments table with the per-slot unique index.

Revision ID: 003
Revises: 002
Create Date: 2026-10-18 00:20:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create appointments table."""
    op.create_table(
        "appointments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "doctor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("doctors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("type", sa.Text(), nullable=False, server_default="consultation"),
        sa.Column("priority", sa.Text(), nullable=False, server_default="medium"),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("symptoms", sa.JSON(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="scheduled"),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reminder_date", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("cancelled_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', "
            "'no_show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "type IN ('consultation', 'follow_up', 'emergency', 'routine_checkup')",
            name="appointments_type_check",
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')",
            name="appointments_priority_check",
        ),
        sa.CheckConstraint(
            "duration_minutes BETWEEN 15 AND 180",
            name="appointments_duration_check",
        ),
    )

    op.create_index(
        "ix_appointments_patient_date", "appointments", ["patient_id", "appointment_date"]
    )
    op.create_index(
        "ix_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"]
    )
    op.create_index("ix_appointments_status_date", "appointments", ["status", "appointment_date"])

    # One holder per doctor slot among scheduled/confirmed/in-progress appointments
    op.create_index(
        "uq_appointments_doctor_slot",
        "appointments",
        ["doctor_id", "appointment_date", "appointment_time"],
        unique=True,
        postgresql_where=sa.text("status IN ('scheduled', 'confirmed', 'in_progress')"),
    )


def downgrade() -> None:
    """Drop appointments table."""
    op.drop_index("uq_appointments_doctor_slot", table_name="appointments")
    op.drop_index("ix_appointments_status_date", table_name="appointments")
    op.drop_index("ix_appointments_doctor_date", table_name="appointments")
    op.drop_index("ix_appointments_patient_date", table_name="appointments")
    op.drop_table("appointments")
