"""Create patients table.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:10:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create patients table."""
    op.create_table(
        "patients",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("gender", sa.String(length=20), nullable=False),
        sa.Column("contact_number", sa.String(length=20), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("blood_group", sa.String(length=5), nullable=True),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("emergency_contact", sa.JSON(), nullable=True),
        sa.Column("medical_history", sa.JSON(), nullable=True),
        sa.Column("current_disease", sa.Text(), nullable=False),
        sa.Column("admitted_date", sa.Date(), nullable=False),
        sa.Column("discharge_date", sa.Date(), nullable=True),
        sa.Column("room_number", sa.String(length=20), nullable=True),
        sa.Column("bed_number", sa.String(length=20), nullable=True),
        sa.Column(
            "assigned_doctor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("doctors.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'admitted'")),
        sa.Column("notes", sa.Text(), nullable=True),
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
            "status IN ('admitted', 'discharged', 'transferred', 'under_observation')",
            name="patients_status_check",
        ),
        sa.CheckConstraint("age >= 0 AND age <= 150", name="patients_age_check"),
    )
    op.create_index("ix_patients_user_id", "patients", ["user_id"])
    op.create_index("ix_patients_name", "patients", ["name"])
    op.create_index("ix_patients_admitted_date", "patients", ["admitted_date"])
    op.create_index("ix_patients_assigned_doctor_id", "patients", ["assigned_doctor_id"])


def downgrade() -> None:
    """Drop patients table."""
    op.drop_table("patients")
