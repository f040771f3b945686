"""Create bills table.

Revision ID: 004
Revises: 003
Create Date: 2026-10-18 00:30:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(12, 2)


def upgrade() -> None:
    """Create bills table."""
    op.create_table(
        "bills",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("bill_number", sa.String(length=40), nullable=False, unique=True),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "appointment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("appointments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "doctor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("doctors.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "generated_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "bill_date",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column("due_date", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("payment_date", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("subtotal", MONEY, nullable=False),
        sa.Column("tax", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("paid_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("balance", MONEY, nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_method", sa.Text(), nullable=False, server_default=sa.text("'cash'")),
        sa.Column("insurance", sa.JSON(), nullable=True),
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
            "status IN ('pending', 'partial', 'paid', 'overdue', 'cancelled')",
            name="bills_status_check",
        ),
        sa.CheckConstraint(
            "payment_method IN ('cash', 'credit_card', 'debit_card', 'insurance', "
            "'bank_transfer', 'online_payment')",
            name="bills_payment_method_check",
        ),
        sa.CheckConstraint(
            "tax >= 0 AND discount >= 0 AND paid_amount >= 0 AND total_amount >= 0",
            name="bills_amounts_check",
        ),
    )
    op.create_index("ix_bills_patient_id", "bills", ["patient_id"])
    op.create_index("ix_bills_status_due_date", "bills", ["status", "due_date"])
    op.create_index("ix_bills_bill_date", "bills", ["bill_date"])


def downgrade() -> None:
    """Drop bills table."""
    op.drop_table("bills")
