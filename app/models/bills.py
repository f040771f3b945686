"""Bills table model using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Numeric,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.metadata import metadata

bills = Table(
    "bills",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("bill_number", String(40), nullable=False, unique=True),
    # References
    Column(
        "patient_id",
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "appointment_id",
        UUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="SET NULL"),
    ),
    Column("doctor_id", UUID(as_uuid=True), ForeignKey("doctors.id", ondelete="SET NULL")),
    Column("generated_by", UUID(as_uuid=True), ForeignKey("users.id"), nullable=False),
    # Dates
    Column("bill_date", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("due_date", TIMESTAMP(timezone=True), nullable=False),
    Column("payment_date", TIMESTAMP(timezone=True)),
    # [{"description", "quantity", "unit_price", "total"}]
    Column("items", JSON, nullable=False),
    # Derived money fields are written by the billing engine only
    Column("subtotal", Numeric(12, 2), nullable=False),
    Column("tax", Numeric(12, 2), nullable=False, server_default=text("0")),
    Column("discount", Numeric(12, 2), nullable=False, server_default=text("0")),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("paid_amount", Numeric(12, 2), nullable=False, server_default=text("0")),
    Column("balance", Numeric(12, 2), nullable=False),
    Column("status", Text, nullable=False, server_default=text("'pending'")),
    Column("payment_method", Text, nullable=False, server_default=text("'cash'")),
    Column("insurance", JSON),
    Column("notes", Text),
    # Audit
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "status IN ('pending', 'partial', 'paid', 'overdue', 'cancelled')",
        name="bills_status_check",
    ),
    CheckConstraint(
        "payment_method IN ('cash', 'credit_card', 'debit_card', 'insurance', "
        "'bank_transfer', 'online_payment')",
        name="bills_payment_method_check",
    ),
    CheckConstraint(
        "tax >= 0 AND discount >= 0 AND paid_amount >= 0 AND total_amount >= 0",
        name="bills_amounts_check",
    ),
)

Index("ix_bills_status_due_date", bills.c.status, bills.c.due_date)
Index("ix_bills_bill_date", bills.c.bill_date)
