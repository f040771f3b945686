"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.metadata import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # Optional login account for the doctor
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    ),
    # Identity and contact
    Column("name", String(100), nullable=False, index=True),
    Column("email", Text, nullable=False, unique=True),
    Column("contact_number", String(20), nullable=False),
    # Professional credentials
    Column("license_number", String(100), nullable=False, unique=True),
    Column("specialization", String(200), nullable=False, index=True),
    Column("department", String(200), nullable=False, index=True),
    Column("experience_years", Integer),
    Column("education", JSON),
    # Practice information
    Column("consultation_fee", Numeric(10, 2), nullable=False),
    # {"monday": {"available": true, "start": "09:00", "end": "17:00"}, ...}
    Column("availability", JSON, nullable=False),
    Column("status", Text, nullable=False, server_default=text("'active'"), index=True),
    Column("avatar", Text),
    Column("bio", Text),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "status IN ('active', 'inactive', 'on_leave')",
        name="doctors_status_check",
    ),
    CheckConstraint("consultation_fee >= 0", name="doctors_fee_check"),
)
