"""Billing schemas for request/response validation."""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

MONEY_FIELDS = (
    "subtotal",
    "tax",
    "discount",
    "total_amount",
    "paid_amount",
    "balance",
)


class BillStatus(str, Enum):
    """Bill status enumeration."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    INSURANCE = "insurance"
    BANK_TRANSFER = "bank_transfer"
    ONLINE_PAYMENT = "online_payment"


class InsuranceInfo(BaseModel):
    """Insurance details attached to a bill."""

    name: str | None = None
    policy_number: str | None = None
    coverage_amount: Decimal | None = Field(None, ge=0)


class BillItemIn(BaseModel):
    """Line item as submitted by staff."""

    description: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)


class BillItemOut(BaseModel):
    """Line item with its computed total."""

    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal

    @field_serializer("unit_price", "total", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class BillCreate(BaseModel):
    """Schema for creating a bill."""

    patient_id: UUID
    appointment_id: UUID | None = None
    doctor_id: UUID | None = None
    due_date: dt.datetime | None = None
    items: list[BillItemIn] = Field(..., min_length=1)
    tax: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.CASH
    insurance: InsuranceInfo | None = None
    notes: str | None = Field(None, max_length=500)


class BillUpdate(BaseModel):
    """Schema for staff edits to a bill."""

    due_date: dt.datetime | None = None
    items: list[BillItemIn] | None = Field(None, min_length=1)
    tax: Decimal | None = Field(None, ge=0, decimal_places=2)
    discount: Decimal | None = Field(None, ge=0, decimal_places=2)
    paid_amount: Decimal | None = Field(None, ge=0, decimal_places=2)
    payment_method: PaymentMethod | None = None
    status: BillStatus | None = None
    insurance: InsuranceInfo | None = None
    notes: str | None = Field(None, max_length=500)


class PaymentCreate(BaseModel):
    """A payment added on top of what was already paid."""

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.CASH


class BillResponse(BaseModel):
    """Schema for bill response."""

    id: UUID
    bill_number: str
    patient_id: UUID
    appointment_id: UUID | None = None
    doctor_id: UUID | None = None
    bill_date: dt.datetime
    due_date: dt.datetime
    items: list[BillItemOut]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: BillStatus
    payment_method: PaymentMethod
    payment_date: dt.datetime | None = None
    insurance: InsuranceInfo | None = None
    notes: str | None = None
    generated_by: UUID
    payment_percentage: int = 0
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}

    @field_serializer(*MONEY_FIELDS, when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class BillListResponse(BaseModel):
    """Schema for paginated bill list response."""

    total: int
    page: int
    page_size: int
    pages: int
    items: list[BillResponse]


class BillFilters(BaseModel):
    """Schema for bill filtering."""

    status: BillStatus | None = None
    patient_id: UUID | None = None
    bill_number: str | None = None
    on_date: dt.date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


class RevenueSummary(BaseModel):
    """Money totals across all bills."""

    total_revenue: float
    total_paid: float
    total_pending: float


class MonthlyRevenue(BaseModel):
    """Billed amount for one month."""

    month: str
    revenue: float
    count: int


class BillStatusSummary(BaseModel):
    """Bills and billed amount in one status."""

    status: str
    count: int
    total_amount: float


class BillingStatsResponse(BaseModel):
    """Billing statistics for dashboards."""

    total_bills: int
    pending_bills: int
    paid_bills: int
    overdue_bills: int
    revenue: RevenueSummary
    monthly_revenue: list[MonthlyRevenue]
    bills_by_status: list[BillStatusSummary]
