"""Billing endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import ClockDep, CurrentUser, DatabaseSession, StaffUser
from app.schemas.billing import (
    BillCreate,
    BillFilters,
    BillingStatsResponse,
    BillListResponse,
    BillResponse,
    BillStatus,
    BillUpdate,
    PaymentCreate,
)
from app.services.billing_service import BillingService

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.get("", response_model=BillListResponse)
async def list_bills(
    current_user: CurrentUser,
    db: DatabaseSession,
    clock: ClockDep,
    status_filter: BillStatus | None = Query(None, alias="status"),
    patient_id: UUID | None = Query(None),
    bill_number: str | None = Query(None, min_length=1, max_length=40),
    on_date: date | None = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
):
    """List bills; staff see all bills, patients only their own."""
    filters = BillFilters(
        status=status_filter,
        patient_id=patient_id,
        bill_number=bill_number,
        on_date=on_date,
        page=page,
        page_size=page_size,
    )
    return await BillingService(db, clock).list_bills(filters, current_user)


@router.get("/stats/overview", response_model=BillingStatsResponse)
async def get_billing_stats(_: StaffUser, db: DatabaseSession, clock: ClockDep):
    """Bill counts and revenue, including the last six months."""
    return await BillingService(db, clock).get_stats()


@router.post("", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
async def create_bill(
    bill_data: BillCreate,
    current_user: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
):
    """Create a bill; totals, balance and status are derived from the items."""
    return await BillingService(db, clock).create_bill(bill_data, current_user)


@router.get("/{bill_id}", response_model=BillResponse)
async def get_bill(bill_id: UUID, current_user: CurrentUser, db: DatabaseSession, clock: ClockDep):
    """Get a bill by ID."""
    return await BillingService(db, clock).get_bill(bill_id, current_user)


@router.put("/{bill_id}", response_model=BillResponse)
async def update_bill(
    bill_id: UUID,
    bill_data: BillUpdate,
    _: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
):
    """Edit a bill and recompute its derived fields."""
    return await BillingService(db, clock).update_bill(bill_id, bill_data)


@router.post("/{bill_id}/payments", response_model=BillResponse)
async def record_payment(
    bill_id: UUID,
    payment: PaymentCreate,
    _: StaffUser,
    db: DatabaseSession,
    clock: ClockDep,
):
    """Add a payment to a bill."""
    return await BillingService(db, clock).record_payment(bill_id, payment)


@router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bill(bill_id: UUID, _: StaffUser, db: DatabaseSession, clock: ClockDep) -> None:
    """Delete a bill."""
    await BillingService(db, clock).delete_bill(bill_id)
