"""Billing service for business logic."""

import math
import secrets
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, case, delete, func, literal_column, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import Clock
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    InvalidLineItemException,
    NotFoundException,
)
from app.engines.billing import (
    Bill,
    BillLineItem,
    InvalidLineItem,
    build_line_items,
    derive_status,
    items_payload,
    payment_percentage,
    recompute,
)
from app.models.bills import bills
from app.schemas.billing import (
    BillCreate,
    BillFilters,
    BillingStatsResponse,
    BillItemIn,
    BillListResponse,
    BillResponse,
    BillStatus,
    BillStatusSummary,
    BillUpdate,
    MonthlyRevenue,
    PaymentCreate,
    RevenueSummary,
)
from app.schemas.users import STAFF_ROLES
from app.services.patient_service import PatientService

logger = structlog.get_logger()

OPEN_STATUSES = (BillStatus.PENDING.value, BillStatus.PARTIAL.value, BillStatus.OVERDUE.value)


def status_expression(status: Any, balance: Any, paid_amount: Any, due_date: Any, now: datetime):
    """SQL counterpart of :func:`app.engines.billing.derive_status`."""
    return case(
        (status == BillStatus.CANCELLED.value, BillStatus.CANCELLED.value),
        (balance <= 0, BillStatus.PAID.value),
        (paid_amount > 0, BillStatus.PARTIAL.value),
        (and_(due_date.is_not(None), due_date < now), BillStatus.OVERDUE.value),
        else_=BillStatus.PENDING.value,
    )


def derived_status(now: datetime):
    """Bill status as reads report it at ``now``, not the stored column."""
    return status_expression(
        bills.c.status, bills.c.balance, bills.c.paid_amount, bills.c.due_date, now
    )


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _line_items(items: list[BillItemIn] | list[dict]) -> tuple[BillLineItem, ...]:
    """
    Build engine line items from request or stored items.

    Raises:
        InvalidLineItemException: If an item is malformed
    """
    raw = [item.model_dump() if isinstance(item, BillItemIn) else item for item in items]
    built = build_line_items(raw)
    if isinstance(built, InvalidLineItem):
        raise InvalidLineItemException(built)
    return built


def _money_values(bill: Bill) -> dict[str, Any]:
    return {
        "items": items_payload(bill.items),
        "subtotal": bill.subtotal,
        "tax": bill.tax,
        "discount": bill.discount,
        "total_amount": bill.total_amount,
        "paid_amount": bill.paid_amount,
        "balance": bill.balance,
        "status": bill.status.value,
        "due_date": bill.due_date,
    }


class BillingService:
    """Service for bills and payments."""

    def __init__(self, db: AsyncSession, clock: Clock):
        """Initialize service with database session and clock."""
        self.db = db
        self.clock = clock
        self.patients = PatientService()

    @staticmethod
    def generate_bill_number(now: datetime) -> str:
        """Bill numbers look like ``BILL-20250101-1A2B3C``."""
        return f"BILL-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"

    def _to_response(self, row: Mapping[str, Any]) -> BillResponse:
        """Build the response, re-deriving status so overdue bills show as such."""
        data = dict(row)
        data["status"] = derive_status(
            BillStatus(data["status"]),
            data["balance"],
            data["paid_amount"],
            data["due_date"],
            self.clock.now(),
        )
        data["payment_percentage"] = payment_percentage(data["total_amount"], data["paid_amount"])
        return BillResponse.model_validate(data)

    async def _get_row(self, bill_id: UUID) -> dict:
        result = await self.db.execute(select(bills).where(bills.c.id == bill_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Bill not found")
        return dict(row)

    async def _own_patient_id(self, user: Mapping[str, Any]) -> UUID | None:
        patient = await self.patients.get_patient_by_user_id(self.db, UUID(str(user["id"])))
        return patient["id"] if patient else None

    async def create_bill(self, data: BillCreate, user: Mapping[str, Any]) -> BillResponse:
        """
        Create a bill with derived totals and status.

        Raises:
            NotFoundException: If the patient does not exist
            InvalidLineItemException: If a line item is malformed
            ConflictException: If the bill cannot be stored
        """
        if not await self.patients.get_patient_by_id(self.db, data.patient_id):
            raise NotFoundException("Patient not found")

        now = self.clock.now()
        due_date = _aware(data.due_date) if data.due_date else now + timedelta(
            days=settings.default_bill_due_days
        )
        bill = recompute(
            Bill(
                items=_line_items(data.items),
                tax=data.tax,
                discount=data.discount,
                paid_amount=data.paid_amount,
                due_date=due_date,
            ),
            now,
        )

        values = {
            **_money_values(bill),
            "bill_number": self.generate_bill_number(now),
            "patient_id": data.patient_id,
            "appointment_id": data.appointment_id,
            "doctor_id": data.doctor_id,
            "generated_by": UUID(str(user["id"])),
            "bill_date": now,
            "payment_date": now if bill.paid_amount > 0 else None,
            "payment_method": data.payment_method.value,
            "insurance": data.insurance.model_dump(mode="json") if data.insurance else None,
            "notes": data.notes,
        }

        try:
            result = await self.db.execute(bills.insert().values(**values).returning(bills))
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("Bill could not be saved; check the referenced records")
        await self.db.commit()

        row = result.mappings().one()
        logger.info(
            "bill_created",
            bill_id=str(row["id"]),
            bill_number=row["bill_number"],
            total_amount=str(bill.total_amount),
            status=bill.status.value,
        )
        return self._to_response(row)

    async def get_bill(self, bill_id: UUID, user: Mapping[str, Any]) -> BillResponse:
        """
        Get a bill by ID.

        Raises:
            NotFoundException: If bill not found
            ForbiddenException: If a patient asks for someone else's bill
        """
        row = await self._get_row(bill_id)
        if user.get("role") not in STAFF_ROLES:
            if await self._own_patient_id(user) != row["patient_id"]:
                raise ForbiddenException("Access denied to this bill")
        return self._to_response(row)

    async def list_bills(self, filters: BillFilters, user: Mapping[str, Any]) -> BillListResponse:
        """List bills; patients only ever see their own."""
        conditions: list = []

        if user.get("role") in STAFF_ROLES:
            if filters.patient_id:
                conditions.append(bills.c.patient_id == filters.patient_id)
        else:
            own_id = await self._own_patient_id(user)
            if own_id is None:
                return BillListResponse(
                    total=0, page=filters.page, page_size=filters.page_size, pages=0, items=[]
                )
            conditions.append(bills.c.patient_id == own_id)

        if filters.status:
            conditions.append(derived_status(self.clock.now()) == filters.status.value)

        if filters.bill_number:
            conditions.append(bills.c.bill_number.ilike(f"%{filters.bill_number}%"))

        if filters.on_date:
            conditions.append(func.date(bills.c.bill_date) == filters.on_date)

        where = and_(*conditions) if conditions else True

        total = (
            await self.db.execute(select(func.count()).select_from(bills).where(where))
        ).scalar() or 0

        stmt = (
            select(bills)
            .where(where)
            .order_by(bills.c.bill_date.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
        rows = (await self.db.execute(stmt)).mappings().all()

        return BillListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            pages=math.ceil(total / filters.page_size),
            items=[self._to_response(row) for row in rows],
        )

    async def update_bill(self, bill_id: UUID, data: BillUpdate) -> BillResponse:
        """
        Apply staff edits and recompute every derived field.

        Setting ``status`` to cancelled is the only status override; any other
        requested status re-opens the bill and lets the money decide.

        Raises:
            NotFoundException: If bill not found
            InvalidLineItemException: If a line item is malformed
        """
        row = await self._get_row(bill_id)
        changes = data.model_dump(exclude_unset=True)
        now = self.clock.now()

        items = _line_items(data.items) if data.items is not None else _line_items(row["items"])

        status = BillStatus(row["status"])
        if data.status == BillStatus.CANCELLED:
            status = BillStatus.CANCELLED
        elif data.status is not None:
            status = BillStatus.PENDING

        paid_amount = data.paid_amount if data.paid_amount is not None else row["paid_amount"]
        bill = recompute(
            Bill(
                items=items,
                tax=data.tax if data.tax is not None else row["tax"],
                discount=data.discount if data.discount is not None else row["discount"],
                paid_amount=paid_amount,
                due_date=_aware(data.due_date) if data.due_date else row["due_date"],
                status=status,
            ),
            now,
        )

        values = {**_money_values(bill), "updated_at": now}
        if paid_amount > row["paid_amount"]:
            values["payment_date"] = now
        if data.payment_method is not None:
            values["payment_method"] = data.payment_method.value
        if "insurance" in changes:
            values["insurance"] = data.insurance.model_dump(mode="json") if data.insurance else None
        if "notes" in changes:
            values["notes"] = data.notes

        result = await self.db.execute(
            update(bills).where(bills.c.id == bill_id).values(**values).returning(bills)
        )
        await self.db.commit()

        logger.info(
            "bill_updated",
            bill_id=str(bill_id),
            old_status=row["status"],
            new_status=bill.status.value,
            balance=str(bill.balance),
        )
        return self._to_response(result.mappings().one())

    async def record_payment(self, bill_id: UUID, payment: PaymentCreate) -> BillResponse:
        """
        Add a payment to a bill.

        Raises:
            NotFoundException: If bill not found
            BadRequestException: If the bill is cancelled
        """
        row = await self._get_row(bill_id)
        if row["status"] == BillStatus.CANCELLED.value:
            raise BadRequestException("Cannot record a payment on a cancelled bill")

        now = self.clock.now()
        bill = recompute(
            Bill(
                items=_line_items(row["items"]),
                tax=row["tax"],
                discount=row["discount"],
                paid_amount=row["paid_amount"] + payment.amount,
                due_date=row["due_date"],
                status=BillStatus(row["status"]),
            ),
            now,
        )

        result = await self.db.execute(
            update(bills)
            .where(bills.c.id == bill_id)
            .values(
                **_money_values(bill),
                payment_method=payment.payment_method.value,
                payment_date=now,
                updated_at=now,
            )
            .returning(bills)
        )
        await self.db.commit()

        logger.info(
            "payment_recorded",
            bill_id=str(bill_id),
            amount=str(payment.amount),
            balance=str(bill.balance),
            status=bill.status.value,
        )
        return self._to_response(result.mappings().one())

    async def delete_bill(self, bill_id: UUID) -> None:
        """
        Delete a bill.

        Raises:
            NotFoundException: If bill not found
        """
        result = await self.db.execute(delete(bills).where(bills.c.id == bill_id))
        await self.db.commit()

        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise NotFoundException("Bill not found")

        logger.info("bill_deleted", bill_id=str(bill_id))

    async def get_stats(self, months: int = 6) -> BillingStatsResponse:
        """Bill counts and revenue for dashboards, grouped by the status reads report."""
        now = self.clock.now()
        derived = select(
            derived_status(now).label("status"), bills.c.total_amount
        ).subquery()
        status_rows = await self.db.execute(
            select(
                derived.c.status,
                func.count(),
                func.coalesce(func.sum(derived.c.total_amount), 0),
            ).group_by(derived.c.status)
        )
        by_status = {status: (count, amount) for status, count, amount in status_rows.all()}

        totals = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(bills.c.total_amount), 0),
                    func.coalesce(func.sum(bills.c.paid_amount), 0),
                ).where(bills.c.status != BillStatus.CANCELLED.value)
            )
        ).one()
        pending = (
            await self.db.execute(
                select(func.coalesce(func.sum(bills.c.balance), 0)).where(
                    derived_status(now).in_(OPEN_STATUSES)
                )
            )
        ).scalar() or Decimal("0")

        since = now - timedelta(days=31 * months)
        month = func.to_char(bills.c.bill_date, literal_column("'YYYY-MM'"))
        monthly_rows = await self.db.execute(
            select(month, func.sum(bills.c.total_amount), func.count())
            .where(
                and_(
                    bills.c.bill_date >= since,
                    bills.c.status != BillStatus.CANCELLED.value,
                )
            )
            .group_by(month)
            .order_by(month)
        )

        def count_of(status: BillStatus) -> int:
            return by_status.get(status.value, (0, 0))[0]

        return BillingStatsResponse(
            total_bills=sum(count for count, _ in by_status.values()),
            pending_bills=count_of(BillStatus.PENDING) + count_of(BillStatus.PARTIAL),
            paid_bills=count_of(BillStatus.PAID),
            overdue_bills=count_of(BillStatus.OVERDUE),
            revenue=RevenueSummary(
                total_revenue=float(totals[0]),
                total_paid=float(totals[1]),
                total_pending=float(pending),
            ),
            monthly_revenue=[
                MonthlyRevenue(month=label, revenue=float(revenue or 0), count=count)
                for label, revenue, count in monthly_rows.all()
            ],
            bills_by_status=[
                BillStatusSummary(status=status, count=count, total_amount=float(amount))
                for status, (count, amount) in sorted(by_status.items())
            ],
        )
