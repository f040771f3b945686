"""Tests for bill reads, payments and edits in the service layer."""

import re
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import DateTime, create_engine, literal, select
from sqlalchemy.dialects import postgresql

from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.engines.billing import derive_status
from app.schemas.billing import (
    BillCreate,
    BillFilters,
    BillItemIn,
    BillStatus,
    BillUpdate,
    PaymentCreate,
)
from app.services.billing_service import BillingService, status_expression
from tests.factories import NOW, make_user


def _result(row: dict) -> MagicMock:
    result = MagicMock()
    result.mappings.return_value.one.return_value = row
    result.mappings.return_value.first.return_value = row
    return result


@pytest.fixture
def bill_row() -> dict:
    """A stored 110.00 bill, unpaid and due in a week."""
    return {
        "id": uuid4(),
        "bill_number": "BILL-20250604-A1B2C3",
        "patient_id": uuid4(),
        "appointment_id": None,
        "doctor_id": None,
        "bill_date": NOW,
        "due_date": NOW + timedelta(days=7),
        "items": [
            {
                "description": "Consultation",
                "quantity": 1,
                "unit_price": "100.00",
                "total": "100.00",
            }
        ],
        "subtotal": Decimal("100.00"),
        "tax": Decimal("10.00"),
        "discount": Decimal("0.00"),
        "total_amount": Decimal("110.00"),
        "paid_amount": Decimal("0.00"),
        "balance": Decimal("110.00"),
        "status": "pending",
        "payment_method": "cash",
        "payment_date": None,
        "insurance": None,
        "notes": None,
        "generated_by": uuid4(),
        "created_at": NOW,
        "updated_at": NOW,
    }


@pytest.fixture
def service(db_session, clock) -> BillingService:
    return BillingService(db_session, clock)


def test_bill_number_format():
    number = BillingService.generate_bill_number(NOW)
    assert re.fullmatch(r"BILL-20250604-[0-9A-F]{6}", number)


@pytest.mark.asyncio
async def test_get_bill_shows_overdue_after_due_date(service, db_session, bill_row):
    bill_row["due_date"] = NOW - timedelta(days=1)
    db_session.execute.return_value = _result(bill_row)

    response = await service.get_bill(bill_row["id"], make_user("admin"))

    assert response.status == BillStatus.OVERDUE
    assert response.payment_percentage == 0


@pytest.mark.asyncio
async def test_patient_cannot_read_other_patients_bill(service, db_session, bill_row):
    db_session.execute.return_value = _result(bill_row)
    service.patients.get_patient_by_user_id = AsyncMock(return_value={"id": uuid4()})

    with pytest.raises(ForbiddenException):
        await service.get_bill(bill_row["id"], make_user("patient"))


@pytest.mark.asyncio
async def test_patient_reads_own_bill(service, db_session, bill_row):
    db_session.execute.return_value = _result(bill_row)
    service.patients.get_patient_by_user_id = AsyncMock(
        return_value={"id": bill_row["patient_id"]}
    )

    response = await service.get_bill(bill_row["id"], make_user("patient"))
    assert response.id == bill_row["id"]


@pytest.mark.asyncio
async def test_record_payment_settles_bill(service, db_session, bill_row):
    paid_row = {
        **bill_row,
        "paid_amount": Decimal("110.00"),
        "balance": Decimal("0.00"),
        "status": "paid",
        "payment_date": NOW,
    }
    db_session.execute.side_effect = [_result(bill_row), _result(paid_row)]

    response = await service.record_payment(
        bill_row["id"], PaymentCreate(amount=Decimal("110.00"))
    )

    assert response.status == BillStatus.PAID
    assert response.balance == Decimal("0.00")
    assert response.payment_percentage == 100
    db_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_record_payment_on_cancelled_bill_rejected(service, db_session, bill_row):
    bill_row["status"] = "cancelled"
    db_session.execute.return_value = _result(bill_row)

    with pytest.raises(BadRequestException):
        await service.record_payment(bill_row["id"], PaymentCreate(amount=Decimal("10.00")))

    db_session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_update_bill_cancel_keeps_status(service, db_session, bill_row):
    cancelled_row = {**bill_row, "status": "cancelled"}
    db_session.execute.side_effect = [_result(bill_row), _result(cancelled_row)]

    response = await service.update_bill(bill_row["id"], BillUpdate(status=BillStatus.CANCELLED))

    assert response.status == BillStatus.CANCELLED


@pytest.mark.asyncio
async def test_create_bill_for_unknown_patient(service, db_session):
    service.patients.get_patient_by_id = AsyncMock(return_value=None)
    data = BillCreate(
        patient_id=uuid4(),
        items=[BillItemIn(description="Consultation", quantity=1, unit_price=Decimal("100"))],
    )

    with pytest.raises(NotFoundException):
        await service.create_bill(data, make_user("admin"))

    db_session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_delete_missing_bill(service, db_session):
    db_session.execute.return_value = MagicMock(rowcount=0)

    with pytest.raises(NotFoundException):
        await service.delete_bill(uuid4())


def _sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


@pytest.mark.parametrize(
    "stored, balance, paid, due_date",
    [
        ("pending", 110, 0, NOW - timedelta(days=3)),
        ("pending", 110, 0, NOW + timedelta(days=3)),
        ("pending", 110, 0, None),
        ("overdue", 60, 50, NOW - timedelta(days=3)),
        ("overdue", 0, 110, NOW - timedelta(days=3)),
        ("partial", -5, 115, NOW + timedelta(days=3)),
        ("cancelled", 110, 0, NOW - timedelta(days=3)),
        ("paid", 110, 0, NOW - timedelta(days=3)),
    ],
)
def test_status_expression_matches_derive_status(stored, balance, paid, due_date):
    """The SQL status used for filters and stats agrees with the read-time status."""
    expression = status_expression(
        literal(stored),
        literal(balance),
        literal(paid),
        literal(due_date, DateTime()),
        NOW,
    )
    engine = create_engine("sqlite://")
    with engine.connect() as connection:
        in_sql = connection.execute(select(expression)).scalar()

    expected = derive_status(
        BillStatus(stored), Decimal(balance), Decimal(paid), due_date, NOW
    )
    assert in_sql == expected.value


@pytest.mark.asyncio
async def test_list_bills_filters_on_derived_status(service, db_session, bill_row):
    """A stored pending bill past its due date is listed under overdue."""
    bill_row["due_date"] = NOW - timedelta(days=3)
    count = MagicMock()
    count.scalar.return_value = 1
    rows = MagicMock()
    rows.mappings.return_value.all.return_value = [bill_row]
    db_session.execute.side_effect = [count, rows]

    listing = await service.list_bills(BillFilters(status=BillStatus.OVERDUE), make_user())

    assert listing.total == 1
    assert listing.items[0].status == BillStatus.OVERDUE
    statement = db_session.execute.call_args_list[1].args[0]
    where = _sql(statement.whereclause)
    assert "CASE WHEN" in where
    assert NOW in statement.compile(dialect=postgresql.dialect()).params.values()


@pytest.mark.asyncio
async def test_stats_count_past_due_bills_as_overdue(service, db_session):
    status_rows = MagicMock()
    status_rows.all.return_value = [
        ("overdue", 1, Decimal("110.00")),
        ("paid", 2, Decimal("200.00")),
    ]
    totals = MagicMock()
    totals.one.return_value = (Decimal("310.00"), Decimal("200.00"))
    pending = MagicMock()
    pending.scalar.return_value = Decimal("110.00")
    monthly = MagicMock()
    monthly.all.return_value = []
    db_session.execute.side_effect = [status_rows, totals, pending, monthly]

    stats = await service.get_stats()

    assert stats.overdue_bills == 1
    assert stats.pending_bills == 0
    assert stats.paid_bills == 2
    assert stats.total_bills == 3
    grouped = _sql(db_session.execute.call_args_list[0].args[0])
    assert "CASE WHEN" in grouped
    assert "GROUP BY anon_1.status" in grouped
    assert "CASE WHEN" in _sql(db_session.execute.call_args_list[2].args[0])
