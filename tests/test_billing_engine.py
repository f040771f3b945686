"""Tests for bill totals and status derivation."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from app.engines.billing import (
    Bill,
    BillLineItem,
    InvalidLineItem,
    build_line_item,
    build_line_items,
    derive_status,
    items_payload,
    payment_percentage,
    recompute,
)
from app.schemas.billing import BillStatus

NOW = datetime(2025, 6, 4, 12, 0, tzinfo=UTC)
D = Decimal


def consultation_bill(**overrides) -> Bill:
    """100 consultation + 10 tax, due in a week."""
    values = {
        "items": (BillLineItem("Consultation", 1, D("100.00")),),
        "tax": D("10.00"),
        "due_date": NOW + timedelta(days=7),
    }
    values.update(overrides)
    return Bill(**values)


def test_recompute_paid_in_full():
    bill = recompute(consultation_bill(paid_amount=D("110.00")), NOW)

    assert bill.subtotal == D("100.00")
    assert bill.total_amount == D("110.00")
    assert bill.balance == D("0.00")
    assert bill.status == BillStatus.PAID


def test_recompute_multiple_items_with_discount():
    bill = recompute(
        Bill(
            items=(
                BillLineItem("Consultation", 1, D("100.00")),
                BillLineItem("Blood test", 2, D("25.00")),
            ),
            tax=D("15.00"),
            discount=D("5.00"),
        ),
        NOW,
    )

    assert bill.subtotal == D("150.00")
    assert bill.total_amount == D("160.00")
    assert bill.balance == D("160.00")
    assert bill.status == BillStatus.PENDING


def test_recompute_partial_payment():
    bill = recompute(consultation_bill(paid_amount=D("50.00")), NOW)
    assert bill.balance == D("60.00")
    assert bill.status == BillStatus.PARTIAL


def test_recompute_overdue_when_unpaid_after_due_date():
    bill = recompute(consultation_bill(due_date=NOW - timedelta(days=1)), NOW)
    assert bill.status == BillStatus.OVERDUE


def test_partial_payment_wins_over_overdue():
    bill = recompute(
        consultation_bill(paid_amount=D("10.00"), due_date=NOW - timedelta(days=1)), NOW
    )
    assert bill.status == BillStatus.PARTIAL


def test_cancelled_status_is_kept():
    bill = recompute(
        consultation_bill(status=BillStatus.CANCELLED, paid_amount=D("110.00")), NOW
    )
    assert bill.status == BillStatus.CANCELLED
    assert bill.balance == D("0.00")


def test_overpayment_gives_negative_balance():
    bill = recompute(consultation_bill(paid_amount=D("120.00")), NOW)
    assert bill.balance == D("-10.00")
    assert bill.status == BillStatus.PAID


def test_discount_never_makes_total_negative():
    bill = recompute(consultation_bill(tax=D("0"), discount=D("500.00")), NOW)
    assert bill.total_amount == D("0")
    assert bill.status == BillStatus.PAID


def test_empty_bill_is_paid():
    bill = recompute(Bill(), NOW)
    assert bill.subtotal == D("0")
    assert bill.total_amount == D("0")
    assert bill.status == BillStatus.PAID


def test_recompute_is_idempotent():
    once = recompute(consultation_bill(paid_amount=D("30.00")), NOW)
    assert recompute(once, NOW) == once


def test_recompute_ignores_stale_derived_fields():
    stale = consultation_bill(subtotal=D("999"), total_amount=D("999"), balance=D("999"))
    bill = recompute(stale, NOW)
    assert bill.total_amount == D("110.00")
    assert bill.balance == D("110.00")


def test_derive_status_rule_order():
    due = NOW - timedelta(days=1)
    assert derive_status(BillStatus.OVERDUE, D("0"), D("0"), due, NOW) == BillStatus.PAID
    assert derive_status(BillStatus.PAID, D("5"), D("0"), None, NOW) == BillStatus.PENDING
    assert derive_status(BillStatus.PENDING, D("5"), D("0"), NOW, NOW) == BillStatus.PENDING


def test_build_line_item_valid():
    item = build_line_item(0, {"description": " X-ray ", "quantity": 2, "unit_price": "40.50"})
    assert item == BillLineItem("X-ray", 2, D("40.50"))
    assert item.line_total == D("81.00")


@pytest.mark.parametrize(
    "raw,field",
    [
        ({"description": "", "quantity": 1, "unit_price": 1}, "description"),
        ({"description": "X-ray", "quantity": -1, "unit_price": 1}, "quantity"),
        ({"description": "X-ray", "quantity": "two", "unit_price": 1}, "quantity"),
        ({"description": "X-ray", "quantity": 1, "unit_price": -0.01}, "unit_price"),
        ({"description": "X-ray", "quantity": 1, "unit_price": "abc"}, "unit_price"),
        ({"description": "X-ray", "quantity": 1, "unit_price": "NaN"}, "unit_price"),
    ],
)
def test_build_line_item_invalid(raw, field):
    result = build_line_item(3, raw)
    assert isinstance(result, InvalidLineItem)
    assert result.index == 3
    assert result.field == field


def test_build_line_items_reports_first_invalid():
    result = build_line_items(
        [
            {"description": "Consultation", "quantity": 1, "unit_price": "100"},
            {"description": "Dressing", "quantity": 1, "unit_price": "-5"},
            {"description": "", "quantity": 1, "unit_price": "5"},
        ]
    )
    assert isinstance(result, InvalidLineItem)
    assert result.index == 1
    assert result.field == "unit_price"


def test_payment_percentage():
    assert payment_percentage(D("110"), D("55")) == 50
    assert payment_percentage(D("3"), D("1")) == 33
    assert payment_percentage(D("0"), D("0")) == 0
    assert payment_percentage(D("100"), D("120")) == 120


def test_items_payload_includes_line_totals():
    payload = items_payload([BillLineItem("Blood test", 2, D("25.00"))])
    assert payload == [
        {"description": "Blood test", "quantity": 2, "unit_price": "25.00", "total": "50.00"}
    ]
