"""Bill total, balance and status derivation."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from app.schemas.billing import BillStatus

ZERO = Decimal("0")


@dataclass(frozen=True)
class BillLineItem:
    """One billed service or product."""

    description: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class InvalidLineItem:
    """A rejected line item, reported by position."""

    index: int
    field: str
    message: str


@dataclass(frozen=True)
class Bill:
    """
    Inputs and derived fields of a bill.

    ``subtotal``, ``total_amount`` and ``balance`` are owned by
    :func:`recompute`; callers set the other fields.
    """

    items: tuple[BillLineItem, ...] = ()
    tax: Decimal = ZERO
    discount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    due_date: datetime | None = None
    status: BillStatus = BillStatus.PENDING
    subtotal: Decimal = field(default=ZERO)
    total_amount: Decimal = field(default=ZERO)
    balance: Decimal = field(default=ZERO)


def build_line_item(index: int, raw: Mapping[str, Any]) -> BillLineItem | InvalidLineItem:
    """Validate one raw item; negative quantity or price is rejected."""
    description = str(raw.get("description") or "").strip()
    if not description:
        return InvalidLineItem(index, "description", "Item description is required")

    try:
        quantity = int(raw.get("quantity", 0))
    except (TypeError, ValueError):
        return InvalidLineItem(index, "quantity", "Quantity must be a whole number")
    if quantity < 0:
        return InvalidLineItem(index, "quantity", "Quantity cannot be negative")

    try:
        unit_price = Decimal(str(raw.get("unit_price", 0)))
    except ArithmeticError:
        return InvalidLineItem(index, "unit_price", "Unit price must be a number")
    if not unit_price.is_finite():
        return InvalidLineItem(index, "unit_price", "Unit price must be a number")
    if unit_price < 0:
        return InvalidLineItem(index, "unit_price", "Unit price cannot be negative")

    return BillLineItem(description=description, quantity=quantity, unit_price=unit_price)


def build_line_items(
    raw_items: Iterable[Mapping[str, Any]],
) -> tuple[BillLineItem, ...] | InvalidLineItem:
    """Validate every raw item, stopping at the first invalid one."""
    items = []
    for index, raw in enumerate(raw_items):
        item = build_line_item(index, raw)
        if isinstance(item, InvalidLineItem):
            return item
        items.append(item)
    return tuple(items)


def derive_status(
    current: BillStatus,
    balance: Decimal,
    paid_amount: Decimal,
    due_date: datetime | None,
    now: datetime,
) -> BillStatus:
    """Pick the status for the given money state; first matching rule wins."""
    if current == BillStatus.CANCELLED:
        return BillStatus.CANCELLED
    if balance <= 0:
        return BillStatus.PAID
    if paid_amount > 0:
        return BillStatus.PARTIAL
    if due_date is not None and now > due_date:
        return BillStatus.OVERDUE
    return BillStatus.PENDING


def recompute(bill: Bill, now: datetime) -> Bill:
    """
    Return a copy of ``bill`` with every derived field replaced.

    No rounding is applied; amounts are expected to already be in minor-unit
    precision. The balance goes negative on overpayment.
    """
    subtotal = sum((item.line_total for item in bill.items), ZERO)
    total_amount = max(ZERO, subtotal + bill.tax - bill.discount)
    balance = total_amount - bill.paid_amount
    status = derive_status(
        BillStatus(bill.status), balance, bill.paid_amount, bill.due_date, now
    )
    return replace(
        bill,
        subtotal=subtotal,
        total_amount=total_amount,
        balance=balance,
        status=status,
    )


def payment_percentage(total_amount: Decimal, paid_amount: Decimal) -> int:
    """Share of the total already paid, as a whole percentage."""
    if total_amount == 0:
        return 0
    return round(paid_amount / total_amount * 100)


def items_payload(items: Sequence[BillLineItem]) -> list[dict[str, Any]]:
    """Serialize items with their line totals for storage."""
    return [
        {
            "description": item.description,
            "quantity": item.quantity,
            "unit_price": str(item.unit_price),
            "total": str(item.line_total),
        }
        for item in items
    ]
