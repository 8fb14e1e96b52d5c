"""Order records and lifecycle rules.

State Machine:
    PENDING → CONFIRMED → PREPARING → READY → PICKED_UP → DELIVERED
    CANCELLED (from PENDING or CONFIRMED, through OrderLedger.cancel only)

Payment status moves independently of the lifecycle status.
"""

import time
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from shared.exceptions import InvalidState, ValidationError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.PICKED_UP},
    OrderStatus.PICKED_UP: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# States from which cancellation is allowed
_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
}

# Statuses the delivery record mirrors
DELIVERY_STATUSES = {
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERED,
}


def parse_status(value: str | OrderStatus) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(
            {"status": [f"Unknown status '{value}'. Expected one of: {', '.join(s.value for s in OrderStatus)}"]}
        ) from None


def parse_payment_status(value: str | PaymentStatus) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise ValidationError(
            {
                "payment_status": [
                    f"Unknown payment status '{value}'. Expected one of: {', '.join(s.value for s in PaymentStatus)}"
                ]
            }
        ) from None


def assert_can_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Validate a status write against the state machine."""
    if target == OrderStatus.CANCELLED:
        raise InvalidState("Orders are cancelled through the cancellation operation, not a status update")
    if target not in _VALID_TRANSITIONS.get(current, set()):
        raise InvalidState(f"Cannot transition from {current.value} to {target.value}")


def assert_can_cancel(current: OrderStatus) -> None:
    if current not in _CANCELLABLE_STATES:
        raise InvalidState(
            f"Cannot cancel order in {current.value} state. "
            f"Cancellation is only allowed from: "
            f"{', '.join(sorted(s.value for s in _CANCELLABLE_STATES))}"
        )


def assert_can_deliver(current: OrderStatus) -> None:
    """A delivery confirmation closes any order that was not cancelled."""
    if current == OrderStatus.CANCELLED:
        raise InvalidState("Cannot deliver a cancelled order")


def generate_order_number() -> str:
    """Human readable order reference: ``ORD-<epoch millis>-<8 hex>``."""
    return f"ORD-{time.time_ns() // 1_000_000}-{uuid4().hex[:8].upper()}"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
class LineItem(BaseModel):
    """One food item's quantity and price snapshot within an order.

    Captured when the order is placed and never changed afterwards, even if
    the catalogue price or name changes later.
    """

    food_item_id: int
    food_item_name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    total_price: float = Field(ge=0)


class Order(BaseModel):
    id: int
    order_number: str
    user_id: int
    restaurant_id: int
    restaurant_name: str | None = None
    items: list[LineItem] = []
    total_amount: float
    discount_amount: float
    coupon_id: int | None = None
    final_amount: float
    status: str
    payment_status: str
    payment_method: str | None = None
    address: dict[str, Any] | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_cancellable(self) -> bool:
        return OrderStatus(self.status) in _CANCELLABLE_STATES


# ---------------------------------------------------------------------------
# Input checks
# ---------------------------------------------------------------------------
def _cents(amount: float) -> int:
    return round(amount * 100)


def parse_line_items(items) -> list[LineItem]:
    """Coerce caller supplied items (mappings or LineItem) into LineItems."""
    if not items:
        raise ValidationError({"items": ["At least one item is required"]})

    parsed = []
    errors = {}
    for index, item in enumerate(items):
        if isinstance(item, LineItem):
            parsed.append(item)
            continue
        try:
            parsed.append(LineItem.model_validate(item))
        except SchemaError as exc:
            errors[f"items[{index}]"] = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
            ]
    if errors:
        raise ValidationError(errors)
    return parsed


def check_amounts(
    items: list[LineItem],
    total_amount: float | None,
    discount_amount: float,
    final_amount: float | None,
) -> float:
    """Check the order's money invariants and return the final amount.

    ``total_amount`` must equal the sum of the line totals and
    ``final_amount`` must equal ``total_amount - discount_amount``, both to
    the cent. A missing ``final_amount`` is computed.
    """
    errors = {}
    if total_amount is None:
        raise ValidationError({"total_amount": ["Total amount is required"]})

    if _cents(total_amount) != sum(_cents(item.total_price) for item in items):
        errors["total_amount"] = ["Total amount must equal the sum of item totals"]

    if discount_amount < 0:
        errors["discount_amount"] = ["Discount cannot be negative"]
    elif _cents(discount_amount) > _cents(total_amount):
        errors["discount_amount"] = ["Discount cannot exceed the total amount"]

    expected_final = round(total_amount - discount_amount, 2)
    if final_amount is not None and _cents(final_amount) != _cents(expected_final):
        errors["final_amount"] = ["Final amount must equal total amount minus discount"]

    if errors:
        raise ValidationError(errors)
    return expected_final if final_amount is None else final_amount
