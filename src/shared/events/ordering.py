"""Cross-context event contracts for Order Ledger events.

Published by ``ordering.order.ledger.OrderLedger`` after the producing
transaction commits. Consumed by the Fulfillment context (delivery tracking)
and the Notifications context (customer notices).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class OrderEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: int
    user_id: int
    restaurant_id: int


class OrderCreated(OrderEvent):
    """A new order was committed with its line items."""

    order_number: str
    final_amount: float
    created_at: datetime


class OrderStatusChanged(OrderEvent):
    """The order's lifecycle status was written."""

    previous_status: str
    status: str
    changed_at: datetime


class OrderCancelled(OrderEvent):
    """The order was cancelled by its owner and its inventory restored."""

    order_number: str
    cancelled_at: datetime


class PaymentStatusChanged(OrderEvent):
    """The order's payment status was written."""

    previous_payment_status: str
    payment_status: str
    changed_at: datetime
