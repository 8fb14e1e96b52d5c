"""Inbound cross-context event handler: Notifications reacts to Order events.

Tells the customer when their order is placed, when it moves through the
kitchen and delivery, when it is cancelled and when the payment settles.
"""

import structlog

from notifications.notification.notification import NotificationCenter, NotificationType
from shared.events.bus import EventBus
from shared.events.ordering import (
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
    PaymentStatusChanged,
)

logger = structlog.get_logger(__name__)

_STATUS_MESSAGES = {
    "confirmed": "The restaurant has confirmed your order.",
    "preparing": "Your order is being prepared.",
    "ready": "Your order is ready for pickup.",
    "picked_up": "Your order has been picked up and is on its way.",
    "delivered": "Your order has been delivered. Enjoy your meal!",
}


class OrderingEventsHandler:
    """Reacts to Order Ledger events to send customer notifications."""

    def __init__(self, center: NotificationCenter):
        self.center = center

    def on_order_created(self, event: OrderCreated) -> None:
        self.center.notify(
            user_id=event.user_id,
            notification_type=NotificationType.ORDER_PLACED.value,
            title="Order placed",
            message=f"Your order {event.order_number} has been placed.",
            data={"order_id": event.order_id, "final_amount": event.final_amount},
        )

    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        message = _STATUS_MESSAGES.get(event.status)
        if message is None:
            logger.debug("No notification for order status", order_id=event.order_id, status=event.status)
            return

        self.center.notify(
            user_id=event.user_id,
            notification_type=NotificationType.ORDER_STATUS.value,
            title="Order update",
            message=message,
            data={"order_id": event.order_id, "status": event.status},
        )

    def on_order_cancelled(self, event: OrderCancelled) -> None:
        self.center.notify(
            user_id=event.user_id,
            notification_type=NotificationType.ORDER_CANCELLED.value,
            title="Order cancelled",
            message=f"Your order {event.order_number} has been cancelled.",
            data={"order_id": event.order_id},
        )

    def on_payment_status_changed(self, event: PaymentStatusChanged) -> None:
        self.center.notify(
            user_id=event.user_id,
            notification_type=NotificationType.PAYMENT.value,
            title="Payment update",
            message=f"Payment for your order is now {event.payment_status}.",
            data={"order_id": event.order_id, "payment_status": event.payment_status},
        )


def register(bus: EventBus, center: NotificationCenter) -> OrderingEventsHandler:
    handler = OrderingEventsHandler(center)
    bus.subscribe(OrderCreated, handler.on_order_created)
    bus.subscribe(OrderStatusChanged, handler.on_order_status_changed)
    bus.subscribe(OrderCancelled, handler.on_order_cancelled)
    bus.subscribe(PaymentStatusChanged, handler.on_payment_status_changed)
    return handler
