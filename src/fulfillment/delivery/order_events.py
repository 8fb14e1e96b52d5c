"""Inbound cross-context event handler: Fulfillment reacts to Order events.

Creates the delivery record when an order is placed, mirrors the
delivery-facing statuses (ready, picked up, delivered) onto it, and closes
it when the order is cancelled.
"""

import structlog

from fulfillment.delivery.tracking import DeliveryStatus, DeliveryTracker
from ordering.order.order import DELIVERY_STATUSES
from shared.events.bus import EventBus
from shared.events.ordering import OrderCancelled, OrderCreated, OrderStatusChanged

logger = structlog.get_logger(__name__)

_MIRRORED_STATUSES = {status.value for status in DELIVERY_STATUSES}


class OrderEventHandler:
    """Keeps delivery tracking in step with the Order Ledger."""

    def __init__(self, tracker: DeliveryTracker):
        self.tracker = tracker

    def on_order_created(self, event: OrderCreated) -> None:
        self.tracker.create(order_id=event.order_id, status=DeliveryStatus.PENDING.value)

    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        if event.status not in _MIRRORED_STATUSES:
            return

        tracking = self.tracker.find_by_order_id(event.order_id)
        if tracking is None:
            logger.warning("No delivery tracking for order", order_id=event.order_id, status=event.status)
            return
        if tracking.status == event.status:
            return

        self.tracker.update_status(event.order_id, event.status)

    def on_order_cancelled(self, event: OrderCancelled) -> None:
        tracking = self.tracker.find_by_order_id(event.order_id)
        if tracking is None:
            logger.info("No delivery tracking for cancelled order", order_id=event.order_id)
            return

        self.tracker.update_status(event.order_id, DeliveryStatus.CANCELLED.value)


def register(bus: EventBus, tracker: DeliveryTracker) -> OrderEventHandler:
    handler = OrderEventHandler(tracker)
    bus.subscribe(OrderCreated, handler.on_order_created)
    bus.subscribe(OrderStatusChanged, handler.on_order_status_changed)
    bus.subscribe(OrderCancelled, handler.on_order_cancelled)
    return handler
