"""The Order Ledger: order creation, cancellation and status writes.

Creation and cancellation each run as one database transaction that couples
the order rows to the food-item quantities (and, on creation, the coupon
usage counter). Either every effect commits or none does. Collaborators
learn about committed changes through events published afterwards; their
failures never undo the order.
"""

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import insert, select, update

from catalogue.food_item.food_item import ItemCatalog
from coupons.coupon.coupon import CouponLedger
from ordering.order.order import (
    LineItem,
    Order,
    OrderStatus,
    PaymentStatus,
    assert_can_cancel,
    assert_can_deliver,
    assert_can_transition,
    check_amounts,
    generate_order_number,
    parse_line_items,
    parse_payment_status,
    parse_status,
)
from ordering.order.queries import OrderFilters, OrderQueries
from ordering.order.tables import order_items, orders
from shared.events.bus import EventBus
from shared.events.ordering import (
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
    PaymentStatusChanged,
)
from shared.exceptions import (
    InsufficientInventory,
    InvalidState,
    NotFoundOrUnauthorized,
    ValidationError,
)
from shared.utils.db import Database

logger = structlog.get_logger(__name__)


class OrderLedger:
    def __init__(
        self,
        database: Database,
        catalog: ItemCatalog,
        coupons: CouponLedger,
        bus: EventBus,
        strict_status_transitions: bool = False,
    ):
        self.database = database
        self.catalog = catalog
        self.coupons = coupons
        self.bus = bus
        self.strict_status_transitions = strict_status_transitions
        self.queries = OrderQueries(database)

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def create(
        self,
        user_id: int,
        restaurant_id: int,
        items: Iterable[LineItem | Mapping[str, Any]],
        total_amount: float,
        discount_amount: float = 0.0,
        coupon_id: int | None = None,
        final_amount: float | None = None,
        payment_method: str | None = None,
        address: dict[str, Any] | None = None,
        notes: str | None = None,
    ) -> int:
        """Place an order and return its id.

        Inserts the header and line items, takes each item's quantity from
        the catalogue and counts the coupon redemption, all in one
        transaction. Raises ``InsufficientInventory`` (nothing persisted) when
        any item cannot cover its quantity.
        """
        missing = {}
        if not user_id:
            missing["user_id"] = ["User ID is required"]
        if not restaurant_id:
            missing["restaurant_id"] = ["Restaurant ID is required"]
        if missing:
            raise ValidationError(missing)

        line_items = parse_line_items(list(items or []))
        discount_amount = discount_amount or 0.0
        final_amount = check_amounts(line_items, total_amount, discount_amount, final_amount)

        order_number = generate_order_number()
        now = datetime.now(UTC)

        with self.database.transaction() as conn:
            result = conn.execute(
                insert(orders).values(
                    order_number=order_number,
                    user_id=user_id,
                    restaurant_id=restaurant_id,
                    total_amount=total_amount,
                    discount_amount=discount_amount,
                    coupon_id=coupon_id,
                    final_amount=final_amount,
                    status=OrderStatus.PENDING.value,
                    payment_status=PaymentStatus.PENDING.value,
                    payment_method=payment_method,
                    address=address,
                    notes=notes,
                    created_at=now,
                    updated_at=now,
                )
            )
            order_id = result.inserted_primary_key[0]

            for item in line_items:
                conn.execute(
                    insert(order_items).values(
                        order_id=order_id,
                        food_item_id=item.food_item_id,
                        food_item_name=item.food_item_name,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        total_price=item.total_price,
                    )
                )
                if not self.catalog.decrement_quantity(conn, item.food_item_id, item.quantity):
                    logger.info(
                        "Order rejected, insufficient inventory",
                        user_id=user_id,
                        restaurant_id=restaurant_id,
                        food_item_id=item.food_item_id,
                        requested=item.quantity,
                    )
                    raise InsufficientInventory(item.food_item_id, item.quantity)

            if coupon_id is not None:
                self.coupons.increment_usage(conn, coupon_id)

        logger.info(
            "Order created",
            order_id=order_id,
            order_number=order_number,
            user_id=user_id,
            restaurant_id=restaurant_id,
            item_count=len(line_items),
            final_amount=final_amount,
        )

        self.bus.publish(
            OrderCreated(
                order_id=order_id,
                user_id=user_id,
                restaurant_id=restaurant_id,
                order_number=order_number,
                final_amount=final_amount,
                created_at=now,
            )
        )
        return order_id

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, order_id: int, requesting_user_id: int) -> None:
        """Cancel an order on behalf of its owner and restore its quantities.

        Ownership is part of the locking read, so a missing order and an
        order owned by someone else both raise ``NotFoundOrUnauthorized``.
        Coupon usage is not given back.
        """
        now = datetime.now(UTC)

        with self.database.transaction() as conn:
            row = (
                conn.execute(
                    select(orders.c.status, orders.c.order_number, orders.c.restaurant_id)
                    .where(orders.c.id == order_id, orders.c.user_id == requesting_user_id)
                    .with_for_update()
                )
                .mappings()
                .first()
            )
            if row is None:
                raise NotFoundOrUnauthorized("Order not found or unauthorized")

            assert_can_cancel(OrderStatus(row["status"]))

            lines = conn.execute(
                select(order_items.c.food_item_id, order_items.c.quantity).where(order_items.c.order_id == order_id)
            ).all()
            for line in lines:
                if not self.catalog.increment_quantity(conn, line.food_item_id, line.quantity):
                    logger.warning(
                        "Food item missing while restoring quantity",
                        order_id=order_id,
                        food_item_id=line.food_item_id,
                    )

            result = conn.execute(
                update(orders)
                .where(orders.c.id == order_id, orders.c.status == row["status"])
                .values(status=OrderStatus.CANCELLED.value, updated_at=now)
            )
            if result.rowcount != 1:
                raise InvalidState("Order status changed while it was being cancelled")

        logger.info("Order cancelled", order_id=order_id, user_id=requesting_user_id, restored_lines=len(lines))

        self.bus.publish(
            OrderCancelled(
                order_id=order_id,
                user_id=requesting_user_id,
                restaurant_id=row["restaurant_id"],
                order_number=row["order_number"],
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Status writes
    # -------------------------------------------------------------------
    def update_status(self, order_id: int, status: str | OrderStatus) -> None:
        """Write the order's lifecycle status.

        Any known status is accepted unless ``strict_status_transitions`` is
        on, in which case the move must follow the state machine.
        """
        new_status = parse_status(status)
        now = datetime.now(UTC)

        with self.database.transaction() as conn:
            row = (
                conn.execute(
                    select(orders.c.status, orders.c.user_id, orders.c.restaurant_id)
                    .where(orders.c.id == order_id)
                    .with_for_update()
                )
                .mappings()
                .first()
            )
            if row is None:
                raise NotFoundOrUnauthorized("Order not found")

            if self.strict_status_transitions:
                assert_can_transition(OrderStatus(row["status"]), new_status)

            conn.execute(update(orders).where(orders.c.id == order_id).values(status=new_status.value, updated_at=now))

        logger.info(
            "Order status updated",
            order_id=order_id,
            previous_status=row["status"],
            status=new_status.value,
        )

        self.bus.publish(
            OrderStatusChanged(
                order_id=order_id,
                user_id=row["user_id"],
                restaurant_id=row["restaurant_id"],
                previous_status=row["status"],
                status=new_status.value,
                changed_at=now,
            )
        )

    def update_payment_status(self, order_id: int, payment_status: str | PaymentStatus) -> None:
        new_status = parse_payment_status(payment_status)
        now = datetime.now(UTC)

        with self.database.transaction() as conn:
            row = (
                conn.execute(
                    select(orders.c.payment_status, orders.c.user_id, orders.c.restaurant_id)
                    .where(orders.c.id == order_id)
                    .with_for_update()
                )
                .mappings()
                .first()
            )
            if row is None:
                raise NotFoundOrUnauthorized("Order not found")

            conn.execute(
                update(orders).where(orders.c.id == order_id).values(payment_status=new_status.value, updated_at=now)
            )

        logger.info(
            "Order payment status updated",
            order_id=order_id,
            previous_payment_status=row["payment_status"],
            payment_status=new_status.value,
        )

        self.bus.publish(
            PaymentStatusChanged(
                order_id=order_id,
                user_id=row["user_id"],
                restaurant_id=row["restaurant_id"],
                previous_payment_status=row["payment_status"],
                payment_status=new_status.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Delivery confirmation
    # -------------------------------------------------------------------
    def confirm_delivery(self, order_id: int, settle_payment: bool = False) -> None:
        """Mark the order delivered once the hand-off has happened.

        Bypasses the step-by-step state machine: the carrier's confirmation
        is the fact of record, whichever intermediate status the restaurant
        last wrote. Repeating the confirmation changes nothing. Raises
        ``InvalidState`` for a cancelled order. With ``settle_payment`` the
        payment is marked paid in the same transaction.
        """
        now = datetime.now(UTC)

        with self.database.transaction() as conn:
            row = (
                conn.execute(
                    select(orders.c.status, orders.c.payment_status, orders.c.user_id, orders.c.restaurant_id)
                    .where(orders.c.id == order_id)
                    .with_for_update()
                )
                .mappings()
                .first()
            )
            if row is None:
                raise NotFoundOrUnauthorized("Order not found")

            assert_can_deliver(OrderStatus(row["status"]))

            changes = {}
            if row["status"] != OrderStatus.DELIVERED.value:
                changes["status"] = OrderStatus.DELIVERED.value
            if settle_payment and row["payment_status"] != PaymentStatus.PAID.value:
                changes["payment_status"] = PaymentStatus.PAID.value
            if not changes:
                logger.debug("Delivery already confirmed", order_id=order_id)
                return

            conn.execute(update(orders).where(orders.c.id == order_id).values(**changes, updated_at=now))

        logger.info("Order delivery confirmed", order_id=order_id, previous_status=row["status"], **changes)

        if "status" in changes:
            self.bus.publish(
                OrderStatusChanged(
                    order_id=order_id,
                    user_id=row["user_id"],
                    restaurant_id=row["restaurant_id"],
                    previous_status=row["status"],
                    status=OrderStatus.DELIVERED.value,
                    changed_at=now,
                )
            )
        if "payment_status" in changes:
            self.bus.publish(
                PaymentStatusChanged(
                    order_id=order_id,
                    user_id=row["user_id"],
                    restaurant_id=row["restaurant_id"],
                    previous_payment_status=row["payment_status"],
                    payment_status=PaymentStatus.PAID.value,
                    changed_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def find_by_id(self, order_id: int) -> Order | None:
        return self.queries.find_by_id(order_id)

    def find_by_user_id(self, user_id: int, filters: OrderFilters | None = None) -> list[Order]:
        return self.queries.find_by_user_id(user_id, filters)

    def find_by_restaurant_id(self, restaurant_id: int, filters: OrderFilters | None = None) -> list[Order]:
        return self.queries.find_by_restaurant_id(restaurant_id, filters)

    def find_all(self, filters: OrderFilters | None = None) -> list[Order]:
        return self.queries.find_all(filters)
