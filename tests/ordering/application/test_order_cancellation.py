"""Application tests for cancelling orders and restoring quantities."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.order.order import OrderStatus
from shared.events.ordering import OrderCancelled
from shared.exceptions import InvalidState, NotFoundOrUnauthorized


class TestCancelOrder:
    def test_cancel_restores_quantity(self, marketplace, place_order, food_item_id):
        order_id = place_order(user_id=7, quantity=5)
        assert marketplace.catalog.quantity_of(food_item_id) == 5

        marketplace.ledger.cancel(order_id, requesting_user_id=7)

        assert marketplace.ledger.find_by_id(order_id).status == OrderStatus.CANCELLED.value
        assert marketplace.catalog.quantity_of(food_item_id) == 10

    def test_cancel_confirmed_order(self, marketplace, place_order, food_item_id):
        order_id = place_order(user_id=7, quantity=2)
        marketplace.ledger.update_status(order_id, "confirmed")

        marketplace.ledger.cancel(order_id, requesting_user_id=7)

        assert marketplace.ledger.find_by_id(order_id).status == OrderStatus.CANCELLED.value
        assert marketplace.catalog.quantity_of(food_item_id) == 10

    def test_cancel_restores_every_item(self, marketplace, place_order, food_item_id, second_food_item_id):
        order_id = place_order(
            user_id=7,
            items=[
                {
                    "food_item_id": food_item_id,
                    "food_item_name": "Sourdough Loaf",
                    "quantity": 1,
                    "unit_price": 4.0,
                    "total_price": 4.0,
                },
                {
                    "food_item_id": second_food_item_id,
                    "food_item_name": "Cinnamon Roll",
                    "quantity": 2,
                    "unit_price": 1.5,
                    "total_price": 3.0,
                },
            ],
        )

        marketplace.ledger.cancel(order_id, requesting_user_id=7)

        assert marketplace.catalog.quantity_of(food_item_id) == 10
        assert marketplace.catalog.quantity_of(second_food_item_id) == 3

    def test_publishes_order_cancelled(self, marketplace, place_order):
        received = []
        marketplace.bus.subscribe(OrderCancelled, received.append)
        order_id = place_order(user_id=7)

        marketplace.ledger.cancel(order_id, requesting_user_id=7)

        assert [event.order_id for event in received] == [order_id]

    def test_coupon_usage_not_given_back(self, marketplace, place_order):
        now = datetime.now(UTC)
        coupon_id = marketplace.coupons.create(
            code="ONEOFF",
            type="fixed",
            value=1.0,
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=1),
        )
        order_id = place_order(user_id=7, coupon_id=coupon_id, discount_amount=1.0)

        marketplace.ledger.cancel(order_id, requesting_user_id=7)

        assert marketplace.coupons.find_by_id(coupon_id).used_count == 1


class TestCancelOrderRejections:
    def test_other_users_order_looks_missing(self, marketplace, place_order, food_item_id):
        order_id = place_order(user_id=7, quantity=3)

        with pytest.raises(NotFoundOrUnauthorized, match="Order not found or unauthorized"):
            marketplace.ledger.cancel(order_id, requesting_user_id=8)

        assert marketplace.ledger.find_by_id(order_id).status == OrderStatus.PENDING.value
        assert marketplace.catalog.quantity_of(food_item_id) == 7

    def test_missing_order(self, marketplace):
        with pytest.raises(NotFoundOrUnauthorized):
            marketplace.ledger.cancel(12345, requesting_user_id=7)

    @pytest.mark.parametrize("status", ["preparing", "ready", "picked_up", "delivered"])
    def test_too_late_to_cancel(self, marketplace, place_order, food_item_id, status):
        order_id = place_order(user_id=7, quantity=2)
        marketplace.ledger.update_status(order_id, status)

        with pytest.raises(InvalidState, match=f"Cannot cancel order in {status} state"):
            marketplace.ledger.cancel(order_id, requesting_user_id=7)

        assert marketplace.ledger.find_by_id(order_id).status == status
        assert marketplace.catalog.quantity_of(food_item_id) == 8

    def test_cancel_twice_restores_once(self, marketplace, place_order, food_item_id):
        order_id = place_order(user_id=7, quantity=5)
        marketplace.ledger.cancel(order_id, requesting_user_id=7)

        with pytest.raises(InvalidState):
            marketplace.ledger.cancel(order_id, requesting_user_id=7)

        assert marketplace.catalog.quantity_of(food_item_id) == 10


class TestQuantityConservation:
    def test_place_and_cancel_sequence(self, marketplace, place_order, food_item_id):
        first = place_order(user_id=7, quantity=3)
        second = place_order(user_id=8, quantity=4)
        place_order(user_id=9, quantity=2)
        assert marketplace.catalog.quantity_of(food_item_id) == 1

        marketplace.ledger.cancel(first, requesting_user_id=7)
        marketplace.ledger.cancel(second, requesting_user_id=8)

        # initial 10 minus the one order still standing
        assert marketplace.catalog.quantity_of(food_item_id) == 8

    def test_five_portions_round_trip(self, marketplace, restaurant_id):
        food_item_id = marketplace.catalog.create(
            restaurant_id=restaurant_id,
            name="Veg Puff",
            original_price=3.0,
            discounted_price=1.0,
            quantity_available=5,
        )
        order_id = marketplace.ledger.create(
            user_id=7,
            restaurant_id=restaurant_id,
            items=[
                {
                    "food_item_id": food_item_id,
                    "food_item_name": "Veg Puff",
                    "quantity": 2,
                    "unit_price": 1.0,
                    "total_price": 2.0,
                }
            ],
            total_amount=2.0,
        )
        assert marketplace.catalog.quantity_of(food_item_id) == 3

        marketplace.ledger.cancel(order_id, requesting_user_id=7)
        assert marketplace.catalog.quantity_of(food_item_id) == 5

        with pytest.raises(InvalidState):
            marketplace.ledger.cancel(order_id, requesting_user_id=7)
        assert marketplace.catalog.quantity_of(food_item_id) == 5
