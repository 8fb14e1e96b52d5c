"""Domain tests for order records, money checks and lifecycle rules."""

import re

import pytest
from ordering.order.order import (
    LineItem,
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
from shared.exceptions import InvalidState, ValidationError


def _item(quantity=2, unit_price=10.0, **overrides):
    item = {
        "food_item_id": 42,
        "food_item_name": "Vegetable Biryani",
        "quantity": quantity,
        "unit_price": unit_price,
        "total_price": round(quantity * unit_price, 2),
    }
    item.update(overrides)
    return item


class TestLineItems:
    def test_mappings_are_parsed(self):
        items = parse_line_items([_item()])
        assert items == [
            LineItem(
                food_item_id=42,
                food_item_name="Vegetable Biryani",
                quantity=2,
                unit_price=10.0,
                total_price=20.0,
            )
        ]

    def test_line_items_pass_through(self):
        item = LineItem(**_item())
        assert parse_line_items([item]) == [item]

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_line_items([])
        assert exc.value.messages == {"items": ["At least one item is required"]}

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_line_items([_item(), _item(quantity=0, total_price=0.0)])
        assert "items[1]" in exc.value.messages
        assert "items[0]" not in exc.value.messages

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_line_items([_item(unit_price=-1.0, total_price=0.0)])
        assert "items[0]" in exc.value.messages

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            parse_line_items([_item(food_item_name="")])


class TestAmounts:
    def test_final_amount_computed_when_missing(self):
        items = parse_line_items([_item()])
        assert check_amounts(items, 20.0, 5.0, None) == 15.0

    def test_consistent_final_amount_accepted(self):
        items = parse_line_items([_item()])
        assert check_amounts(items, 20.0, 5.0, 15.0) == 15.0

    def test_amounts_compared_to_the_cent(self):
        items = parse_line_items([_item(quantity=3, unit_price=0.1, total_price=0.3)])
        assert check_amounts(items, 0.1 + 0.2, 0.0, None) == 0.3

    def test_total_must_match_line_totals(self):
        items = parse_line_items([_item()])
        with pytest.raises(ValidationError) as exc:
            check_amounts(items, 25.0, 0.0, None)
        assert "total_amount" in exc.value.messages

    def test_final_must_equal_total_minus_discount(self):
        items = parse_line_items([_item()])
        with pytest.raises(ValidationError) as exc:
            check_amounts(items, 20.0, 5.0, 20.0)
        assert "final_amount" in exc.value.messages

    def test_negative_discount_rejected(self):
        items = parse_line_items([_item()])
        with pytest.raises(ValidationError) as exc:
            check_amounts(items, 20.0, -1.0, None)
        assert "discount_amount" in exc.value.messages

    def test_discount_cannot_exceed_total(self):
        items = parse_line_items([_item()])
        with pytest.raises(ValidationError) as exc:
            check_amounts(items, 20.0, 25.0, None)
        assert "discount_amount" in exc.value.messages

    def test_missing_total_rejected(self):
        items = parse_line_items([_item()])
        with pytest.raises(ValidationError) as exc:
            check_amounts(items, None, 0.0, None)
        assert exc.value.messages == {"total_amount": ["Total amount is required"]}


class TestOrderNumber:
    def test_format(self):
        assert re.fullmatch(r"ORD-\d{13,}-[0-9A-F]{8}", generate_order_number())

    def test_numbers_are_distinct(self):
        assert len({generate_order_number() for _ in range(200)}) == 200


class TestStatusParsing:
    def test_known_status(self):
        assert parse_status("ready") == OrderStatus.READY
        assert parse_status(OrderStatus.READY) == OrderStatus.READY

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            parse_status("teleported")
        assert "status" in exc.value.messages

    def test_known_payment_status(self):
        assert parse_payment_status("refunded") == PaymentStatus.REFUNDED

    def test_unknown_payment_status(self):
        with pytest.raises(ValidationError) as exc:
            parse_payment_status("maybe")
        assert "payment_status" in exc.value.messages


class TestStateMachine:
    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
            (OrderStatus.PREPARING, OrderStatus.READY),
            (OrderStatus.READY, OrderStatus.PICKED_UP),
            (OrderStatus.PICKED_UP, OrderStatus.DELIVERED),
        ],
    )
    def test_forward_transitions_allowed(self, current, target):
        assert_can_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING, OrderStatus.READY),
            (OrderStatus.DELIVERED, OrderStatus.PENDING),
            (OrderStatus.CANCELLED, OrderStatus.CONFIRMED),
            (OrderStatus.READY, OrderStatus.PREPARING),
        ],
    )
    def test_other_transitions_rejected(self, current, target):
        with pytest.raises(InvalidState):
            assert_can_transition(current, target)

    def test_cancelled_is_not_a_status_update(self):
        with pytest.raises(InvalidState, match="cancellation operation"):
            assert_can_transition(OrderStatus.PENDING, OrderStatus.CANCELLED)

    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
    def test_cancellable_states(self, status):
        assert_can_cancel(status)

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.PREPARING,
            OrderStatus.READY,
            OrderStatus.PICKED_UP,
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
        ],
    )
    def test_non_cancellable_states(self, status):
        with pytest.raises(InvalidState, match=f"Cannot cancel order in {status.value} state"):
            assert_can_cancel(status)

    @pytest.mark.parametrize("status", [s for s in OrderStatus if s != OrderStatus.CANCELLED])
    def test_any_live_order_can_be_delivered(self, status):
        assert_can_deliver(status)

    def test_cancelled_order_cannot_be_delivered(self):
        with pytest.raises(InvalidState, match="cancelled"):
            assert_can_deliver(OrderStatus.CANCELLED)
