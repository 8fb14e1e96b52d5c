import pytest


def line_item(food_item_id, quantity=1, unit_price=4.0, name="Sourdough Loaf"):
    return {
        "food_item_id": food_item_id,
        "food_item_name": name,
        "quantity": quantity,
        "unit_price": unit_price,
        "total_price": round(unit_price * quantity, 2),
    }


@pytest.fixture()
def place_order(marketplace, restaurant_id, food_item_id):
    """Place an order for ``quantity`` loaves and return its id."""

    def _place(user_id=7, quantity=1, **kwargs):
        items = kwargs.pop("items", None) or [line_item(food_item_id, quantity)]
        total = kwargs.pop("total_amount", None)
        if total is None:
            total = round(sum(item["total_price"] for item in items), 2)
        return marketplace.ledger.create(
            user_id=user_id,
            restaurant_id=kwargs.pop("restaurant_id", restaurant_id),
            items=items,
            total_amount=total,
            **kwargs,
        )

    return _place
