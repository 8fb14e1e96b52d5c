import pytest


@pytest.fixture()
def order_id(marketplace, restaurant_id, food_item_id):
    return marketplace.ledger.create(
        user_id=7,
        restaurant_id=restaurant_id,
        items=[
            {
                "food_item_id": food_item_id,
                "food_item_name": "Sourdough Loaf",
                "quantity": 1,
                "unit_price": 4.0,
                "total_price": 4.0,
            }
        ],
        total_amount=4.0,
    )
