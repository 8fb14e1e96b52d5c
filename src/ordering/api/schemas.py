"""Pydantic request/response schemas for the Ordering API.

These are external contracts, separate from the Order Ledger's own records.
"""

from typing import Any

from pydantic import BaseModel, Field

from ordering.order.order import Order


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class LineItemSchema(BaseModel):
    food_item_id: int
    food_item_name: str
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    total_price: float = Field(ge=0)


class CreateOrderRequest(BaseModel):
    restaurant_id: int
    items: list[LineItemSchema]
    total_amount: float
    discount_amount: float = 0.0
    coupon_id: int | None = None
    final_amount: float | None = None
    payment_method: str | None = None
    address: dict[str, Any] | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "restaurant_id": 9,
                    "items": [
                        {
                            "food_item_id": 42,
                            "food_item_name": "Vegetable Biryani",
                            "quantity": 2,
                            "unit_price": 10.0,
                            "total_price": 20.0,
                        }
                    ],
                    "total_amount": 20.0,
                    "discount_amount": 0.0,
                    "final_amount": 20.0,
                    "payment_method": "cash",
                    "address": {"street": "12 Park Lane", "city": "Pune", "postal_code": "411001"},
                    "notes": "Ring the bell twice",
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str


class UpdatePaymentStatusRequest(BaseModel):
    payment_status: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderListResponse(BaseModel):
    orders: list[Order]
    limit: int
    offset: int
