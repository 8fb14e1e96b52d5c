"""Storage layout for order headers and their line items."""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)

from catalogue.food_item.food_item import food_items
from catalogue.restaurant.restaurant import restaurants
from ordering.order.order import OrderStatus, PaymentStatus
from shared.utils.db import metadata

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_number", String(50), nullable=False, unique=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("restaurant_id", Integer, ForeignKey(restaurants.c.id), nullable=False, index=True),
    Column("total_amount", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("discount_amount", Numeric(10, 2, asdecimal=False), nullable=False, default=0),
    Column("coupon_id", Integer),
    Column("final_amount", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("status", String(20), nullable=False, default=OrderStatus.PENDING.value, index=True),
    Column("payment_status", String(20), nullable=False, default=PaymentStatus.PENDING.value),
    Column("payment_method", String(50)),
    Column("address", JSON),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey(orders.c.id), nullable=False, index=True),
    Column("food_item_id", Integer, ForeignKey(food_items.c.id), nullable=False),
    Column("food_item_name", String(255), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("total_price", Numeric(10, 2, asdecimal=False), nullable=False),
)
