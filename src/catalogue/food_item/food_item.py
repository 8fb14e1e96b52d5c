"""Discounted food items and their available quantity.

``quantity_available`` is the only counter the Order Ledger touches. Both
mutations take the caller's transaction connection so they commit or roll
back together with the order that caused them.

The decrement is a single conditional UPDATE::

    UPDATE food_items SET quantity_available = quantity_available - :n
     WHERE id = :id AND quantity_available >= :n

The storage engine serializes concurrent updates of the same row, so two
orders racing for the last portion cannot both succeed; the loser sees zero
affected rows.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from pydantic import BaseModel
from sqlalchemy import (
    CheckConstraint,
    Column,
    Connection,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    insert,
    select,
    update,
)

from catalogue.restaurant.restaurant import restaurants
from shared.exceptions import ValidationError
from shared.utils.db import Database, metadata

logger = structlog.get_logger(__name__)


class FoodItemStatus(Enum):
    AVAILABLE = "available"
    SOLD_OUT = "sold_out"
    EXPIRED = "expired"


food_items = Table(
    "food_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("restaurant_id", Integer, ForeignKey(restaurants.c.id), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("original_price", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("discounted_price", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("quantity_available", Integer, nullable=False, default=0),
    Column("status", String(20), nullable=False, default=FoodItemStatus.AVAILABLE.value),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("quantity_available >= 0", name="ck_food_items_quantity_non_negative"),
)


class FoodItem(BaseModel):
    id: int
    restaurant_id: int
    name: str
    description: str | None = None
    original_price: float
    discounted_price: float
    quantity_available: int
    status: str
    created_at: datetime
    updated_at: datetime


class ItemCatalog:
    def __init__(self, database: Database):
        self.database = database

    def create(
        self,
        restaurant_id: int,
        name: str,
        original_price: float,
        discounted_price: float,
        quantity_available: int = 0,
        description: str | None = None,
    ) -> int:
        errors = {}
        if not name or not name.strip():
            errors["name"] = ["Food item name is required"]
        if quantity_available < 0:
            errors["quantity_available"] = ["Quantity cannot be negative"]
        if discounted_price > original_price:
            errors["discounted_price"] = ["Discounted price cannot exceed the original price"]
        if errors:
            raise ValidationError(errors)

        now = datetime.now(UTC)
        with self.database.transaction() as conn:
            result = conn.execute(
                insert(food_items).values(
                    restaurant_id=restaurant_id,
                    name=name.strip(),
                    description=description,
                    original_price=original_price,
                    discounted_price=discounted_price,
                    quantity_available=quantity_available,
                    status=FoodItemStatus.AVAILABLE.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            food_item_id = result.inserted_primary_key[0]

        logger.info(
            "Food item created",
            food_item_id=food_item_id,
            restaurant_id=restaurant_id,
            quantity_available=quantity_available,
        )
        return food_item_id

    def find_by_id(self, food_item_id: int) -> FoodItem | None:
        with self.database.connect() as conn:
            row = conn.execute(select(food_items).where(food_items.c.id == food_item_id)).mappings().first()
        return FoodItem(**row) if row else None

    def quantity_of(self, food_item_id: int) -> int | None:
        with self.database.connect() as conn:
            return conn.execute(
                select(food_items.c.quantity_available).where(food_items.c.id == food_item_id)
            ).scalar()

    def decrement_quantity(self, conn: Connection, food_item_id: int, quantity: int) -> bool:
        """Take ``quantity`` portions if that many are available.

        Returns False, leaving the row untouched, when the item is missing or
        has fewer than ``quantity`` portions left.
        """
        result = conn.execute(
            update(food_items)
            .where(
                food_items.c.id == food_item_id,
                food_items.c.quantity_available >= quantity,
            )
            .values(
                quantity_available=food_items.c.quantity_available - quantity,
                updated_at=datetime.now(UTC),
            )
        )
        return result.rowcount == 1

    def increment_quantity(self, conn: Connection, food_item_id: int, quantity: int) -> bool:
        """Return ``quantity`` portions to the item. False if the item is gone."""
        result = conn.execute(
            update(food_items)
            .where(food_items.c.id == food_item_id)
            .values(
                quantity_available=food_items.c.quantity_available + quantity,
                updated_at=datetime.now(UTC),
            )
        )
        return result.rowcount == 1
