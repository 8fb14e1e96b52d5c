"""Restaurants listed on the marketplace.

The Order Ledger only needs two facts from here: the display name shown on
orders and the owner used to authorize restaurant-side status updates.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from pydantic import BaseModel
from sqlalchemy import Column, DateTime, Integer, String, Table, Text, insert, select

from shared.exceptions import ValidationError
from shared.utils.db import Database, metadata

logger = structlog.get_logger(__name__)


class RestaurantStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


restaurants = Table(
    "restaurants",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("category", String(100)),
    Column("address", Text),
    Column("phone", String(50)),
    Column("status", String(20), nullable=False, default=RestaurantStatus.ACTIVE.value),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class Restaurant(BaseModel):
    id: int
    owner_id: int
    name: str
    description: str | None = None
    category: str | None = None
    address: str | None = None
    phone: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime


class RestaurantDirectory:
    def __init__(self, database: Database):
        self.database = database

    def create(
        self,
        owner_id: int,
        name: str,
        description: str | None = None,
        category: str | None = None,
        address: str | None = None,
        phone: str | None = None,
    ) -> int:
        if not name or not name.strip():
            raise ValidationError({"name": ["Restaurant name is required"]})

        now = datetime.now(UTC)
        with self.database.transaction() as conn:
            result = conn.execute(
                insert(restaurants).values(
                    owner_id=owner_id,
                    name=name.strip(),
                    description=description,
                    category=category,
                    address=address,
                    phone=phone,
                    status=RestaurantStatus.ACTIVE.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            restaurant_id = result.inserted_primary_key[0]

        logger.info("Restaurant created", restaurant_id=restaurant_id, owner_id=owner_id)
        return restaurant_id

    def find_by_id(self, restaurant_id: int) -> Restaurant | None:
        with self.database.connect() as conn:
            row = conn.execute(select(restaurants).where(restaurants.c.id == restaurant_id)).mappings().first()
        return Restaurant(**row) if row else None

    def owner_of(self, restaurant_id: int) -> int | None:
        with self.database.connect() as conn:
            return conn.execute(select(restaurants.c.owner_id).where(restaurants.c.id == restaurant_id)).scalar()

    def is_owned_by(self, restaurant_id: int, user_id: int) -> bool:
        return self.owner_of(restaurant_id) == user_id
