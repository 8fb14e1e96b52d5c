"""Read paths for orders.

Orders are reconstituted from the header row, the restaurant's display name
(outer join, so a missing restaurant yields ``None``) and the line-item rows,
which are loaded in one batch per page of orders.
"""

from collections import defaultdict

from pydantic import BaseModel, Field
from sqlalchemy import Connection, Select, select

from catalogue.restaurant.restaurant import restaurants
from ordering.order.order import LineItem, Order, parse_payment_status, parse_status
from ordering.order.tables import order_items, orders
from shared.utils.db import Database


class OrderFilters(BaseModel):
    user_id: int | None = None
    restaurant_id: int | None = None
    status: str | None = None
    payment_status: str | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)


def _base_query() -> Select:
    return select(orders, restaurants.c.name.label("restaurant_name")).select_from(
        orders.outerjoin(restaurants, restaurants.c.id == orders.c.restaurant_id)
    )


def _apply_filters(query: Select, filters: OrderFilters) -> Select:
    if filters.user_id is not None:
        query = query.where(orders.c.user_id == filters.user_id)
    if filters.restaurant_id is not None:
        query = query.where(orders.c.restaurant_id == filters.restaurant_id)
    if filters.status:
        query = query.where(orders.c.status == parse_status(filters.status).value)
    if filters.payment_status:
        query = query.where(orders.c.payment_status == parse_payment_status(filters.payment_status).value)

    query = query.order_by(orders.c.created_at.desc(), orders.c.id.desc())

    if filters.limit is not None:
        query = query.limit(filters.limit)
    if filters.offset:
        query = query.offset(filters.offset)
    return query


def _load_items(conn: Connection, order_ids: list[int]) -> dict[int, list[LineItem]]:
    items_by_order = defaultdict(list)
    if not order_ids:
        return items_by_order

    rows = conn.execute(
        select(order_items).where(order_items.c.order_id.in_(order_ids)).order_by(order_items.c.id)
    ).mappings()
    for row in rows:
        items_by_order[row["order_id"]].append(
            LineItem(
                food_item_id=row["food_item_id"],
                food_item_name=row["food_item_name"],
                quantity=row["quantity"],
                unit_price=row["unit_price"],
                total_price=row["total_price"],
            )
        )
    return items_by_order


def _to_orders(conn: Connection, rows) -> list[Order]:
    rows = list(rows)
    items_by_order = _load_items(conn, [row["id"] for row in rows])
    return [Order(**row, items=items_by_order[row["id"]]) for row in rows]


class OrderQueries:
    def __init__(self, database: Database):
        self.database = database

    def find_by_id(self, order_id: int) -> Order | None:
        with self.database.connect() as conn:
            row = conn.execute(_base_query().where(orders.c.id == order_id)).mappings().first()
            if row is None:
                return None
            return _to_orders(conn, [row])[0]

    def find_all(self, filters: OrderFilters | None = None) -> list[Order]:
        query = _apply_filters(_base_query(), filters or OrderFilters())
        with self.database.connect() as conn:
            return _to_orders(conn, conn.execute(query).mappings())

    def find_by_user_id(self, user_id: int, filters: OrderFilters | None = None) -> list[Order]:
        filters = (filters or OrderFilters()).model_copy(update={"user_id": user_id})
        return self.find_all(filters)

    def find_by_restaurant_id(self, restaurant_id: int, filters: OrderFilters | None = None) -> list[Order]:
        filters = (filters or OrderFilters()).model_copy(update={"restaurant_id": restaurant_id})
        return self.find_all(filters)
