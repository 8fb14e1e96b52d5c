"""Delivery tracking records.

One record per order, created after the order commits. Every status change
is appended to ``status_history`` together with the location reported with
it and, for carrier callbacks, the source.
"""

import time
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

import structlog
from pydantic import BaseModel
from sqlalchemy import JSON, Column, DateTime, Integer, String, Table, insert, select, update

from shared.exceptions import NotFoundOrUnauthorized, ValidationError
from shared.utils.db import Database, metadata

logger = structlog.get_logger(__name__)


class DeliveryStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"


delivery_tracking = Table(
    "delivery_tracking",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, nullable=False, unique=True),
    Column("tracking_number", String(50), nullable=False, unique=True),
    Column("status", String(20), nullable=False, default=DeliveryStatus.PENDING.value),
    Column("current_location", JSON),
    Column("estimated_delivery_time", DateTime(timezone=True)),
    Column("delivery_partner_id", String(100)),
    Column("external_tracking_id", String(100)),
    Column("status_history", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class DeliveryTracking(BaseModel):
    id: int
    order_id: int
    tracking_number: str
    status: str
    current_location: dict[str, Any] | None = None
    estimated_delivery_time: datetime | None = None
    delivery_partner_id: str | None = None
    external_tracking_id: str | None = None
    status_history: list[dict[str, Any]] = []
    created_at: datetime
    updated_at: datetime


def generate_tracking_number() -> str:
    return f"TRK-{time.time_ns() // 1_000_000}-{uuid4().hex[:8].upper()}"


def _parse_status(value: str) -> DeliveryStatus:
    try:
        return DeliveryStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown delivery status '{value}'"]}) from None


class DeliveryTracker:
    def __init__(self, database: Database):
        self.database = database

    def create(
        self,
        order_id: int,
        status: str = DeliveryStatus.PENDING.value,
        estimated_delivery_time: datetime | None = None,
        delivery_partner_id: str | None = None,
        external_tracking_id: str | None = None,
    ) -> int:
        if not order_id:
            raise ValidationError({"order_id": ["Order ID is required"]})

        status = _parse_status(status).value
        now = datetime.now(UTC)
        tracking_number = generate_tracking_number()

        with self.database.transaction() as conn:
            result = conn.execute(
                insert(delivery_tracking).values(
                    order_id=order_id,
                    tracking_number=tracking_number,
                    status=status,
                    estimated_delivery_time=estimated_delivery_time,
                    delivery_partner_id=delivery_partner_id,
                    external_tracking_id=external_tracking_id,
                    status_history=[{"status": status, "timestamp": now.isoformat()}],
                    created_at=now,
                    updated_at=now,
                )
            )
            tracking_id = result.inserted_primary_key[0]

        logger.info("Delivery tracking created", order_id=order_id, tracking_number=tracking_number)
        return tracking_id

    def find_by_order_id(self, order_id: int) -> DeliveryTracking | None:
        with self.database.connect() as conn:
            row = (
                conn.execute(select(delivery_tracking).where(delivery_tracking.c.order_id == order_id))
                .mappings()
                .first()
            )
        return DeliveryTracking(**row) if row else None

    def find_by_tracking_number(self, tracking_number: str) -> DeliveryTracking | None:
        with self.database.connect() as conn:
            row = (
                conn.execute(select(delivery_tracking).where(delivery_tracking.c.tracking_number == tracking_number))
                .mappings()
                .first()
            )
        return DeliveryTracking(**row) if row else None

    def find_all(self, status: str | None = None, limit: int | None = None) -> list[DeliveryTracking]:
        query = select(delivery_tracking)
        if status:
            query = query.where(delivery_tracking.c.status == _parse_status(status).value)
        query = query.order_by(delivery_tracking.c.created_at.desc(), delivery_tracking.c.id.desc())
        if limit:
            query = query.limit(limit)

        with self.database.connect() as conn:
            return [DeliveryTracking(**row) for row in conn.execute(query).mappings()]

    def update_status(
        self,
        order_id: int,
        status: str,
        current_location: dict[str, Any] | None = None,
        estimated_delivery_time: datetime | None = None,
    ) -> None:
        self._record(
            order_id,
            status=_parse_status(status).value,
            current_location=current_location,
            estimated_delivery_time=estimated_delivery_time,
        )

    def update_from_external(self, order_id: int, external_data: dict[str, Any]) -> None:
        """Apply a carrier callback. A missing status keeps the current one."""
        status = external_data.get("status")
        eta = external_data.get("estimated_delivery_time")
        if isinstance(eta, str):
            eta = datetime.fromisoformat(eta)
        self._record(
            order_id,
            status=_parse_status(status).value if status else None,
            current_location=external_data.get("location"),
            estimated_delivery_time=eta,
            source="external_api",
        )

    def _record(
        self,
        order_id: int,
        status: str | None,
        current_location: dict[str, Any] | None,
        estimated_delivery_time: datetime | None,
        source: str | None = None,
    ) -> None:
        now = datetime.now(UTC)
        with self.database.transaction() as conn:
            row = (
                conn.execute(
                    select(delivery_tracking.c.status, delivery_tracking.c.status_history)
                    .where(delivery_tracking.c.order_id == order_id)
                    .with_for_update()
                )
                .mappings()
                .first()
            )
            if row is None:
                raise NotFoundOrUnauthorized("Delivery tracking not found")

            new_status = status or row["status"]
            entry = {"status": new_status, "timestamp": now.isoformat(), "location": current_location}
            if source:
                entry["source"] = source

            conn.execute(
                update(delivery_tracking)
                .where(delivery_tracking.c.order_id == order_id)
                .values(
                    status=new_status,
                    current_location=current_location,
                    estimated_delivery_time=estimated_delivery_time,
                    status_history=[*(row["status_history"] or []), entry],
                    updated_at=now,
                )
            )

        logger.info("Delivery status updated", order_id=order_id, status=new_status, source=source or "internal")
