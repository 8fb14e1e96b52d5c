"""In-app notifications addressed to a single user."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Table, Text, insert, select, update

from shared.exceptions import NotFoundOrUnauthorized, ValidationError
from shared.utils.db import Database, metadata

logger = structlog.get_logger(__name__)


class NotificationType(Enum):
    ORDER_PLACED = "order_placed"
    ORDER_STATUS = "order_status"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT = "payment"


notifications = Table(
    "notifications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("type", String(50), nullable=False),
    Column("title", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("data", JSON),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


class Notification(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    data: dict[str, Any] | None = None
    is_read: bool
    created_at: datetime


class NotificationCenter:
    def __init__(self, database: Database):
        self.database = database

    def notify(
        self,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> int:
        errors = {}
        if not user_id:
            errors["user_id"] = ["User ID is required"]
        if not title or not title.strip():
            errors["title"] = ["Title is required"]
        if not message or not message.strip():
            errors["message"] = ["Message is required"]
        if errors:
            raise ValidationError(errors)

        with self.database.transaction() as conn:
            result = conn.execute(
                insert(notifications).values(
                    user_id=user_id,
                    type=notification_type,
                    title=title.strip(),
                    message=message.strip(),
                    data=data,
                    is_read=False,
                    created_at=datetime.now(UTC),
                )
            )
            notification_id = result.inserted_primary_key[0]

        logger.info("Notification created", notification_id=notification_id, user_id=user_id, type=notification_type)
        return notification_id

    def find_by_user_id(self, user_id: int, read: bool | None = None, limit: int | None = None) -> list[Notification]:
        query = select(notifications).where(notifications.c.user_id == user_id)
        if read is not None:
            query = query.where(notifications.c.is_read == read)
        query = query.order_by(notifications.c.created_at.desc(), notifications.c.id.desc())
        if limit:
            query = query.limit(limit)

        with self.database.connect() as conn:
            return [Notification(**row) for row in conn.execute(query).mappings()]

    def mark_as_read(self, notification_id: int, user_id: int) -> None:
        with self.database.transaction() as conn:
            result = conn.execute(
                update(notifications)
                .where(notifications.c.id == notification_id, notifications.c.user_id == user_id)
                .values(is_read=True)
            )
            if result.rowcount != 1:
                raise NotFoundOrUnauthorized("Notification not found")
