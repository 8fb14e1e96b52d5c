"""Pydantic response schemas for the Notifications API."""

from pydantic import BaseModel

from notifications.notification.notification import Notification


class NotificationListResponse(BaseModel):
    notifications: list[Notification]


class StatusResponse(BaseModel):
    status: str = "ok"
