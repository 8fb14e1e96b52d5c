"""Pydantic request and response schemas for the Fulfillment API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from fulfillment.delivery.tracking import DeliveryTracking


class DeliveryUpdateRequest(BaseModel):
    status: str
    current_location: dict[str, Any] | None = None
    estimated_delivery_time: datetime | None = None


class DeliveryWebhookRequest(BaseModel):
    status: str | None = None
    location: dict[str, Any] | None = None
    estimated_delivery_time: datetime | None = None


class StatusResponse(BaseModel):
    status: str = "ok"


class DeliveryListResponse(BaseModel):
    deliveries: list[DeliveryTracking]
