"""FastAPI routes for the Notifications domain."""

from fastapi import APIRouter, Depends, Query, Request

from notifications.api.schemas import NotificationListResponse, StatusResponse
from notifications.notification.notification import NotificationCenter
from shared.identity import Identity, current_identity


def _center(request: Request) -> NotificationCenter:
    return request.app.state.marketplace.notifications


notification_router = APIRouter(prefix="/notifications", tags=["notifications"])


@notification_router.get("", response_model=NotificationListResponse)
def list_notifications(
    read: bool | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    identity: Identity = Depends(current_identity),
    center: NotificationCenter = Depends(_center),
) -> NotificationListResponse:
    return NotificationListResponse(
        notifications=center.find_by_user_id(identity.user_id, read=read, limit=limit),
    )


@notification_router.put("/{notification_id}/read", response_model=StatusResponse)
def mark_notification_read(
    notification_id: int,
    identity: Identity = Depends(current_identity),
    center: NotificationCenter = Depends(_center),
) -> StatusResponse:
    center.mark_as_read(notification_id, identity.user_id)
    return StatusResponse(status="read")
