"""FastAPI routes for the Fulfillment domain: delivery tracking."""

import hashlib
import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as SchemaError

from catalogue.restaurant.restaurant import RestaurantDirectory
from fulfillment.api.schemas import (
    DeliveryListResponse,
    DeliveryUpdateRequest,
    DeliveryWebhookRequest,
    StatusResponse,
)
from fulfillment.delivery.tracking import DeliveryTracker, DeliveryTracking
from ordering.order.authorization import authorize_view
from ordering.order.ledger import OrderLedger
from ordering.order.order import OrderStatus
from shared.exceptions import NotFoundOrUnauthorized, PermissionDenied
from shared.identity import Identity, current_identity


def _tracker(request: Request) -> DeliveryTracker:
    return request.app.state.marketplace.tracker


def _ledger(request: Request) -> OrderLedger:
    return request.app.state.marketplace.ledger


def _restaurants(request: Request) -> RestaurantDirectory:
    return request.app.state.marketplace.restaurants


def verify_signature(secret: str, payload: bytes, signature: str) -> bool:
    """HMAC-SHA256 over the raw request body, hex encoded."""
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def _require_tracking(tracker: DeliveryTracker, order_id: int) -> DeliveryTracking:
    tracking = tracker.find_by_order_id(order_id)
    if tracking is None:
        raise NotFoundOrUnauthorized("Delivery tracking not found")
    return tracking


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/delivery", tags=["delivery"])


@delivery_router.get("", response_model=DeliveryListResponse)
def list_deliveries(
    status: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=500),
    identity: Identity = Depends(current_identity),
    tracker: DeliveryTracker = Depends(_tracker),
) -> DeliveryListResponse:
    """Every delivery record, newest first. Admin only."""
    if not identity.is_admin:
        raise PermissionDenied("Admin access required")
    return DeliveryListResponse(deliveries=tracker.find_all(status=status, limit=limit))


@delivery_router.get("/track/{tracking_number}", response_model=DeliveryTracking)
def track_delivery(tracking_number: str, tracker: DeliveryTracker = Depends(_tracker)) -> DeliveryTracking:
    """Public lookup by tracking number."""
    tracking = tracker.find_by_tracking_number(tracking_number)
    if tracking is None:
        raise NotFoundOrUnauthorized("Delivery tracking not found")
    return tracking


@delivery_router.get("/{order_id}", response_model=DeliveryTracking)
def get_delivery(
    order_id: int,
    identity: Identity = Depends(current_identity),
    tracker: DeliveryTracker = Depends(_tracker),
    ledger: OrderLedger = Depends(_ledger),
    restaurants: RestaurantDirectory = Depends(_restaurants),
) -> DeliveryTracking:
    order = ledger.find_by_id(order_id)
    if order is None:
        raise NotFoundOrUnauthorized("Order not found")
    authorize_view(identity, order, restaurants)

    return _require_tracking(tracker, order_id)


@delivery_router.post("/{order_id}/update", response_model=StatusResponse)
def update_delivery(
    order_id: int,
    body: DeliveryUpdateRequest,
    identity: Identity = Depends(current_identity),
    tracker: DeliveryTracker = Depends(_tracker),
    ledger: OrderLedger = Depends(_ledger),
) -> StatusResponse:
    """Manual delivery update by an admin.

    A delivered update closes the order first, so a refused order leaves the
    delivery record untouched.
    """
    if not identity.is_admin:
        raise PermissionDenied("Admin access required")

    _require_tracking(tracker, order_id)
    if body.status == OrderStatus.DELIVERED.value:
        ledger.confirm_delivery(order_id)

    tracker.update_status(
        order_id,
        body.status,
        current_location=body.current_location,
        estimated_delivery_time=body.estimated_delivery_time,
    )
    return StatusResponse(status="delivery_updated")


@delivery_router.post("/{order_id}/webhook", response_model=StatusResponse)
async def delivery_webhook(
    order_id: int,
    request: Request,
    x_delivery_signature: str = Header(default=""),
) -> StatusResponse:
    """Carrier callback. Delivery confirmation also settles the payment."""
    marketplace = request.app.state.marketplace
    raw_body = await request.body()

    secret = marketplace.config.delivery_webhook_secret
    if secret and not verify_signature(secret, raw_body, x_delivery_signature):
        raise HTTPException(status_code=401, detail="Invalid delivery webhook signature")

    try:
        body = DeliveryWebhookRequest.model_validate_json(raw_body or b"{}")
    except SchemaError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from None

    await run_in_threadpool(_apply_external_update, marketplace, order_id, body)
    return StatusResponse(status="tracking_updated")


def _apply_external_update(marketplace, order_id: int, body: DeliveryWebhookRequest) -> None:
    # A repeated "delivered" callback leaves the order as it is.
    _require_tracking(marketplace.tracker, order_id)
    if body.status == OrderStatus.DELIVERED.value:
        marketplace.ledger.confirm_delivery(order_id, settle_payment=True)

    marketplace.tracker.update_from_external(order_id, body.model_dump(exclude_none=True))
