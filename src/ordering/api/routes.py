"""FastAPI routes for the Ordering domain."""

from fastapi import APIRouter, Depends, Query, Request

from catalogue.restaurant.restaurant import RestaurantDirectory
from ordering.api.schemas import (
    CreateOrderRequest,
    OrderListResponse,
    UpdatePaymentStatusRequest,
    UpdateStatusRequest,
)
from ordering.order.authorization import authorize_restaurant_action, authorize_view, scope_filters
from ordering.order.ledger import OrderLedger
from ordering.order.order import Order
from ordering.order.queries import OrderFilters
from shared.exceptions import NotFoundOrUnauthorized
from shared.identity import Identity, current_identity


def _ledger(request: Request) -> OrderLedger:
    return request.app.state.marketplace.ledger


def _restaurants(request: Request) -> RestaurantDirectory:
    return request.app.state.marketplace.restaurants


def _load_order(ledger: OrderLedger, order_id: int) -> Order:
    order = ledger.find_by_id(order_id)
    if order is None:
        raise NotFoundOrUnauthorized("Order not found")
    return order


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=OrderListResponse)
def list_orders(
    request: Request,
    status: str | None = None,
    payment_status: str | None = None,
    restaurant_id: int | None = None,
    user_id: int | None = None,
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    identity: Identity = Depends(current_identity),
    ledger: OrderLedger = Depends(_ledger),
    restaurants: RestaurantDirectory = Depends(_restaurants),
) -> OrderListResponse:
    config = request.app.state.marketplace.config
    limit = min(limit or config.default_page_size, config.max_page_size)

    filters = OrderFilters(
        user_id=user_id if identity.is_admin else None,
        restaurant_id=restaurant_id,
        status=status,
        payment_status=payment_status,
        limit=limit,
        offset=offset,
    )
    filters = scope_filters(identity, filters, restaurants)
    return OrderListResponse(orders=ledger.find_all(filters), limit=limit, offset=offset)


@order_router.get("/{order_id}", response_model=Order)
def get_order(
    order_id: int,
    identity: Identity = Depends(current_identity),
    ledger: OrderLedger = Depends(_ledger),
    restaurants: RestaurantDirectory = Depends(_restaurants),
) -> Order:
    order = _load_order(ledger, order_id)
    authorize_view(identity, order, restaurants)
    return order


@order_router.post("", status_code=201, response_model=Order)
def create_order(
    body: CreateOrderRequest,
    identity: Identity = Depends(current_identity),
    ledger: OrderLedger = Depends(_ledger),
) -> Order:
    order_id = ledger.create(
        user_id=identity.user_id,
        restaurant_id=body.restaurant_id,
        items=[item.model_dump() for item in body.items],
        total_amount=body.total_amount,
        discount_amount=body.discount_amount,
        coupon_id=body.coupon_id,
        final_amount=body.final_amount,
        payment_method=body.payment_method,
        address=body.address,
        notes=body.notes,
    )
    return _load_order(ledger, order_id)


@order_router.put("/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: int,
    body: UpdateStatusRequest,
    identity: Identity = Depends(current_identity),
    ledger: OrderLedger = Depends(_ledger),
    restaurants: RestaurantDirectory = Depends(_restaurants),
) -> Order:
    order = _load_order(ledger, order_id)
    authorize_restaurant_action(identity, order, restaurants)
    ledger.update_status(order_id, body.status)
    return _load_order(ledger, order_id)


@order_router.put("/{order_id}/payment", response_model=Order)
def update_payment_status(
    order_id: int,
    body: UpdatePaymentStatusRequest,
    identity: Identity = Depends(current_identity),
    ledger: OrderLedger = Depends(_ledger),
    restaurants: RestaurantDirectory = Depends(_restaurants),
) -> Order:
    order = _load_order(ledger, order_id)
    authorize_restaurant_action(identity, order, restaurants)
    ledger.update_payment_status(order_id, body.payment_status)
    return _load_order(ledger, order_id)


@order_router.post("/{order_id}/cancel", response_model=Order)
def cancel_order(
    order_id: int,
    identity: Identity = Depends(current_identity),
    ledger: OrderLedger = Depends(_ledger),
) -> Order:
    ledger.cancel(order_id, identity.user_id)
    return _load_order(ledger, order_id)
