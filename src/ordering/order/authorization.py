"""Who may see and change which orders.

- users see and cancel only their own orders;
- restaurant owners see and advance orders of restaurants they own;
- admins see and advance every order.

A user asking for someone else's order gets ``NotFoundOrUnauthorized`` so
the response does not reveal that the order exists.
"""

from catalogue.restaurant.restaurant import RestaurantDirectory
from ordering.order.order import Order
from ordering.order.queries import OrderFilters
from shared.exceptions import NotFoundOrUnauthorized, PermissionDenied
from shared.identity import Identity, Role


def scope_filters(identity: Identity, filters: OrderFilters, restaurants: RestaurantDirectory) -> OrderFilters:
    """Narrow a listing to what ``identity`` may see."""
    if identity.role == Role.USER:
        return filters.model_copy(update={"user_id": identity.user_id})

    if identity.role == Role.RESTAURANT_OWNER:
        if filters.restaurant_id is None:
            raise PermissionDenied("Restaurant owners must choose one of their restaurants")
        if not restaurants.is_owned_by(filters.restaurant_id, identity.user_id):
            raise PermissionDenied("Not authorized to view orders of this restaurant")

    return filters


def authorize_view(identity: Identity, order: Order, restaurants: RestaurantDirectory) -> None:
    if identity.role == Role.USER and order.user_id != identity.user_id:
        raise NotFoundOrUnauthorized("Order not found")

    if identity.role == Role.RESTAURANT_OWNER and order.user_id != identity.user_id:
        if not restaurants.is_owned_by(order.restaurant_id, identity.user_id):
            raise PermissionDenied("Not authorized to view this order")


def authorize_restaurant_action(identity: Identity, order: Order, restaurants: RestaurantDirectory) -> None:
    """Status and payment writes belong to the restaurant side and admins."""
    if identity.role == Role.USER:
        raise PermissionDenied("Not authorized to update order status")

    if identity.role == Role.RESTAURANT_OWNER and not restaurants.is_owned_by(order.restaurant_id, identity.user_id):
        raise PermissionDenied("Not authorized to update this order")
