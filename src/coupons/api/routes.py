"""FastAPI routes for the Coupons domain."""

from fastapi import APIRouter, Depends, Query, Request

from coupons.api.schemas import CouponQuoteResponse
from coupons.coupon.coupon import CouponLedger
from shared.exceptions import ValidationError


def _coupons(request: Request) -> CouponLedger:
    return request.app.state.marketplace.coupons


coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.get("/{code}/validate", response_model=CouponQuoteResponse)
def validate_coupon(
    code: str,
    order_amount: float = Query(default=0.0, ge=0),
    restaurant_id: int | None = None,
    coupons: CouponLedger = Depends(_coupons),
) -> CouponQuoteResponse:
    """Quote the discount a code would give before the order is placed.

    Public, so checkout can show the discount without a signed-in user.
    """
    result = coupons.validate(code, order_amount, restaurant_id=restaurant_id)
    if not result.valid:
        raise ValidationError({"code": [result.message]})
    return CouponQuoteResponse(coupon=result.coupon, discount=result.discount)
