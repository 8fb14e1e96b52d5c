"""Pydantic response schemas for the Coupons API."""

from pydantic import BaseModel

from coupons.coupon.coupon import Coupon


class CouponQuoteResponse(BaseModel):
    coupon: Coupon
    discount: float
