"""Coupons domain API package."""

from coupons.api.routes import coupon_router

__all__ = ["coupon_router"]
