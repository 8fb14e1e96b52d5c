"""Fulfillment domain API package."""

from fulfillment.api.routes import delivery_router

__all__ = ["delivery_router"]
