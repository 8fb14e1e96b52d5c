"""FoodSaver FastAPI application.

Serves the Order Ledger together with delivery tracking, notification reads
and coupon quotes. Domain failures are mapped to HTTP responses in one place
here.

Usage:
    uvicorn marketplace.asgi:app --host 0.0.0.0 --port 8000 --reload
"""

import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from coupons.api import coupon_router
from fulfillment.api import delivery_router
from marketplace.bootstrap import Marketplace, build_marketplace
from notifications.api import notification_router
from ordering.api import order_router
from shared.config import Config
from shared.exceptions import (
    InsufficientInventory,
    InvalidState,
    NotFoundOrUnauthorized,
    PermissionDenied,
    StorageFailure,
    ValidationError,
)
from shared.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


def create_app(config: Config | None = None, marketplace: Marketplace | None = None) -> FastAPI:
    marketplace = marketplace or build_marketplace(config)

    app = FastAPI(
        title="FoodSaver API",
        description="Surplus food marketplace: orders, delivery tracking and notifications",
        debug=marketplace.config.debug,
    )
    app.state.marketplace = marketplace

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def logging_context_middleware(request: Request, call_next):
        """Bind request details to every log line emitted while serving it."""
        clear_context()
        add_context(
            request_id=request.headers.get("x-request-id") or uuid.uuid4().hex,
            method=request.method,
            path=request.url.path,
            user_id=request.headers.get("x-user-id"),
        )
        try:
            return await call_next(request)
        finally:
            clear_context()

    _register_exception_handlers(app, debug=marketplace.config.debug)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(order_router)
    app.include_router(delivery_router)
    app.include_router(notification_router)
    app.include_router(coupon_router)

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------
    @app.get("/health")
    def health():
        with marketplace.database.connect() as conn:
            conn.execute(text("SELECT 1"))
        return JSONResponse(
            content={
                "status": "ok",
                "env": marketplace.config.env,
                "database": marketplace.database.engine.dialect.name,
            }
        )

    return app


def _register_exception_handlers(app: FastAPI, debug: bool) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": exc.messages})

    @app.exception_handler(NotFoundOrUnauthorized)
    async def not_found_handler(request: Request, exc: NotFoundOrUnauthorized):
        return JSONResponse(status_code=404, content={"detail": str(exc) or "Not found"})

    @app.exception_handler(PermissionDenied)
    async def permission_denied_handler(request: Request, exc: PermissionDenied):
        return JSONResponse(status_code=403, content={"detail": str(exc) or "Permission denied"})

    @app.exception_handler(InvalidState)
    async def invalid_state_handler(request: Request, exc: InvalidState):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InsufficientInventory)
    async def insufficient_inventory_handler(request: Request, exc: InsufficientInventory):
        return JSONResponse(
            status_code=409,
            content={
                "detail": str(exc),
                "food_item_id": exc.food_item_id,
                "requested": exc.requested,
            },
        )

    @app.exception_handler(StorageFailure)
    async def storage_failure_handler(request: Request, exc: StorageFailure):
        logger.error("Request failed on storage", path=request.url.path, error=str(exc))
        content = {"detail": "Internal server error"}
        if debug:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)
