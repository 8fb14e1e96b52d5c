"""Coupons and their usage counters.

The Order Ledger consumes two things from this module: the coupon-validation
fact produced by ``CouponLedger.validate`` before an order is placed, and the
``increment_usage`` mutation it runs inside the order's transaction.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from pydantic import BaseModel
from sqlalchemy import (
    Column,
    Connection,
    DateTime,
    Integer,
    Numeric,
    String,
    Table,
    insert,
    or_,
    select,
    update,
)

from shared.exceptions import ValidationError
from shared.utils.db import Database, metadata

logger = structlog.get_logger(__name__)


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


coupons = Table(
    "coupons",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(50), nullable=False, unique=True),
    Column("type", String(20), nullable=False),
    Column("value", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("min_order_amount", Numeric(10, 2, asdecimal=False), nullable=False, default=0),
    Column("max_discount", Numeric(10, 2, asdecimal=False)),
    Column("valid_from", DateTime(timezone=True), nullable=False),
    Column("valid_until", DateTime(timezone=True), nullable=False),
    Column("usage_limit", Integer),
    Column("used_count", Integer, nullable=False, default=0),
    Column("restaurant_id", Integer, index=True),
    Column("status", String(20), nullable=False, default=CouponStatus.ACTIVE.value),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


class Coupon(BaseModel):
    id: int
    code: str
    type: str
    value: float
    min_order_amount: float
    max_discount: float | None = None
    valid_from: datetime
    valid_until: datetime
    usage_limit: int | None = None
    used_count: int
    restaurant_id: int | None = None
    status: str
    created_at: datetime


class CouponValidation(BaseModel):
    """Outcome of checking a coupon code against a prospective order."""

    valid: bool
    message: str | None = None
    coupon: Coupon | None = None
    discount: float = 0.0


def _normalize_code(code: str) -> str:
    return code.strip().upper()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def calculate_discount(coupon: Coupon, order_amount: float) -> float:
    if coupon.type == CouponType.PERCENTAGE.value:
        discount = order_amount * coupon.value / 100
        if coupon.max_discount:
            discount = min(discount, coupon.max_discount)
    else:
        discount = min(coupon.value, order_amount)
    return round(discount, 2)


class CouponLedger:
    def __init__(self, database: Database):
        self.database = database

    def create(
        self,
        code: str,
        type: str,
        value: float,
        valid_from: datetime,
        valid_until: datetime,
        min_order_amount: float = 0.0,
        max_discount: float | None = None,
        usage_limit: int | None = None,
        restaurant_id: int | None = None,
    ) -> int:
        errors = {}
        if not code or not code.strip():
            errors["code"] = ["Code is required"]
        if type not in {t.value for t in CouponType}:
            errors["type"] = [f"Type must be one of: {', '.join(t.value for t in CouponType)}"]
        if not value or value <= 0:
            errors["value"] = ["Value must be positive"]
        if valid_until <= valid_from:
            errors["valid_until"] = ["Coupon must end after it starts"]
        if errors:
            raise ValidationError(errors)

        with self.database.transaction() as conn:
            result = conn.execute(
                insert(coupons).values(
                    code=_normalize_code(code),
                    type=type,
                    value=value,
                    min_order_amount=min_order_amount or 0.0,
                    max_discount=max_discount,
                    valid_from=valid_from,
                    valid_until=valid_until,
                    usage_limit=usage_limit,
                    used_count=0,
                    restaurant_id=restaurant_id,
                    status=CouponStatus.ACTIVE.value,
                    created_at=datetime.now(UTC),
                )
            )
            coupon_id = result.inserted_primary_key[0]

        logger.info("Coupon created", coupon_id=coupon_id, code=_normalize_code(code))
        return coupon_id

    def find_by_id(self, coupon_id: int) -> Coupon | None:
        with self.database.connect() as conn:
            row = conn.execute(select(coupons).where(coupons.c.id == coupon_id)).mappings().first()
        return Coupon(**row) if row else None

    def find_by_code(self, code: str) -> Coupon | None:
        with self.database.connect() as conn:
            row = conn.execute(select(coupons).where(coupons.c.code == _normalize_code(code))).mappings().first()
        return Coupon(**row) if row else None

    def validate(self, code: str, order_amount: float, restaurant_id: int | None = None) -> CouponValidation:
        coupon = self.find_by_code(code)
        if coupon is None:
            return CouponValidation(valid=False, message="Coupon code not found")

        if coupon.status != CouponStatus.ACTIVE.value:
            return CouponValidation(valid=False, message="Coupon is not active")

        now = datetime.now(UTC)
        if _as_utc(coupon.valid_from) > now:
            return CouponValidation(valid=False, message="Coupon is not yet valid")
        if _as_utc(coupon.valid_until) < now:
            return CouponValidation(valid=False, message="Coupon has expired")

        if order_amount < coupon.min_order_amount:
            return CouponValidation(
                valid=False,
                message=f"Minimum order amount is {coupon.min_order_amount:.2f}",
            )

        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            return CouponValidation(valid=False, message="Coupon usage limit reached")

        if coupon.restaurant_id is not None and coupon.restaurant_id != restaurant_id:
            return CouponValidation(valid=False, message="Coupon is not valid for this restaurant")

        return CouponValidation(valid=True, coupon=coupon, discount=calculate_discount(coupon, order_amount))

    def increment_usage(self, conn: Connection, coupon_id: int) -> None:
        """Count one redemption, within the caller's transaction.

        Conditional on the coupon existing and having uses left, so two
        orders cannot both spend the last use.
        """
        result = conn.execute(
            update(coupons)
            .where(
                coupons.c.id == coupon_id,
                or_(coupons.c.usage_limit.is_(None), coupons.c.used_count < coupons.c.usage_limit),
            )
            .values(used_count=coupons.c.used_count + 1)
        )
        if result.rowcount == 1:
            return

        exists = conn.execute(select(coupons.c.id).where(coupons.c.id == coupon_id)).scalar()
        if exists is None:
            raise ValidationError({"coupon_id": ["Coupon not found"]})
        raise ValidationError({"coupon_id": ["Coupon usage limit reached"]})
