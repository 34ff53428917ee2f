"""Coupon evaluation and redemption."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    CouponNotApplicable,
    DuplicateEntity,
    InvalidCoupon,
    NotFound,
)
from services.commerce_service.models import Coupon, DiscountType
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CENT = Decimal("0.01")

UPDATABLE_FIELDS = (
    "code",
    "description",
    "discount_type",
    "discount_value",
    "min_order_amount",
    "max_discount_amount",
    "usage_limit",
    "usage_per_user",
    "applicable_categories",
    "applicable_products",
    "start_date",
    "end_date",
    "is_active",
)


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DiscountQuote:
    coupon_id: uuid.UUID
    code: str
    order_amount: Decimal
    discount: Decimal

    @property
    def final_amount(self) -> Decimal:
        return self.order_amount - self.discount


# ---------------------------------------------------------------------------
# Pure evaluation
# ---------------------------------------------------------------------------


def is_valid(coupon: Coupon, now: Optional[datetime] = None) -> bool:
    """Active, inside its validity window and under its usage limit."""
    now = now or utc_now()

    if not coupon.is_active:
        return False
    if now < ensure_utc(coupon.start_date) or now > ensure_utc(coupon.end_date):
        return False
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return False
    return True


def calculate_discount(
    coupon: Coupon, order_amount, now: Optional[datetime] = None
) -> Decimal:
    """Discount for ``order_amount``; never more than the amount or the cap."""
    order_amount = Decimal(order_amount)

    if not is_valid(coupon, now):
        return Decimal("0.00")
    if order_amount < Decimal(coupon.min_order_amount or 0):
        return Decimal("0.00")

    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = order_amount * Decimal(coupon.discount_value) / Decimal(100)
        if coupon.max_discount_amount is not None:
            discount = min(discount, Decimal(coupon.max_discount_amount))
    else:
        discount = Decimal(coupon.discount_value)

    return _money(min(discount, order_amount))


def check_applicability(
    coupon: Coupon,
    product_ids: Iterable[uuid.UUID],
    category_ids: Iterable[Optional[uuid.UUID]],
) -> None:
    """Raise ``CouponNotApplicable`` unless each restriction list matches.

    An empty restriction list places no constraint.
    """
    products = {str(p) for p in product_ids if p is not None}
    categories = {str(c) for c in category_ids if c is not None}

    allowed_products = {str(p) for p in coupon.applicable_products or []}
    if allowed_products and not (allowed_products & products):
        raise CouponNotApplicable(
            f"Coupon {coupon.code} is not applicable to these products"
        )

    allowed_categories = {str(c) for c in coupon.applicable_categories or []}
    if allowed_categories and not (allowed_categories & categories):
        raise CouponNotApplicable(
            f"Coupon {coupon.code} is not applicable to these categories"
        )


def quote(
    coupon: Coupon,
    order_amount,
    product_ids: Iterable[uuid.UUID] = (),
    category_ids: Iterable[Optional[uuid.UUID]] = (),
    now: Optional[datetime] = None,
) -> DiscountQuote:
    """Validate a coupon against an order and price it.

    Unlike ``calculate_discount`` this reports why a coupon cannot be used.
    """
    order_amount = _money(order_amount)

    if not is_valid(coupon, now):
        raise InvalidCoupon("Coupon has expired or is no longer valid")
    if order_amount < Decimal(coupon.min_order_amount or 0):
        raise InvalidCoupon(
            f"Minimum order amount of {_money(coupon.min_order_amount)} required"
        )
    check_applicability(coupon, product_ids, category_ids)

    return DiscountQuote(
        coupon_id=coupon.id,
        code=coupon.code,
        order_amount=order_amount,
        discount=calculate_discount(coupon, order_amount, now),
    )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


async def create_coupon(
    db: AsyncSession,
    actor: AuthUser,
    *,
    code: str,
    discount_type: DiscountType,
    discount_value,
    start_date: datetime,
    end_date: datetime,
    description: Optional[str] = None,
    min_order_amount=0,
    max_discount_amount=None,
    usage_limit: Optional[int] = None,
    usage_per_user: int = 1,
    applicable_categories: Iterable[uuid.UUID] = (),
    applicable_products: Iterable[uuid.UUID] = (),
    is_active: bool = True,
) -> Coupon:
    """Create a coupon. Codes are unique regardless of case."""
    normalized = Coupon.normalize_code(code)
    existing = await db.execute(select(Coupon.id).where(Coupon.code == normalized))
    if existing.scalar_one_or_none():
        raise DuplicateEntity(f"Coupon code {normalized} already exists")

    coupon = Coupon(
        code=normalized,
        description=description,
        discount_type=discount_type,
        discount_value=discount_value,
        min_order_amount=min_order_amount,
        max_discount_amount=max_discount_amount,
        usage_limit=usage_limit,
        used_count=0,
        usage_per_user=usage_per_user,
        applicable_categories=[str(c) for c in applicable_categories],
        applicable_products=[str(p) for p in applicable_products],
        start_date=start_date,
        end_date=end_date,
        is_active=is_active,
        created_by=actor.user_id,
    )
    db.add(coupon)
    await db.commit()
    await db.refresh(coupon)

    logger.info("Created coupon %s by %s", coupon.code, actor.user_id)
    return coupon


async def get_coupon(db: AsyncSession, coupon_id: uuid.UUID) -> Coupon:
    coupon = await db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFound("Coupon not found")
    return coupon


async def get_coupon_by_code(db: AsyncSession, code: str) -> Coupon:
    result = await db.execute(
        select(Coupon).where(Coupon.code == Coupon.normalize_code(code))
    )
    coupon = result.scalar_one_or_none()
    if not coupon:
        raise NotFound("Invalid coupon code")
    return coupon


async def list_active_coupons(db: AsyncSession) -> list[Coupon]:
    result = await db.execute(
        select(Coupon).where(Coupon.is_active.is_(True)).order_by(Coupon.code)
    )
    return list(result.scalars().all())


async def validate_coupon(
    db: AsyncSession,
    code: str,
    order_amount,
    product_ids: Iterable[uuid.UUID] = (),
    category_ids: Iterable[Optional[uuid.UUID]] = (),
) -> DiscountQuote:
    """Look up a code and quote it against an order without redeeming it."""
    try:
        coupon = await get_coupon_by_code(db, code)
    except NotFound:
        raise InvalidCoupon("Invalid coupon code")
    return quote(coupon, order_amount, product_ids, category_ids)


async def redeem_coupon(db: AsyncSession, coupon_id: uuid.UUID) -> None:
    """Count one use of a coupon.

    A single conditional UPDATE so concurrent checkouts can never push
    ``used_count`` past ``usage_limit`` or lose an increment. Does not commit;
    runs inside the caller's order transaction.
    """
    result = await db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit),
        )
        .values(used_count=Coupon.used_count + 1, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidCoupon("Coupon usage limit reached")
    logger.info("Redeemed coupon %s", coupon_id)


async def update_coupon(
    db: AsyncSession, actor: AuthUser, code: str, **changes
) -> Coupon:
    """Edit a coupon. Setting ``is_active`` to False takes it out of use."""
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    coupon = await get_coupon_by_code(db, code)

    if changes.get("code") is not None:
        normalized = Coupon.normalize_code(changes["code"])
        clash = await db.execute(
            select(Coupon.id).where(Coupon.code == normalized, Coupon.id != coupon.id)
        )
        if clash.scalar_one_or_none():
            raise DuplicateEntity(f"Coupon code {normalized} already exists")
        changes["code"] = normalized
    for field in ("applicable_categories", "applicable_products"):
        if changes.get(field) is not None:
            changes[field] = [str(value) for value in changes[field]]

    start_date = ensure_utc(changes.get("start_date") or coupon.start_date)
    end_date = ensure_utc(changes.get("end_date") or coupon.end_date)
    if end_date <= start_date:
        raise InvalidCoupon("end_date must be after start_date")
    discount_type = changes.get("discount_type") or coupon.discount_type
    discount_value = Decimal(
        changes.get("discount_value")
        if changes.get("discount_value") is not None
        else coupon.discount_value
    )
    if discount_type == DiscountType.PERCENTAGE and discount_value > 100:
        raise InvalidCoupon("Percentage discount cannot exceed 100")

    for field, value in changes.items():
        setattr(coupon, field, value)
    await db.commit()
    await db.refresh(coupon)

    logger.info(
        "Updated coupon %s by %s: %s",
        coupon.code,
        actor.user_id,
        ", ".join(sorted(changes)),
    )
    return coupon


async def delete_coupon(db: AsyncSession, actor: AuthUser, code: str) -> None:
    """Remove a coupon. Orders keep the code they were placed with."""
    coupon = await get_coupon_by_code(db, code)
    deleted_code = coupon.code
    await db.delete(coupon)
    await db.commit()
    logger.info("Deleted coupon %s by %s", deleted_code, actor.user_id)
