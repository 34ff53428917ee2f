"""Coupon model."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import DiscountType, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column


class Coupon(Base):
    """Discount codes redeemable at checkout."""

    __tablename__ = "coupons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )  # Always stored upper-cased
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    discount_type: Mapped[DiscountType] = mapped_column(
        SAEnum(
            DiscountType,
            values_callable=enum_values,
            name="discount_type_enum",
        ),
        default=DiscountType.PERCENTAGE,
        nullable=False,
    )
    discount_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )  # % or fixed amount
    min_order_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=0, server_default="0", nullable=False
    )
    max_discount_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )  # Cap for percentage coupons

    # Usage limits
    usage_limit: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # None = unlimited
    used_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    usage_per_user: Mapped[int] = mapped_column(
        Integer, default=1, server_default="1", nullable=False
    )

    # Restrictions (lists of UUID strings; empty = applies to everything)
    applicable_categories: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False
    )
    applicable_products: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False
    )

    # Validity window
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("discount_value >= 0", name="non_negative_discount"),
        CheckConstraint("used_count >= 0", name="non_negative_used_count"),
    )

    @staticmethod
    def normalize_code(code: str) -> str:
        return code.strip().upper()

    def __repr__(self):
        return f"<Coupon {self.code}>"
