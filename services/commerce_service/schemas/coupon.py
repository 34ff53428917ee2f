"""Coupon request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from services.commerce_service.models.enums import DiscountType


class CouponCreateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., ge=0)
    min_order_amount: Decimal = Field(Decimal("0"), ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    usage_per_user: int = Field(1, ge=1)
    applicable_categories: list[uuid.UUID] = Field(default_factory=list)
    applicable_products: list[uuid.UUID] = Field(default_factory=list)
    start_date: datetime
    end_date: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def check_window(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponUpdateRequest(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    usage_per_user: Optional[int] = Field(None, ge=1)
    applicable_categories: Optional[list[uuid.UUID]] = None
    applicable_products: Optional[list[uuid.UUID]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class CouponResponse(BaseModel):
    id: uuid.UUID
    code: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal
    min_order_amount: Decimal
    max_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int
    usage_per_user: int
    applicable_categories: list[uuid.UUID] = Field(default_factory=list)
    applicable_products: list[uuid.UUID] = Field(default_factory=list)
    start_date: datetime
    end_date: datetime
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CouponValidateRequest(BaseModel):
    code: str
    order_amount: Decimal = Field(..., ge=0)
    product_ids: list[uuid.UUID] = Field(default_factory=list)
    category_ids: list[uuid.UUID] = Field(default_factory=list)


class CouponQuoteResponse(BaseModel):
    coupon_id: uuid.UUID
    code: str
    order_amount: Decimal
    discount: Decimal
    final_amount: Decimal

    model_config = ConfigDict(from_attributes=True)
