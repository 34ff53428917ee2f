"""Order request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.commerce_service.models.enums import OrderStatus, PaymentMethod


class OrderLineRequest(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)


class ShippingAddress(BaseModel):
    street: str
    city: str
    state: Optional[str] = None
    postal_code: str
    country: str = "India"


class OrderCreateRequest(BaseModel):
    store_id: uuid.UUID
    items: list[OrderLineRequest]
    payment_method: PaymentMethod
    shipping_address: Optional[ShippingAddress] = None
    tax_price: Decimal = Field(Decimal("0"), ge=0)
    shipping_price: Decimal = Field(Decimal("0"), ge=0)
    coupon_code: Optional[str] = None


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    category_id: Optional[uuid.UUID] = None
    name: str
    quantity: int
    price: Decimal
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: uuid.UUID
    order_number: str
    user_id: str
    store_id: uuid.UUID
    items: list[OrderItemResponse]
    shipping_address: Optional[dict[str, Any]] = None
    payment_method: PaymentMethod
    items_price: Decimal
    discount_amount: Decimal
    coupon_code: Optional[str] = None
    tax_price: Decimal
    shipping_price: Decimal
    total_price: Decimal
    status: OrderStatus
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
