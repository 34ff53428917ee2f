"""Payment request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.commerce_service.models.enums import (
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)


class PaymentCreateRequest(BaseModel):
    order_id: uuid.UUID
    payment_method: Optional[PaymentMethod] = None
    payment_gateway: Optional[str] = Field(None, max_length=50)


class PaymentSuccessRequest(BaseModel):
    gateway_response: Optional[dict[str, Any]] = None


class PaymentFailedRequest(BaseModel):
    reason: Optional[str] = None


class PaymentVerifyRequest(BaseModel):
    """Gateway callback payload."""

    transaction_id: str
    gateway_response: Optional[dict[str, Any]] = None


class RefundRequest(BaseModel):
    # Range is checked against the payment, so no gt=0 here
    amount: Decimal
    reason: Optional[str] = None


class RefundStatusRequest(BaseModel):
    status: RefundStatus
    refund_reference: Optional[str] = Field(None, max_length=100)


class PaymentResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    user_id: str
    transaction_id: str
    payment_method: PaymentMethod
    payment_gateway: Optional[str] = None
    amount: Decimal
    currency: str
    status: PaymentStatus
    payment_date: Optional[datetime] = None
    failure_reason: Optional[str] = None
    retry_count: int
    refund_status: RefundStatus
    refund_amount: Optional[Decimal] = None
    refund_reason: Optional[str] = None
    refund_reference: Optional[str] = None
    refund_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
