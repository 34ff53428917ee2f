"""Payment endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.commerce_service.models import PaymentMethod, PaymentStatus
from services.commerce_service.schemas import (
    PaymentCreateRequest,
    PaymentFailedRequest,
    PaymentResponse,
    PaymentSuccessRequest,
    PaymentVerifyRequest,
    RefundRequest,
    RefundStatusRequest,
)
from services.commerce_service.services import payments as payment_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payload: PaymentCreateRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.create_payment(db, current_user, **payload.model_dump())


@router.post("/verify", response_model=PaymentResponse)
async def verify_payment(
    payload: PaymentVerifyRequest,
    _service: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Gateway callback, relayed with a service-role token."""
    return await payment_ops.verify_payment(
        db, payload.transaction_id, payload.gateway_response
    )


@router.get("/mine", response_model=list[PaymentResponse])
async def list_my_payments(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.list_payments_for_user(db, current_user.user_id)


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    payment_method: Optional[PaymentMethod] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.list_payments(
        db,
        status=payment_status,
        payment_method=payment_method,
        limit=limit,
        offset=skip,
    )


@router.get("/order/{order_id}", response_model=PaymentResponse)
async def get_payment_for_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.get_payment_for_order(db, current_user, order_id)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.get_payment(db, current_user, payment_id)


@router.put("/{payment_id}/success", response_model=PaymentResponse)
async def confirm_payment(
    payment_id: uuid.UUID,
    payload: PaymentSuccessRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.confirm_payment(
        db, current_user, payment_id, payload.gateway_response
    )


@router.put("/{payment_id}/failed", response_model=PaymentResponse)
async def fail_payment(
    payment_id: uuid.UUID,
    payload: PaymentFailedRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.fail_payment(db, current_user, payment_id, payload.reason)


@router.post("/{payment_id}/refund", response_model=PaymentResponse)
async def request_refund(
    payment_id: uuid.UUID,
    payload: RefundRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.refund_payment(
        db, admin, payment_id, amount=payload.amount, reason=payload.reason
    )


@router.put("/{payment_id}/refund/status", response_model=PaymentResponse)
async def set_refund_status(
    payment_id: uuid.UUID,
    payload: RefundStatusRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await payment_ops.set_refund_status(
        db,
        admin,
        payment_id,
        status=payload.status,
        reference=payload.refund_reference,
    )
