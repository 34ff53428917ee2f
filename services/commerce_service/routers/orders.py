"""Order endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.commerce_service.models import OrderStatus
from services.commerce_service.schemas import (
    OrderCreateRequest,
    OrderResponse,
    OrderStatusUpdateRequest,
)
from services.commerce_service.services import orders as order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    payload: OrderCreateRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Checkout: price the basket, apply the coupon and hold the stock."""
    return await order_ops.place_order(
        db,
        current_user,
        store_id=payload.store_id,
        items=[
            order_ops.OrderLine(product_id=line.product_id, quantity=line.quantity)
            for line in payload.items
        ],
        payment_method=payload.payment_method,
        shipping_address=(
            payload.shipping_address.model_dump() if payload.shipping_address else None
        ),
        tax_price=payload.tax_price,
        shipping_price=payload.shipping_price,
        coupon_code=payload.coupon_code,
    )


@router.get("/mine", response_model=list[OrderResponse])
async def list_my_orders(
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.list_orders_for_user(
        db, current_user.user_id, status=order_status, limit=limit, offset=skip
    )


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    store_id: Optional[uuid.UUID] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.list_orders(
        db, status=order_status, store_id=store_id, limit=limit, offset=skip
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.get_order(db, current_user, order_id)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.cancel_order(db, current_user, order_id)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.update_order_status(db, admin, order_id, payload.status)
