"""Coupon endpoints."""

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.commerce_service.schemas import (
    CouponCreateRequest,
    CouponQuoteResponse,
    CouponResponse,
    CouponUpdateRequest,
    CouponValidateRequest,
)
from services.commerce_service.services import coupons as coupon_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.get("", response_model=list[CouponResponse])
async def list_active_coupons(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.list_active_coupons(db)


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    payload: CouponCreateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.create_coupon(db, admin, **payload.model_dump())


@router.post("/validate", response_model=CouponQuoteResponse)
async def validate_coupon(
    payload: CouponValidateRequest,
    _current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Quote a coupon against a basket without using it up."""
    return await coupon_ops.validate_coupon(
        db,
        payload.code,
        payload.order_amount,
        product_ids=payload.product_ids,
        category_ids=payload.category_ids,
    )


@router.get("/{code}", response_model=CouponResponse)
async def get_coupon_by_code(
    code: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.get_coupon_by_code(db, code)


@router.put("/{code}", response_model=CouponResponse)
async def update_coupon(
    code: str,
    payload: CouponUpdateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await coupon_ops.update_coupon(
        db, admin, code, **payload.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.delete("/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_coupon(
    code: str,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await coupon_ops.delete_coupon(db, admin, code)
