"""Delivery endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.commerce_service.models import DeliveryStatus
from services.commerce_service.schemas import (
    CourierAssignRequest,
    DeliveryCreateRequest,
    DeliveryRatingRequest,
    DeliveryResponse,
    DeliveryStatusRequest,
    LocationUpdateRequest,
    ProofOfDeliveryRequest,
    TrackingResponse,
)
from services.commerce_service.services import deliveries as delivery_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.get("/track/{tracking_number}", response_model=TrackingResponse)
async def track_delivery(
    tracking_number: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Public tracking lookup."""
    return await delivery_ops.track_delivery(db, tracking_number)


@router.get("/order/{order_id}", response_model=DeliveryResponse)
async def get_delivery_for_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.get_delivery_for_order(db, current_user, order_id)


@router.get("", response_model=list[DeliveryResponse])
async def list_deliveries(
    delivery_status: Optional[DeliveryStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.list_deliveries(
        db, status=delivery_status, limit=limit, offset=skip
    )


@router.post("", response_model=DeliveryResponse, status_code=status.HTTP_201_CREATED)
async def create_delivery(
    payload: DeliveryCreateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.create_delivery(db, admin, **payload.model_dump())


@router.get("/{delivery_id}", response_model=DeliveryResponse)
async def get_delivery(
    delivery_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.get_delivery(db, delivery_id)


@router.put("/{delivery_id}/assign", response_model=DeliveryResponse)
async def assign_courier(
    delivery_id: uuid.UUID,
    payload: CourierAssignRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.assign_courier(db, delivery_id, **payload.model_dump())


@router.put("/{delivery_id}/status", response_model=DeliveryResponse)
async def change_delivery_status(
    delivery_id: uuid.UUID,
    payload: DeliveryStatusRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.change_delivery_status(
        db,
        admin,
        delivery_id,
        status=payload.status,
        remarks=payload.remarks,
        location=payload.location,
    )


@router.put("/{delivery_id}/location", response_model=DeliveryResponse)
async def update_location(
    delivery_id: uuid.UUID,
    payload: LocationUpdateRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.update_location(db, delivery_id, **payload.model_dump())


@router.put("/{delivery_id}/proof", response_model=DeliveryResponse)
async def record_proof_of_delivery(
    delivery_id: uuid.UUID,
    payload: ProofOfDeliveryRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.record_proof_of_delivery(
        db, delivery_id, **payload.model_dump()
    )


@router.put("/{delivery_id}/rate", response_model=DeliveryResponse)
async def rate_delivery(
    delivery_id: uuid.UUID,
    payload: DeliveryRatingRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.rate_delivery(
        db,
        current_user,
        delivery_id,
        rating=payload.rating,
        feedback=payload.feedback,
    )
