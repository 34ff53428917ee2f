"""Inventory endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.commerce_service.models import InventoryStatus
from services.commerce_service.schemas import (
    AddStockRequest,
    AdjustStockRequest,
    DiscontinueRequest,
    InventoryCreateRequest,
    InventoryListResponse,
    InventoryResponse,
    InventoryUpdateRequest,
    RemoveStockRequest,
    ReturnStockRequest,
    StockCheckResponse,
    StockMovementResponse,
    StockQuantityRequest,
    WriteOffRequest,
)
from services.commerce_service.services import inventory as inventory_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _list_response(items) -> InventoryListResponse:
    return InventoryListResponse(
        items=[InventoryResponse.model_validate(i) for i in items],
        count=len(items),
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("", response_model=InventoryListResponse)
async def list_inventory(
    store_id: Optional[uuid.UUID] = None,
    product_id: Optional[uuid.UUID] = None,
    inventory_status: Optional[InventoryStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    items = await inventory_ops.list_inventory(
        db,
        store_id=store_id,
        product_id=product_id,
        status=inventory_status,
        limit=limit,
        offset=skip,
    )
    return _list_response(items)


@router.get("/check-stock", response_model=StockCheckResponse)
async def check_stock(
    product_id: uuid.UUID,
    store_id: uuid.UUID,
    quantity: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_async_db),
):
    """Public availability check for a product at a store."""
    return await inventory_ops.check_stock(db, product_id, store_id, quantity)


@router.get("/low-stock", response_model=InventoryListResponse)
async def list_low_stock(
    store_id: Optional[uuid.UUID] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return _list_response(await inventory_ops.list_low_stock(db, store_id))


@router.get("/out-of-stock", response_model=InventoryListResponse)
async def list_out_of_stock(
    store_id: Optional[uuid.UUID] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return _list_response(await inventory_ops.list_out_of_stock(db, store_id))


@router.get("/reorder-alerts", response_model=InventoryListResponse)
async def list_reorder_alerts(
    store_id: Optional[uuid.UUID] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return _list_response(await inventory_ops.list_reorder_alerts(db, store_id))


@router.get("/{item_id}", response_model=InventoryResponse)
async def get_inventory_item(
    item_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.get_inventory_item(db, item_id)


@router.get("/{item_id}/history", response_model=list[StockMovementResponse])
async def get_stock_history(
    item_id: uuid.UUID,
    limit: int = Query(100, ge=1, le=500),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.get_stock_history(db, item_id, limit)


# ---------------------------------------------------------------------------
# Record management
# ---------------------------------------------------------------------------


@router.post("", response_model=InventoryResponse, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryCreateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.create_inventory_item(db, admin, **payload.model_dump())


@router.patch("/{item_id}", response_model=InventoryResponse)
async def update_inventory_item(
    item_id: uuid.UUID,
    payload: InventoryUpdateRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.update_inventory_thresholds(
        db, item_id, **payload.model_dump(exclude_unset=True)
    )


@router.post("/{item_id}/discontinue", response_model=InventoryResponse)
async def set_discontinued(
    item_id: uuid.UUID,
    payload: DiscontinueRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.set_discontinued(db, item_id, payload.discontinued)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_item(
    item_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await inventory_ops.delete_inventory_item(db, item_id)


# ---------------------------------------------------------------------------
# Stock movements
# ---------------------------------------------------------------------------


@router.post("/{item_id}/add-stock", response_model=InventoryResponse)
async def add_stock(
    item_id: uuid.UUID,
    payload: AddStockRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.add_stock(
        db, admin, item_id, quantity=payload.quantity, reason=payload.reason
    )


@router.post("/{item_id}/remove-stock", response_model=InventoryResponse)
async def remove_stock(
    item_id: uuid.UUID,
    payload: RemoveStockRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.remove_stock(
        db,
        admin,
        item_id,
        quantity=payload.quantity,
        reason=payload.reason,
        reference=payload.reference,
    )


@router.post("/{item_id}/adjust", response_model=InventoryResponse)
async def adjust_stock(
    item_id: uuid.UUID,
    payload: AdjustStockRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.adjust_stock(
        db, admin, item_id, new_level=payload.new_level, reason=payload.reason
    )


@router.post("/{item_id}/write-off", response_model=InventoryResponse)
async def write_off_stock(
    item_id: uuid.UUID,
    payload: WriteOffRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.write_off_stock(
        db,
        admin,
        item_id,
        quantity=payload.quantity,
        kind=payload.kind,
        reason=payload.reason,
    )


@router.post("/{item_id}/return", response_model=InventoryResponse)
async def return_stock(
    item_id: uuid.UUID,
    payload: ReturnStockRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.return_stock(
        db,
        admin,
        item_id,
        quantity=payload.quantity,
        reason=payload.reason,
        reference=payload.reference,
    )


@router.post("/{item_id}/reserve", response_model=InventoryResponse)
async def reserve_stock(
    item_id: uuid.UUID,
    payload: StockQuantityRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.reserve_stock(db, item_id, quantity=payload.quantity)


@router.post("/{item_id}/release", response_model=InventoryResponse)
async def release_stock(
    item_id: uuid.UUID,
    payload: StockQuantityRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_ops.release_stock(db, item_id, quantity=payload.quantity)
