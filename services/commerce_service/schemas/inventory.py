"""Inventory request/response schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.commerce_service.models.enums import InventoryStatus, StockMovementType


class InventoryCreateRequest(BaseModel):
    product_id: uuid.UUID
    store_id: uuid.UUID
    initial_stock: int = Field(0, ge=0)
    min_stock_level: int = Field(10, ge=0)
    max_stock_level: int = Field(1000, ge=0)
    reorder_point: int = Field(20, ge=0)
    reorder_quantity: int = Field(100, ge=0)
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)


class InventoryUpdateRequest(BaseModel):
    """Thresholds and batch details. Stock levels change only through the ledger."""

    min_stock_level: Optional[int] = Field(None, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)


class InventoryResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    store_id: uuid.UUID
    current_stock: int
    reserved_stock: int
    available_stock: int
    min_stock_level: int
    max_stock_level: int
    reorder_point: int
    reorder_quantity: int
    status: InventoryStatus
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    cost_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    last_restocked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockQuantityRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class AddStockRequest(StockQuantityRequest):
    reason: Optional[str] = None


class RemoveStockRequest(StockQuantityRequest):
    reason: Optional[str] = None
    reference: Optional[str] = Field(None, max_length=100)


class ReturnStockRequest(RemoveStockRequest):
    pass


class WriteOffRequest(StockQuantityRequest):
    kind: StockMovementType
    reason: Optional[str] = None

    @field_validator("kind")
    @classmethod
    def check_kind(cls, v: StockMovementType) -> StockMovementType:
        if v not in (StockMovementType.EXPIRED, StockMovementType.DAMAGED):
            raise ValueError("kind must be expired or damaged")
        return v


class AdjustStockRequest(BaseModel):
    new_level: int = Field(..., ge=0)
    reason: Optional[str] = None


class DiscontinueRequest(BaseModel):
    discontinued: bool = True


class StockMovementResponse(BaseModel):
    id: uuid.UUID
    inventory_item_id: uuid.UUID
    movement_type: StockMovementType
    quantity: int
    reason: Optional[str] = None
    reference: Optional[str] = None
    performed_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockCheckResponse(BaseModel):
    available: bool
    available_stock: int = 0
    status: Optional[InventoryStatus] = None

    model_config = ConfigDict(from_attributes=True)


class InventoryListResponse(BaseModel):
    items: list[InventoryResponse]
    count: int
