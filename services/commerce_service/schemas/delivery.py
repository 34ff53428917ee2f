"""Delivery request/response schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.commerce_service.models.enums import DeliveryStatus


class DeliveryCreateRequest(BaseModel):
    order_id: uuid.UUID
    estimated_delivery_time: Optional[datetime] = None
    delivery_notes: Optional[str] = None


class CourierAssignRequest(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    vehicle_number: Optional[str] = None
    photo: Optional[str] = None


class DeliveryStatusRequest(BaseModel):
    status: DeliveryStatus
    remarks: Optional[str] = None
    location: Optional[dict[str, Any]] = None


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None


class ProofOfDeliveryRequest(BaseModel):
    signature: Optional[str] = None
    photo: Optional[str] = None
    received_by: Optional[str] = None


class DeliveryRatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None


class DeliveryStatusEventResponse(BaseModel):
    sequence: int
    status: DeliveryStatus
    remarks: Optional[str] = None
    location: Optional[dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeliveryResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    tracking_number: str
    status: DeliveryStatus
    courier_name: Optional[str] = None
    courier_phone: Optional[str] = None
    vehicle_number: Optional[str] = None
    courier_photo: Optional[str] = None
    pickup_time: Optional[datetime] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    current_location: Optional[dict[str, Any]] = None
    delivery_notes: Optional[str] = None
    proof_of_delivery: Optional[dict[str, Any]] = None
    failure_reason: Optional[str] = None
    return_reason: Optional[str] = None
    delivery_attempts: int
    rating: Optional[int] = None
    feedback: Optional[str] = None
    history: list[DeliveryStatusEventResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TrackingResponse(BaseModel):
    """Public view of a delivery."""

    tracking_number: str
    status: DeliveryStatus
    current_location: Optional[dict[str, Any]] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    courier_name: Optional[str] = None
    history: list[DeliveryStatusEventResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
