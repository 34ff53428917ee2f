"""Delivery models: physical fulfillment of an order and its status trail."""

import random
import time
import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import DeliveryStatus, enum_values
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

_delivery_status_enum = SAEnum(
    DeliveryStatus,
    values_callable=enum_values,
    name="delivery_status_enum",
)


class Delivery(Base):
    """One delivery per order."""

    __tablename__ = "deliveries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    tracking_number: Mapped[str] = mapped_column(
        String(40), unique=True, index=True, nullable=False
    )

    status: Mapped[DeliveryStatus] = mapped_column(
        _delivery_status_enum,
        default=DeliveryStatus.PENDING,
        server_default=DeliveryStatus.PENDING.value,
        nullable=False,
    )
    # Number of history events appended so far
    status_version: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    # Courier assignment
    courier_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    courier_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    vehicle_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    courier_photo: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # Milestones (each set once)
    pickup_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    estimated_delivery_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_delivery_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    current_location: Mapped[Optional[dict]] = mapped_column(
        JSONType, nullable=True
    )  # {"latitude": .., "longitude": .., "address": "...", "updated_at": "..."}
    delivery_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    proof_of_delivery: Mapped[Optional[dict]] = mapped_column(
        JSONType, nullable=True
    )  # {"signature": "...", "photo": "...", "received_by": "..."}

    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    return_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_attempts: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    # Customer feedback (only once delivered)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="rating_range"
        ),
    )

    # Relationships
    order = relationship("Order")
    history = relationship(
        "DeliveryStatusEvent",
        back_populates="delivery",
        cascade="all, delete-orphan",
        order_by="DeliveryStatusEvent.sequence",
    )

    @staticmethod
    def generate_tracking_number() -> str:
        """Generate a tracking number like TRK1767225600000042."""
        return f"TRK{int(time.time() * 1000)}{random.randint(0, 999):03d}"

    def __repr__(self):
        return f"<Delivery {self.tracking_number} {self.status}>"


class DeliveryStatusEvent(Base):
    """Append-only status trail for a delivery."""

    __tablename__ = "delivery_status_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    delivery_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("deliveries.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[DeliveryStatus] = mapped_column(_delivery_status_enum, nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    # Relationships
    delivery = relationship("Delivery", back_populates="history")

    def __repr__(self):
        return f"<DeliveryStatusEvent #{self.sequence} {self.status}>"
