"""Inventory models: per-store stock levels, ledger entries, reservations."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.commerce_service.models.enums import (
    InventoryStatus,
    ReservationStatus,
    StockMovementType,
    enum_values,
)
from sqlalchemy import CheckConstraint, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# INVENTORY MODELS
# ============================================================================


class InventoryItem(Base):
    """Stock of one product at one store."""

    __tablename__ = "inventory_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    store_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # Stock levels
    current_stock: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    reserved_stock: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )  # Held for in-flight orders

    # Thresholds
    min_stock_level: Mapped[int] = mapped_column(
        Integer, default=10, server_default="10", nullable=False
    )
    max_stock_level: Mapped[int] = mapped_column(
        Integer, default=1000, server_default="1000", nullable=False
    )
    reorder_point: Mapped[int] = mapped_column(
        Integer, default=20, server_default="20", nullable=False
    )
    reorder_quantity: Mapped[int] = mapped_column(
        Integer, default=100, server_default="100", nullable=False
    )

    status: Mapped[InventoryStatus] = mapped_column(
        SAEnum(
            InventoryStatus,
            values_callable=enum_values,
            name="inventory_status_enum",
        ),
        default=InventoryStatus.OUT_OF_STOCK,
        server_default=InventoryStatus.OUT_OF_STOCK.value,
        nullable=False,
    )

    # Batch details
    batch_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    cost_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    selling_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )

    last_restocked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint("product_id", "store_id", name="unique_product_store"),
        CheckConstraint("current_stock >= 0", name="non_negative_stock"),
        CheckConstraint(
            "reserved_stock >= 0 AND reserved_stock <= current_stock",
            name="valid_reserved",
        ),
        Index("ix_inventory_items_status", "status"),
    )

    # Relationships
    product = relationship("Product")
    movements = relationship(
        "StockMovement",
        back_populates="inventory_item",
        cascade="all, delete-orphan",
        order_by="StockMovement.created_at",
    )
    reservations = relationship(
        "StockReservation",
        back_populates="inventory_item",
        cascade="all, delete-orphan",
    )

    @property
    def available_stock(self) -> int:
        """Sellable quantity (on hand minus reserved, never negative)."""
        return max(0, self.current_stock - self.reserved_stock)

    def __repr__(self):
        return (
            f"<InventoryItem product={self.product_id} store={self.store_id} "
            f"stock={self.current_stock}/{self.reserved_stock}>"
        )


class StockMovement(Base):
    """Append-only ledger entry for an inventory item."""

    __tablename__ = "stock_movements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    inventory_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    movement_type: Mapped[StockMovementType] = mapped_column(
        SAEnum(
            StockMovementType,
            values_callable=enum_values,
            name="stock_movement_type_enum",
        ),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # Magnitude; adjustments are signed

    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )  # Order number or other reference
    performed_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    # Relationships
    inventory_item = relationship("InventoryItem", back_populates="movements")

    def __repr__(self):
        return f"<StockMovement {self.movement_type} qty={self.quantity}>"


class StockReservation(Base):
    """A hold against available stock on behalf of one order line."""

    __tablename__ = "stock_reservations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    inventory_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        SAEnum(
            ReservationStatus,
            values_callable=enum_values,
            name="reservation_status_enum",
        ),
        default=ReservationStatus.ACTIVE,
        server_default=ReservationStatus.ACTIVE.value,
        nullable=False,
    )

    # Null = held until the order resolves (set once the order is paid)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
        Index("ix_stock_reservations_status_expires_at", "status", "expires_at"),
    )

    # Relationships
    inventory_item = relationship("InventoryItem", back_populates="reservations")

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE

    def __repr__(self):
        return f"<StockReservation order={self.order_id} qty={self.quantity} {self.status}>"
