"""Commerce Service models package.

Re-exports every model and enum so that SQLAlchemy's mapper registry (and
alembic's env.py) sees all tables on a single import.
"""

from services.commerce_service.models.catalog import Product
from services.commerce_service.models.coupon import Coupon
from services.commerce_service.models.delivery import Delivery, DeliveryStatusEvent
from services.commerce_service.models.enums import (
    DeliveryStatus,
    DiscountType,
    InventoryStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
    ReservationStatus,
    StockMovementType,
)
from services.commerce_service.models.inventory import (
    InventoryItem,
    StockMovement,
    StockReservation,
)
from services.commerce_service.models.orders import Order, OrderItem
from services.commerce_service.models.payment import Payment

__all__ = [
    "Coupon",
    "Delivery",
    "DeliveryStatus",
    "DeliveryStatusEvent",
    "DiscountType",
    "InventoryItem",
    "InventoryStatus",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "RefundStatus",
    "ReservationStatus",
    "StockMovement",
    "StockMovementType",
    "StockReservation",
]
