"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    product = ProductFactory.create(price=Decimal("250.00"))
    db_session.add(product)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _yesterday() -> datetime:
    return _now() - timedelta(days=1)


def _next_week() -> datetime:
    return _now() + timedelta(days=7)


def _suffix() -> str:
    return uuid.uuid4().hex[:6].upper()


# ---------------------------------------------------------------------------
# Catalog & inventory
# ---------------------------------------------------------------------------


class ProductFactory:
    @staticmethod
    def create(**overrides):
        from services.commerce_service.models import Product

        defaults = {
            "id": _uuid(),
            "name": f"Basmati Rice {_suffix()}",
            "category_id": _uuid(),
            "price": Decimal("100.00"),
            "discount_price": None,
            "is_active": True,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Product(**defaults)


class InventoryItemFactory:
    @staticmethod
    def create(product_id=None, store_id=None, **overrides):
        from services.commerce_service.models import InventoryItem
        from services.commerce_service.services.ledger import derive_status

        defaults = {
            "id": _uuid(),
            "product_id": product_id or _uuid(),
            "store_id": store_id or _uuid(),
            "current_stock": 100,
            "reserved_stock": 0,
            "min_stock_level": 10,
            "max_stock_level": 1000,
            "reorder_point": 20,
            "reorder_quantity": 100,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        if "status" not in defaults:
            defaults["status"] = derive_status(
                defaults["current_stock"], defaults["min_stock_level"]
            )
        return InventoryItem(**defaults)


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------


class CouponFactory:
    @staticmethod
    def create(**overrides):
        from services.commerce_service.models import Coupon, DiscountType

        defaults = {
            "id": _uuid(),
            "code": f"SAVE{_suffix()}",
            "description": "Test coupon",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("10"),
            "min_order_amount": Decimal("0"),
            "max_discount_amount": None,
            "usage_limit": None,
            "used_count": 0,
            "usage_per_user": 1,
            "applicable_categories": [],
            "applicable_products": [],
            "start_date": _yesterday(),
            "end_date": _next_week(),
            "is_active": True,
            "created_by": "admin-1",
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Coupon(**defaults)


# ---------------------------------------------------------------------------
# Orders, deliveries & payments
# ---------------------------------------------------------------------------


class OrderFactory:
    @staticmethod
    def create(**overrides):
        from services.commerce_service.models import Order, OrderStatus, PaymentMethod

        defaults = {
            "id": _uuid(),
            "order_number": f"OR-TEST-{_suffix()}",
            "user_id": "customer-1",
            "store_id": _uuid(),
            "shipping_address": None,
            "payment_method": PaymentMethod.CARD,
            "items_price": Decimal("100.00"),
            "discount_amount": Decimal("0"),
            "coupon_code": None,
            "tax_price": Decimal("0"),
            "shipping_price": Decimal("0"),
            "total_price": Decimal("100.00"),
            "status": OrderStatus.PENDING,
            "is_paid": False,
            "paid_at": None,
            "is_delivered": False,
            "delivered_at": None,
            "cancelled_at": None,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Order(**defaults)


class DeliveryFactory:
    @staticmethod
    def create(order_id=None, **overrides):
        from services.commerce_service.models import Delivery, DeliveryStatus

        defaults = {
            "id": _uuid(),
            "order_id": order_id or _uuid(),
            "tracking_number": f"TRK{_suffix()}",
            "status": DeliveryStatus.PENDING,
            "status_version": 0,
            "pickup_time": None,
            "actual_delivery_time": None,
            "delivery_attempts": 0,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Delivery(**defaults)


class PaymentFactory:
    @staticmethod
    def create(order_id=None, **overrides):
        from services.commerce_service.models import (
            Payment,
            PaymentMethod,
            PaymentStatus,
            RefundStatus,
        )

        defaults = {
            "id": _uuid(),
            "order_id": order_id or _uuid(),
            "user_id": "customer-1",
            "transaction_id": f"TXN{_suffix()}",
            "payment_method": PaymentMethod.CARD,
            "amount": Decimal("100.00"),
            "currency": "INR",
            "status": PaymentStatus.PROCESSING,
            "retry_count": 0,
            "refund_status": RefundStatus.NONE,
            "refund_amount": None,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Payment(**defaults)
