"""Commerce service routers."""

from services.commerce_service.routers.coupons import router as coupons_router
from services.commerce_service.routers.deliveries import router as deliveries_router
from services.commerce_service.routers.inventory import router as inventory_router
from services.commerce_service.routers.orders import router as orders_router
from services.commerce_service.routers.payments import router as payments_router

__all__ = [
    "coupons_router",
    "deliveries_router",
    "inventory_router",
    "orders_router",
    "payments_router",
]
