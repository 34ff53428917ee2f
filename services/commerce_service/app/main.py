"""FastAPI application for the Commerce Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.commerce_service.routers import (
    coupons_router,
    deliveries_router,
    inventory_router,
    orders_router,
    payments_router,
)


def create_app() -> FastAPI:
    """Create and configure the Commerce Service FastAPI app."""
    app = FastAPI(
        title="ShopLedger Commerce Service",
        version="0.1.0",
        description="Stock, order, delivery and payment consistency for ShopLedger.",
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Domain failures -> typed JSON errors
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "commerce"}

    app.include_router(inventory_router)
    app.include_router(coupons_router)
    app.include_router(orders_router)
    app.include_router(deliveries_router)
    app.include_router(payments_router)

    return app


app = create_app()
