"""Commerce Service schemas package.

Re-exports all schemas so routers import from one place.
When adding a new schema, add its import and __all__ entry.
"""

from services.commerce_service.schemas.coupon import (  # noqa: F401
    CouponCreateRequest,
    CouponQuoteResponse,
    CouponResponse,
    CouponUpdateRequest,
    CouponValidateRequest,
)
from services.commerce_service.schemas.delivery import (  # noqa: F401
    CourierAssignRequest,
    DeliveryCreateRequest,
    DeliveryRatingRequest,
    DeliveryResponse,
    DeliveryStatusEventResponse,
    DeliveryStatusRequest,
    LocationUpdateRequest,
    ProofOfDeliveryRequest,
    TrackingResponse,
)
from services.commerce_service.schemas.inventory import (  # noqa: F401
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
from services.commerce_service.schemas.order import (  # noqa: F401
    OrderCreateRequest,
    OrderItemResponse,
    OrderLineRequest,
    OrderResponse,
    OrderStatusUpdateRequest,
    ShippingAddress,
)
from services.commerce_service.schemas.payment import (  # noqa: F401
    PaymentCreateRequest,
    PaymentFailedRequest,
    PaymentResponse,
    PaymentSuccessRequest,
    PaymentVerifyRequest,
    RefundRequest,
    RefundStatusRequest,
)

__all__ = [
    "AddStockRequest",
    "AdjustStockRequest",
    "CouponCreateRequest",
    "CouponQuoteResponse",
    "CouponResponse",
    "CouponUpdateRequest",
    "CouponValidateRequest",
    "CourierAssignRequest",
    "DeliveryCreateRequest",
    "DeliveryRatingRequest",
    "DeliveryResponse",
    "DeliveryStatusEventResponse",
    "DeliveryStatusRequest",
    "DiscontinueRequest",
    "InventoryCreateRequest",
    "InventoryListResponse",
    "InventoryResponse",
    "InventoryUpdateRequest",
    "LocationUpdateRequest",
    "OrderCreateRequest",
    "OrderItemResponse",
    "OrderLineRequest",
    "OrderResponse",
    "OrderStatusUpdateRequest",
    "PaymentCreateRequest",
    "PaymentFailedRequest",
    "PaymentResponse",
    "PaymentSuccessRequest",
    "PaymentVerifyRequest",
    "ProofOfDeliveryRequest",
    "RefundRequest",
    "RefundStatusRequest",
    "RemoveStockRequest",
    "ReturnStockRequest",
    "ShippingAddress",
    "StockCheckResponse",
    "StockMovementResponse",
    "StockQuantityRequest",
    "TrackingResponse",
    "WriteOffRequest",
]
