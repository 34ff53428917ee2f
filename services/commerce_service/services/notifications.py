"""Fire-and-forget notifications for commerce state transitions.

Events are POSTed as JSON to ``NOTIFICATIONS_URL`` when it is configured and
only logged otherwise. A notification is always sent after the transition has
been committed; failures are logged and never propagate to the caller.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)

ORDER_CREATED = "order.created"
ORDER_CANCELLED = "order.cancelled"
ORDER_STATUS_CHANGED = "order.status_changed"
ORDER_PAID = "order.paid"
DELIVERY_STATUS_CHANGED = "delivery.status_changed"
PAYMENT_SUCCEEDED = "payment.succeeded"
PAYMENT_FAILED = "payment.failed"
PAYMENT_REFUND_REQUESTED = "payment.refund_requested"
PAYMENT_REFUND_UPDATED = "payment.refund_updated"
INVENTORY_REORDER_NEEDED = "inventory.reorder_needed"


class NotificationClient:
    def __init__(self, url: Optional[str] = None, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    async def notify(
        self,
        event: str,
        *,
        recipient: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Send one event. Returns True if it was delivered."""
        payload = {
            "event": event,
            "recipient": recipient,
            "data": data or {},
            "sent_at": utc_now().isoformat(),
        }

        if not self.url:
            logger.info("Notification %s for %s (no endpoint configured)", event, recipient)
            return False

        headers = {}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url, json=payload, headers=headers
                )
            response.raise_for_status()
        except Exception:
            logger.exception("Failed to send notification %s", event)
            return False

        logger.info("Sent notification %s for %s", event, recipient)
        return True


@lru_cache()
def get_notification_client() -> NotificationClient:
    settings = get_settings()
    return NotificationClient(
        url=settings.NOTIFICATIONS_URL,
        timeout=settings.NOTIFICATIONS_TIMEOUT,
    )


async def notify(
    event: str,
    *,
    recipient: Optional[str] = None,
    data: Optional[dict[str, Any]] = None,
) -> bool:
    """Send an event through the configured client."""
    return await get_notification_client().notify(
        event, recipient=recipient, data=data
    )
