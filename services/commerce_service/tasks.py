"""
Background tasks for the commerce service.

Handles:
- Reclaiming stock held by reservations whose TTL has passed
"""

from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import session_scope
from services.commerce_service.services.reservations import (
    release_expired_reservations,
)

logger = get_logger(__name__)


async def sweep_expired_reservations(max_batches: Optional[int] = None) -> int:
    """Release expired holds batch by batch until none are left.

    Returns the total number of reservations expired.
    """
    batch_size = get_settings().RESERVATION_SWEEP_BATCH
    total = 0
    batches = 0

    while max_batches is None or batches < max_batches:
        async with session_scope() as db:
            released = await release_expired_reservations(db, limit=batch_size)
        total += released
        batches += 1
        if released < batch_size:
            break

    if total:
        logger.info("Reservation sweep expired %d hold(s) in %d batch(es)", total, batches)
    return total
