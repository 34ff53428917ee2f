"""Order-owned stock reservations (reserve at checkout, commit at pickup).

A reservation only moves ``reserved_stock``; on-hand stock is deducted when the
reservation is committed. None of these functions commit the session, except
the expiry sweep which owns its own transaction.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.errors import InsufficientStock
from services.commerce_service.models import (
    InventoryItem,
    Order,
    ReservationStatus,
    StockMovement,
    StockReservation,
)
from services.commerce_service.services import ledger
from services.commerce_service.services.inventory import lock_inventory_item
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def _order_reservations(
    db: AsyncSession, order_id: uuid.UUID, *statuses: ReservationStatus
) -> list[StockReservation]:
    result = await db.execute(
        select(StockReservation)
        .where(
            StockReservation.order_id == order_id,
            StockReservation.status.in_(statuses),
        )
        .order_by(StockReservation.inventory_item_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def reserve_for_order(
    db: AsyncSession,
    *,
    order: Order,
    item: InventoryItem,
    quantity: int,
    ttl_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> StockReservation:
    """Hold ``quantity`` units of an already locked item for ``order``."""
    now = now or utc_now()
    if ttl_minutes is None:
        ttl_minutes = get_settings().RESERVATION_TTL_MINUTES

    ledger.reserve_stock(item, quantity)
    reservation = StockReservation(
        inventory_item_id=item.id,
        order_id=order.id,
        quantity=quantity,
        status=ReservationStatus.ACTIVE,
        expires_at=now + timedelta(minutes=ttl_minutes) if ttl_minutes else None,
    )
    db.add(reservation)
    return reservation


async def release_order_reservations(
    db: AsyncSession, order_id: uuid.UUID, *, now: Optional[datetime] = None
) -> int:
    """Release every hold of an order. Returns units released.

    Holds the sweep already reclaimed no longer count against stock; they are
    closed as released so a later payment cannot take them again.
    """
    now = now or utc_now()
    released = 0
    for reservation in await _order_reservations(
        db, order_id, ReservationStatus.ACTIVE, ReservationStatus.EXPIRED
    ):
        if reservation.status == ReservationStatus.ACTIVE:
            item = await lock_inventory_item(db, reservation.inventory_item_id)
            released += ledger.release_stock(item, reservation.quantity)
        reservation.status = ReservationStatus.RELEASED
        reservation.resolved_at = now

    if released:
        logger.info("Released %d reserved unit(s) for order %s", released, order_id)
    return released


async def commit_order_reservations(
    db: AsyncSession,
    *,
    order: Order,
    actor: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[StockMovement]:
    """Turn an order's holds into real deductions (two-phase commit).

    Each active hold is released and the same quantity removed from on-hand
    stock, referenced by the order number. Holds the sweep already reclaimed
    are deducted directly when stock allows. Committed holds are never
    deducted twice, so calling this again for the same order is a no-op.
    """
    now = now or utc_now()
    entries = []
    for reservation in await _order_reservations(
        db, order.id, ReservationStatus.ACTIVE, ReservationStatus.EXPIRED
    ):
        item = await lock_inventory_item(db, reservation.inventory_item_id)
        if reservation.status == ReservationStatus.ACTIVE:
            ledger.release_stock(item, reservation.quantity)
        try:
            entry = ledger.remove_stock(
                item,
                reservation.quantity,
                reason="Order fulfilment",
                reference=order.order_number,
                actor=actor,
                now=now,
            )
        except InsufficientStock:
            logger.error(
                "Inconsistency: order %s needs %d unit(s) of inventory %s "
                "but only %d are available; stock not deducted",
                order.order_number,
                reservation.quantity,
                item.id,
                item.available_stock,
            )
            continue
        db.add(entry)
        entries.append(entry)
        reservation.status = ReservationStatus.COMMITTED
        reservation.resolved_at = now

    if entries:
        logger.info(
            "Committed %d reservation(s) for order %s",
            len(entries),
            order.order_number,
        )
    return entries


async def pin_order_reservations(
    db: AsyncSession, order_id: uuid.UUID, *, now: Optional[datetime] = None
) -> int:
    """Keep a paid order's holds until fulfilment.

    Active holds lose their expiry. Holds the sweep already reclaimed are
    taken again when stock allows; otherwise the shortfall is logged.
    Returns the number of reservations that could not be restored.
    """
    now = now or utc_now()
    for reservation in await _order_reservations(
        db, order_id, ReservationStatus.ACTIVE
    ):
        reservation.expires_at = None

    missing = 0
    for reservation in await _order_reservations(
        db, order_id, ReservationStatus.EXPIRED
    ):
        item = await lock_inventory_item(db, reservation.inventory_item_id)
        try:
            ledger.reserve_stock(item, reservation.quantity)
        except InsufficientStock:
            missing += 1
            logger.error(
                "Inconsistency: paid order %s cannot re-reserve %d unit(s) of inventory %s "
                "(available=%d)",
                order_id,
                reservation.quantity,
                item.id,
                item.available_stock,
            )
            continue
        reservation.status = ReservationStatus.ACTIVE
        reservation.expires_at = None
        reservation.resolved_at = None
        logger.info(
            "Re-reserved %d unit(s) of inventory %s for paid order %s",
            reservation.quantity,
            item.id,
            order_id,
        )
    return missing


async def release_expired_reservations(
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> int:
    """Reclaim holds whose TTL has passed. Commits; returns the count.

    The order itself is left alone: an unpaid order whose holds expired can
    still be paid, at which point the holds are taken again.
    """
    now = now or utc_now()
    limit = limit or get_settings().RESERVATION_SWEEP_BATCH

    result = await db.execute(
        select(StockReservation)
        .where(
            StockReservation.status == ReservationStatus.ACTIVE,
            StockReservation.expires_at.is_not(None),
            StockReservation.expires_at <= now,
        )
        .order_by(StockReservation.inventory_item_id, StockReservation.expires_at)
        .limit(limit)
        .with_for_update(skip_locked=True)
    )
    expired = list(result.scalars().all())

    for reservation in expired:
        item = await lock_inventory_item(db, reservation.inventory_item_id)
        ledger.release_stock(item, reservation.quantity)
        reservation.status = ReservationStatus.EXPIRED
        reservation.resolved_at = now

    await db.commit()
    if expired:
        logger.info("Expired %d stock reservation(s)", len(expired))
    return len(expired)
