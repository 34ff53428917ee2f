"""Inventory operations: ledger mutations with row-level locking."""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    DuplicateEntity,
    InvalidTransition,
    NotFound,
)
from services.commerce_service.models import (
    InventoryItem,
    InventoryStatus,
    Product,
    ReservationStatus,
    StockMovement,
    StockMovementType,
    StockReservation,
)
from services.commerce_service.services import ledger
from services.commerce_service.services.notifications import (
    INVENTORY_REORDER_NEEDED,
    notify,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

THRESHOLD_FIELDS = (
    "min_stock_level",
    "max_stock_level",
    "reorder_point",
    "reorder_quantity",
    "batch_number",
    "expiry_date",
    "cost_price",
    "selling_price",
)


@dataclass(frozen=True)
class StockCheck:
    available: bool
    available_stock: int = 0
    status: Optional[InventoryStatus] = None


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_inventory_item(db: AsyncSession, item_id: uuid.UUID) -> InventoryItem:
    item = await db.get(InventoryItem, item_id)
    if not item:
        raise NotFound(f"Inventory item {item_id} not found")
    return item


async def get_inventory_for_pair(
    db: AsyncSession, product_id: uuid.UUID, store_id: uuid.UUID
) -> Optional[InventoryItem]:
    result = await db.execute(
        select(InventoryItem).where(
            InventoryItem.product_id == product_id,
            InventoryItem.store_id == store_id,
        )
    )
    return result.scalar_one_or_none()


async def lock_inventory_item(
    db: AsyncSession, item_id: uuid.UUID
) -> InventoryItem:
    """Load an inventory row with ``SELECT ... FOR UPDATE``.

    ``populate_existing`` makes sure a row already in the identity map is
    re-read after the lock is taken.
    """
    result = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.id == item_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFound(f"Inventory item {item_id} not found")
    return item


async def lock_inventory_for_pair(
    db: AsyncSession, product_id: uuid.UUID, store_id: uuid.UUID
) -> InventoryItem:
    result = await db.execute(
        select(InventoryItem)
        .where(
            InventoryItem.product_id == product_id,
            InventoryItem.store_id == store_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFound(f"Product {product_id} is not stocked at store {store_id}")
    return item


async def check_stock(
    db: AsyncSession,
    product_id: uuid.UUID,
    store_id: uuid.UUID,
    quantity: int = 1,
) -> StockCheck:
    """Availability snapshot. An unstocked pair is simply unavailable."""
    item = await get_inventory_for_pair(db, product_id, store_id)
    if not item:
        return StockCheck(available=False)
    return StockCheck(
        available=item.available_stock >= quantity
        and item.status != InventoryStatus.DISCONTINUED,
        available_stock=item.available_stock,
        status=item.status,
    )


async def list_inventory(
    db: AsyncSession,
    *,
    store_id: Optional[uuid.UUID] = None,
    product_id: Optional[uuid.UUID] = None,
    status: Optional[InventoryStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[InventoryItem]:
    query = select(InventoryItem)
    if store_id:
        query = query.where(InventoryItem.store_id == store_id)
    if product_id:
        query = query.where(InventoryItem.product_id == product_id)
    if status:
        query = query.where(InventoryItem.status == status)
    result = await db.execute(
        query.order_by(InventoryItem.created_at).offset(offset).limit(limit)
    )
    return list(result.scalars().all())


async def list_low_stock(
    db: AsyncSession, store_id: Optional[uuid.UUID] = None
) -> list[InventoryItem]:
    query = select(InventoryItem).where(
        InventoryItem.status == InventoryStatus.LOW_STOCK
    )
    if store_id:
        query = query.where(InventoryItem.store_id == store_id)
    result = await db.execute(query.order_by(InventoryItem.current_stock))
    return list(result.scalars().all())


async def list_out_of_stock(
    db: AsyncSession, store_id: Optional[uuid.UUID] = None
) -> list[InventoryItem]:
    query = select(InventoryItem).where(
        InventoryItem.status == InventoryStatus.OUT_OF_STOCK
    )
    if store_id:
        query = query.where(InventoryItem.store_id == store_id)
    result = await db.execute(query.order_by(InventoryItem.created_at))
    return list(result.scalars().all())


async def list_reorder_alerts(
    db: AsyncSession, store_id: Optional[uuid.UUID] = None
) -> list[InventoryItem]:
    """Items at or below their reorder point (discontinued items excluded)."""
    query = select(InventoryItem).where(
        InventoryItem.current_stock <= InventoryItem.reorder_point,
        InventoryItem.status != InventoryStatus.DISCONTINUED,
    )
    if store_id:
        query = query.where(InventoryItem.store_id == store_id)
    result = await db.execute(query.order_by(InventoryItem.current_stock))
    return list(result.scalars().all())


async def get_stock_history(
    db: AsyncSession, item_id: uuid.UUID, limit: int = 100
) -> list[StockMovement]:
    """Most recent ledger entries first."""
    await get_inventory_item(db, item_id)
    result = await db.execute(
        select(StockMovement)
        .where(StockMovement.inventory_item_id == item_id)
        .order_by(StockMovement.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Record management
# ---------------------------------------------------------------------------


async def create_inventory_item(
    db: AsyncSession,
    actor: AuthUser,
    *,
    product_id: uuid.UUID,
    store_id: uuid.UUID,
    initial_stock: int = 0,
    min_stock_level: int = 10,
    max_stock_level: int = 1000,
    reorder_point: int = 20,
    reorder_quantity: int = 100,
    batch_number: Optional[str] = None,
    expiry_date: Optional[date] = None,
    cost_price: Optional[Decimal] = None,
    selling_price: Optional[Decimal] = None,
) -> InventoryItem:
    """Start tracking a product at a store.

    Initial stock is booked through the ledger so it shows up in history.
    """
    if not await db.get(Product, product_id):
        raise NotFound(f"Product {product_id} not found")
    if await get_inventory_for_pair(db, product_id, store_id):
        raise DuplicateEntity(
            "Inventory already exists for this product in this store"
        )

    item = InventoryItem(
        product_id=product_id,
        store_id=store_id,
        current_stock=0,
        reserved_stock=0,
        min_stock_level=min_stock_level,
        max_stock_level=max_stock_level,
        reorder_point=reorder_point,
        reorder_quantity=reorder_quantity,
        batch_number=batch_number,
        expiry_date=expiry_date,
        cost_price=cost_price,
        selling_price=selling_price,
    )
    ledger.refresh_status(item)
    db.add(item)
    await db.flush()

    if initial_stock > 0:
        db.add(ledger.add_stock(item, initial_stock, "Initial stock", actor.user_id))

    await db.commit()
    await db.refresh(item)

    logger.info(
        "Created inventory %s for product %s at store %s (stock=%d)",
        item.id,
        product_id,
        store_id,
        item.current_stock,
    )
    return item


async def update_inventory_thresholds(
    db: AsyncSession, item_id: uuid.UUID, **changes
) -> InventoryItem:
    """Update thresholds and batch details. Stock levels are ledger-only."""
    unknown = set(changes) - set(THRESHOLD_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    item = await lock_inventory_item(db, item_id)
    for field, value in changes.items():
        setattr(item, field, value)
    ledger.refresh_status(item)

    await db.commit()
    await db.refresh(item)
    logger.info("Updated inventory %s: %s", item_id, ", ".join(sorted(changes)))
    return item


async def set_discontinued(
    db: AsyncSession, item_id: uuid.UUID, discontinued: bool
) -> InventoryItem:
    item = await lock_inventory_item(db, item_id)
    ledger.set_discontinued(item, discontinued)
    await db.commit()
    await db.refresh(item)
    logger.info("Inventory %s status set to %s", item_id, item.status.value)
    return item


async def delete_inventory_item(db: AsyncSession, item_id: uuid.UUID) -> None:
    """Delete an inventory record. Refused while orders hold stock against it."""
    item = await lock_inventory_item(db, item_id)

    active = await db.execute(
        select(func.count(StockReservation.id)).where(
            StockReservation.inventory_item_id == item_id,
            StockReservation.status == ReservationStatus.ACTIVE,
        )
    )
    active_count = active.scalar_one()
    if active_count:
        raise InvalidTransition(
            f"Inventory {item_id} has {active_count} active reservation(s)"
        )

    await db.delete(item)
    await db.commit()
    logger.info("Deleted inventory %s", item_id)


# ---------------------------------------------------------------------------
# Stock mutations
# ---------------------------------------------------------------------------


async def _finish_mutation(
    db: AsyncSession,
    item: InventoryItem,
    entry: Optional[StockMovement],
) -> InventoryItem:
    if entry is not None:
        db.add(entry)
    await db.commit()
    await db.refresh(item)

    if entry is not None:
        logger.info(
            "Inventory %s: %s %d (stock=%d reserved=%d status=%s)",
            item.id,
            entry.movement_type.value,
            entry.quantity,
            item.current_stock,
            item.reserved_stock,
            item.status.value,
        )
    await _alert_if_reorder_needed(item)
    return item


async def _alert_if_reorder_needed(item: InventoryItem) -> None:
    if item.status == InventoryStatus.DISCONTINUED or not ledger.needs_reorder(item):
        return
    await notify(
        INVENTORY_REORDER_NEEDED,
        data={
            "inventory_id": str(item.id),
            "product_id": str(item.product_id),
            "store_id": str(item.store_id),
            "current_stock": item.current_stock,
            "reorder_quantity": item.reorder_quantity,
        },
    )


async def add_stock(
    db: AsyncSession,
    actor: AuthUser,
    item_id: uuid.UUID,
    *,
    quantity: int,
    reason: Optional[str] = None,
) -> InventoryItem:
    item = await lock_inventory_item(db, item_id)
    entry = ledger.add_stock(item, quantity, reason, actor.user_id)
    return await _finish_mutation(db, item, entry)


async def remove_stock(
    db: AsyncSession,
    actor: AuthUser,
    item_id: uuid.UUID,
    *,
    quantity: int,
    reason: Optional[str] = None,
    reference: Optional[str] = None,
) -> InventoryItem:
    item = await lock_inventory_item(db, item_id)
    entry = ledger.remove_stock(item, quantity, reason, reference, actor.user_id)
    return await _finish_mutation(db, item, entry)


async def adjust_stock(
    db: AsyncSession,
    actor: AuthUser,
    item_id: uuid.UUID,
    *,
    new_level: int,
    reason: Optional[str] = None,
) -> InventoryItem:
    item = await lock_inventory_item(db, item_id)
    entry = ledger.adjust_stock(item, new_level, reason, actor.user_id)
    return await _finish_mutation(db, item, entry)


async def write_off_stock(
    db: AsyncSession,
    actor: AuthUser,
    item_id: uuid.UUID,
    *,
    quantity: int,
    kind: StockMovementType,
    reason: Optional[str] = None,
) -> InventoryItem:
    item = await lock_inventory_item(db, item_id)
    entry = ledger.write_off_stock(item, quantity, kind, reason, actor.user_id)
    return await _finish_mutation(db, item, entry)


async def return_stock(
    db: AsyncSession,
    actor: AuthUser,
    item_id: uuid.UUID,
    *,
    quantity: int,
    reason: Optional[str] = None,
    reference: Optional[str] = None,
) -> InventoryItem:
    item = await lock_inventory_item(db, item_id)
    entry = ledger.return_stock(item, quantity, reason, reference, actor.user_id)
    return await _finish_mutation(db, item, entry)


async def reserve_stock(
    db: AsyncSession, item_id: uuid.UUID, *, quantity: int
) -> InventoryItem:
    """Manual hold with no owning order. Checkout uses reservations instead."""
    item = await lock_inventory_item(db, item_id)
    ledger.reserve_stock(item, quantity)
    await db.commit()
    await db.refresh(item)
    logger.info(
        "Inventory %s: reserved %d (reserved=%d)", item_id, quantity, item.reserved_stock
    )
    return item


async def release_stock(
    db: AsyncSession, item_id: uuid.UUID, *, quantity: int
) -> InventoryItem:
    item = await lock_inventory_item(db, item_id)
    released = ledger.release_stock(item, quantity)
    await db.commit()
    await db.refresh(item)
    if released < quantity:
        logger.warning(
            "Inventory %s: release of %d clamped to %d", item_id, quantity, released
        )
    logger.info(
        "Inventory %s: released %d (reserved=%d)", item_id, released, item.reserved_stock
    )
    return item
