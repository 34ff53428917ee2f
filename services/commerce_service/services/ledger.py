"""Stock ledger primitives for a single inventory item.

Pure functions over an ``InventoryItem`` instance: no session, no I/O. Callers
that persist the item are responsible for locking the row first and for adding
the returned ``StockMovement`` to the session.

Invariants kept by every function here:
    0 <= reserved_stock <= current_stock
    status is re-derived after each mutation (``discontinued`` is sticky)
    a failed call leaves the item untouched
"""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from services.commerce_service.errors import InsufficientStock
from services.commerce_service.models import (
    InventoryItem,
    InventoryStatus,
    StockMovement,
    StockMovementType,
)

WRITE_OFF_TYPES = frozenset({StockMovementType.EXPIRED, StockMovementType.DAMAGED})


def _require_positive(quantity: int) -> None:
    if quantity is None or quantity <= 0:
        raise ValueError(f"Quantity must be a positive integer, got {quantity!r}")


def _entry(
    item: InventoryItem,
    movement_type: StockMovementType,
    quantity: int,
    *,
    reason: Optional[str],
    reference: Optional[str],
    actor: Optional[str],
    now: datetime,
) -> StockMovement:
    return StockMovement(
        inventory_item_id=item.id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        reference=reference,
        performed_by=actor,
        created_at=now,
    )


def _insufficient(item: InventoryItem, requested: int) -> InsufficientStock:
    return InsufficientStock(
        f"Only {item.available_stock} available, {requested} requested",
        context={
            "inventory_id": str(item.id) if item.id else None,
            "available_stock": item.available_stock,
            "requested": requested,
        },
    )


# ---------------------------------------------------------------------------
# Status derivation
# ---------------------------------------------------------------------------


def derive_status(current_stock: int, min_stock_level: int) -> InventoryStatus:
    if current_stock == 0:
        return InventoryStatus.OUT_OF_STOCK
    if current_stock <= min_stock_level:
        return InventoryStatus.LOW_STOCK
    return InventoryStatus.IN_STOCK


def refresh_status(item: InventoryItem) -> InventoryStatus:
    """Re-derive the status from stock levels unless the item is discontinued."""
    if item.status != InventoryStatus.DISCONTINUED:
        item.status = derive_status(item.current_stock, item.min_stock_level)
    return item.status


def set_discontinued(item: InventoryItem, discontinued: bool) -> InventoryStatus:
    """Administrative switch; clearing it falls back to the derived status."""
    if discontinued:
        item.status = InventoryStatus.DISCONTINUED
    else:
        item.status = derive_status(item.current_stock, item.min_stock_level)
    return item.status


def needs_reorder(item: InventoryItem) -> bool:
    return item.current_stock <= item.reorder_point


# ---------------------------------------------------------------------------
# On-hand stock
# ---------------------------------------------------------------------------


def add_stock(
    item: InventoryItem,
    quantity: int,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> StockMovement:
    """Receive stock. Returns the ``in`` ledger entry."""
    _require_positive(quantity)
    now = now or utc_now()

    item.current_stock += quantity
    item.last_restocked_at = now
    refresh_status(item)

    return _entry(
        item,
        StockMovementType.IN,
        quantity,
        reason=reason,
        reference=None,
        actor=actor,
        now=now,
    )


def remove_stock(
    item: InventoryItem,
    quantity: int,
    reason: Optional[str] = None,
    reference: Optional[str] = None,
    actor: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> StockMovement:
    """Deduct sellable stock. Reserved units are not touched."""
    _require_positive(quantity)
    if item.available_stock < quantity:
        raise _insufficient(item, quantity)

    item.current_stock -= quantity
    refresh_status(item)

    return _entry(
        item,
        StockMovementType.OUT,
        quantity,
        reason=reason,
        reference=reference,
        actor=actor,
        now=now or utc_now(),
    )


def write_off_stock(
    item: InventoryItem,
    quantity: int,
    kind: StockMovementType,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> StockMovement:
    """Remove expired or damaged units from sellable stock."""
    if kind not in WRITE_OFF_TYPES:
        raise ValueError(f"{kind!r} is not a write-off movement")
    _require_positive(quantity)
    if item.available_stock < quantity:
        raise _insufficient(item, quantity)

    item.current_stock -= quantity
    refresh_status(item)

    return _entry(
        item,
        kind,
        quantity,
        reason=reason,
        reference=None,
        actor=actor,
        now=now or utc_now(),
    )


def return_stock(
    item: InventoryItem,
    quantity: int,
    reason: Optional[str] = None,
    reference: Optional[str] = None,
    actor: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> StockMovement:
    """Put customer-returned units back on hand."""
    _require_positive(quantity)

    item.current_stock += quantity
    refresh_status(item)

    return _entry(
        item,
        StockMovementType.RETURN,
        quantity,
        reason=reason,
        reference=reference,
        actor=actor,
        now=now or utc_now(),
    )


def adjust_stock(
    item: InventoryItem,
    new_level: int,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Optional[StockMovement]:
    """Set on-hand stock to a counted level (stocktake correction).

    The entry records the signed delta. Returns None when nothing changed.
    """
    if new_level is None or new_level < 0:
        raise ValueError(f"Stock level cannot be negative, got {new_level!r}")
    if new_level < item.reserved_stock:
        raise InsufficientStock(
            f"Cannot set stock to {new_level}: {item.reserved_stock} units are reserved",
            context={"reserved_stock": item.reserved_stock, "requested": new_level},
        )

    delta = new_level - item.current_stock
    if delta == 0:
        return None

    item.current_stock = new_level
    refresh_status(item)

    return _entry(
        item,
        StockMovementType.ADJUSTMENT,
        delta,
        reason=reason,
        reference=None,
        actor=actor,
        now=now or utc_now(),
    )


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------


def reserve_stock(item: InventoryItem, quantity: int) -> None:
    """Hold units for an in-flight order without deducting on-hand stock."""
    _require_positive(quantity)
    if item.available_stock < quantity:
        raise _insufficient(item, quantity)
    item.reserved_stock += quantity


def release_stock(item: InventoryItem, quantity: int) -> int:
    """Drop a hold. Over-release clamps at zero. Returns the units released."""
    _require_positive(quantity)
    released = min(quantity, item.reserved_stock)
    item.reserved_stock -= released
    return released
