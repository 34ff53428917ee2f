"""Unit tests for the stock ledger primitives.

Pure functions over an InventoryItem; no session involved.
"""

import pytest
from services.commerce_service.errors import InsufficientStock
from services.commerce_service.models import InventoryStatus, StockMovementType
from services.commerce_service.services import ledger
from tests.factories import InventoryItemFactory


def _snapshot(item):
    return (item.current_stock, item.reserved_stock, item.status)


def _assert_consistent(item):
    assert 0 <= item.reserved_stock <= item.current_stock
    if item.status != InventoryStatus.DISCONTINUED:
        assert item.status == ledger.derive_status(
            item.current_stock, item.min_stock_level
        )


# ---------------------------------------------------------------------------
# Status derivation
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "current, expected",
    [
        (0, InventoryStatus.OUT_OF_STOCK),
        (1, InventoryStatus.LOW_STOCK),
        (10, InventoryStatus.LOW_STOCK),
        (11, InventoryStatus.IN_STOCK),
    ],
)
def test_derive_status(current, expected):
    assert ledger.derive_status(current, 10) == expected


@pytest.mark.unit
def test_discontinued_is_sticky_across_mutations():
    item = InventoryItemFactory.create(current_stock=50)
    ledger.set_discontinued(item, True)

    ledger.add_stock(item, 10)
    ledger.remove_stock(item, 55)

    assert item.status == InventoryStatus.DISCONTINUED

    ledger.set_discontinued(item, False)
    assert item.status == InventoryStatus.LOW_STOCK


# ---------------------------------------------------------------------------
# add / remove
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_add_stock_returns_in_entry_and_stamps_restock():
    item = InventoryItemFactory.create(current_stock=0)

    entry = ledger.add_stock(item, 25, "Delivery from supplier", "admin-1")

    assert item.current_stock == 25
    assert item.status == InventoryStatus.IN_STOCK
    assert item.last_restocked_at is not None
    assert entry.movement_type == StockMovementType.IN
    assert entry.quantity == 25
    assert entry.performed_by == "admin-1"
    assert entry.inventory_item_id == item.id


@pytest.mark.unit
@pytest.mark.parametrize("quantity", [0, -5])
def test_add_stock_rejects_non_positive_quantity(quantity):
    item = InventoryItemFactory.create(current_stock=5)
    with pytest.raises(ValueError):
        ledger.add_stock(item, quantity)
    assert item.current_stock == 5


@pytest.mark.unit
def test_remove_stock_beyond_available_leaves_item_unchanged():
    item = InventoryItemFactory.create(current_stock=10, reserved_stock=4)
    before = _snapshot(item)

    with pytest.raises(InsufficientStock) as exc:
        ledger.remove_stock(item, 7)

    assert _snapshot(item) == before
    assert exc.value.context["available_stock"] == 6
    assert exc.value.context["requested"] == 7


@pytest.mark.unit
def test_remove_stock_never_touches_reserved_units():
    item = InventoryItemFactory.create(current_stock=10, reserved_stock=4)

    entry = ledger.remove_stock(item, 6, reference="OR-1")

    assert item.current_stock == 4
    assert item.reserved_stock == 4
    assert item.available_stock == 0
    assert entry.reference == "OR-1"
    _assert_consistent(item)


# ---------------------------------------------------------------------------
# write-off / return / adjust
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_write_off_records_kind():
    item = InventoryItemFactory.create(current_stock=30)

    entry = ledger.write_off_stock(item, 5, StockMovementType.DAMAGED, "Crushed")

    assert item.current_stock == 25
    assert entry.movement_type == StockMovementType.DAMAGED


@pytest.mark.unit
def test_write_off_rejects_non_write_off_kind():
    item = InventoryItemFactory.create(current_stock=30)
    with pytest.raises(ValueError):
        ledger.write_off_stock(item, 5, StockMovementType.OUT)
    assert item.current_stock == 30


@pytest.mark.unit
def test_return_stock_puts_units_back():
    item = InventoryItemFactory.create(current_stock=0)

    entry = ledger.return_stock(item, 3, "Wrong size", "OR-9")

    assert item.current_stock == 3
    assert item.status == InventoryStatus.LOW_STOCK
    assert entry.movement_type == StockMovementType.RETURN


@pytest.mark.unit
def test_adjust_stock_records_signed_delta():
    item = InventoryItemFactory.create(current_stock=40)

    entry = ledger.adjust_stock(item, 35, "Stocktake")

    assert item.current_stock == 35
    assert entry.movement_type == StockMovementType.ADJUSTMENT
    assert entry.quantity == -5


@pytest.mark.unit
def test_adjust_stock_to_same_level_is_a_noop():
    item = InventoryItemFactory.create(current_stock=40)
    assert ledger.adjust_stock(item, 40) is None


@pytest.mark.unit
def test_adjust_stock_below_reserved_is_refused():
    item = InventoryItemFactory.create(current_stock=40, reserved_stock=20)
    with pytest.raises(InsufficientStock):
        ledger.adjust_stock(item, 10)
    assert item.current_stock == 40


# ---------------------------------------------------------------------------
# reserve / release
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_reserve_then_release_restores_reserved_stock():
    item = InventoryItemFactory.create(current_stock=50, reserved_stock=5)

    ledger.reserve_stock(item, 20)
    assert item.reserved_stock == 25
    assert item.current_stock == 50

    released = ledger.release_stock(item, 20)
    assert released == 20
    assert item.reserved_stock == 5


@pytest.mark.unit
def test_reserve_beyond_available_fails_without_change():
    item = InventoryItemFactory.create(current_stock=10, reserved_stock=8)
    with pytest.raises(InsufficientStock):
        ledger.reserve_stock(item, 3)
    assert item.reserved_stock == 8


@pytest.mark.unit
def test_release_clamps_at_zero():
    item = InventoryItemFactory.create(current_stock=10, reserved_stock=2)
    assert ledger.release_stock(item, 5) == 2
    assert item.reserved_stock == 0


@pytest.mark.unit
def test_reserved_never_exceeds_current_across_mixed_operations():
    item = InventoryItemFactory.create(current_stock=20)
    operations = [
        lambda: ledger.reserve_stock(item, 15),
        lambda: ledger.remove_stock(item, 10),
        lambda: ledger.remove_stock(item, 5),
        lambda: ledger.add_stock(item, 3),
        lambda: ledger.reserve_stock(item, 4),
        lambda: ledger.adjust_stock(item, 1),
        lambda: ledger.release_stock(item, 30),
        lambda: ledger.write_off_stock(item, 25, StockMovementType.EXPIRED),
    ]
    for operation in operations:
        try:
            operation()
        except InsufficientStock:
            pass
        _assert_consistent(item)


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_reserve_fulfil_release_walkthrough():
    item = InventoryItemFactory.create(
        current_stock=100, reserved_stock=0, min_stock_level=10
    )

    ledger.reserve_stock(item, 30)
    assert item.available_stock == 70
    assert item.status == InventoryStatus.IN_STOCK

    entry = ledger.remove_stock(item, 30, reference="order123")
    assert item.current_stock == 70
    assert item.status == InventoryStatus.IN_STOCK
    assert entry.reference == "order123"

    assert ledger.release_stock(item, 30) == 30
    assert item.reserved_stock == 0
