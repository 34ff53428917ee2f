"""Integration tests for inventory endpoints."""

import uuid

import pytest
from tests.factories import InventoryItemFactory, ProductFactory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def as_admin(acting_as, admin_user):
    acting_as(admin_user)
    return admin_user


async def _item(db, **overrides):
    product = ProductFactory.create()
    item = InventoryItemFactory.create(product_id=product.id, **overrides)
    db.add_all([product, item])
    await db.commit()
    return str(item.id)


# ---------------------------------------------------------------------------
# Record management
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_inventory(client, db_session, as_admin):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()
    payload = {
        "product_id": str(product.id),
        "store_id": str(uuid.uuid4()),
        "initial_stock": 8,
        "min_stock_level": 5,
        "batch_number": "B-2026-05",
        "expiry_date": "2026-12-31",
    }

    response = await client.post("/inventory", json=payload)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["current_stock"] == 8
    assert data["available_stock"] == 8
    assert data["status"] == "in-stock"
    assert data["batch_number"] == "B-2026-05"

    response = await client.post("/inventory", json=payload)
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_entity"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customers_cannot_manage_inventory(client, db_session):
    item_id = await _item(db_session)

    response = await client.post(f"/inventory/{item_id}/add-stock", json={"quantity": 5})

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_thresholds(client, db_session, as_admin):
    item_id = await _item(db_session, current_stock=30)

    response = await client.patch(
        f"/inventory/{item_id}", json={"min_stock_level": 40, "reorder_point": 50}
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["min_stock_level"] == 40
    assert data["status"] == "low-stock"
    assert data["current_stock"] == 30


@pytest.mark.asyncio
@pytest.mark.integration
async def test_discontinue_and_restore(client, db_session, as_admin):
    item_id = await _item(db_session, current_stock=30)

    response = await client.post(f"/inventory/{item_id}/discontinue", json={})
    assert response.json()["status"] == "discontinued"

    response = await client.post(
        f"/inventory/{item_id}/discontinue", json={"discontinued": False}
    )
    assert response.json()["status"] == "in-stock"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_inventory(client, db_session, as_admin):
    item_id = await _item(db_session)

    response = await client.delete(f"/inventory/{item_id}")
    assert response.status_code == 204

    response = await client.get(f"/inventory/{item_id}")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


# ---------------------------------------------------------------------------
# Stock movements
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stock_movements(client, db_session, as_admin):
    item_id = await _item(db_session, current_stock=100)

    response = await client.post(
        f"/inventory/{item_id}/add-stock", json={"quantity": 20, "reason": "Supplier"}
    )
    assert response.json()["current_stock"] == 120

    response = await client.post(
        f"/inventory/{item_id}/remove-stock",
        json={"quantity": 15, "reference": "POS-991"},
    )
    assert response.json()["current_stock"] == 105

    response = await client.post(
        f"/inventory/{item_id}/write-off", json={"quantity": 5, "kind": "damaged"}
    )
    assert response.json()["current_stock"] == 100

    response = await client.post(f"/inventory/{item_id}/return", json={"quantity": 1})
    assert response.json()["current_stock"] == 101

    response = await client.post(f"/inventory/{item_id}/adjust", json={"new_level": 90})
    assert response.json()["current_stock"] == 90

    history = (await client.get(f"/inventory/{item_id}/history")).json()
    assert len(history) == 5
    assert {h["performed_by"] for h in history} == {as_admin.user_id}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_remove_more_than_available(client, db_session, as_admin):
    item_id = await _item(db_session, current_stock=10, reserved_stock=6)

    response = await client.post(f"/inventory/{item_id}/remove-stock", json={"quantity": 5})

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "insufficient_stock"
    assert body["context"] == {
        "inventory_id": item_id,
        "available_stock": 4,
        "requested": 5,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_write_off_kind_is_validated(client, db_session, as_admin):
    item_id = await _item(db_session)

    response = await client.post(
        f"/inventory/{item_id}/write-off", json={"quantity": 1, "kind": "out"}
    )

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_non_positive_quantity_is_validated(client, db_session, as_admin):
    item_id = await _item(db_session)
    response = await client.post(f"/inventory/{item_id}/add-stock", json={"quantity": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_manual_reserve_release(client, db_session, as_admin):
    item_id = await _item(db_session, current_stock=10)

    response = await client.post(f"/inventory/{item_id}/reserve", json={"quantity": 7})
    assert response.json()["available_stock"] == 3

    response = await client.post(f"/inventory/{item_id}/reserve", json={"quantity": 4})
    assert response.status_code == 409

    response = await client.post(f"/inventory/{item_id}/release", json={"quantity": 10})
    assert response.json()["reserved_stock"] == 0


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stock_alert_listings(client, db_session, as_admin):
    store_id = uuid.uuid4()
    low = await _item(db_session, store_id=store_id, current_stock=3)
    empty = await _item(db_session, store_id=store_id, current_stock=0)
    await _item(db_session, store_id=store_id, current_stock=300)

    params = {"store_id": str(store_id)}
    low_stock = (await client.get("/inventory/low-stock", params=params)).json()
    out_of_stock = (await client.get("/inventory/out-of-stock", params=params)).json()
    reorder = (await client.get("/inventory/reorder-alerts", params=params)).json()

    assert [i["id"] for i in low_stock["items"]] == [low]
    assert [i["id"] for i in out_of_stock["items"]] == [empty]
    assert reorder["count"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_inventory_filters_and_pages(client, db_session, as_admin):
    store_id = uuid.uuid4()
    healthy = await _item(db_session, store_id=store_id, current_stock=300)
    low = await _item(db_session, store_id=store_id, current_stock=3)
    await _item(db_session, current_stock=50)

    everything = (await client.get("/inventory")).json()
    assert everything["count"] == 3

    response = await client.get("/inventory", params={"store_id": str(store_id)})
    assert response.status_code == 200
    assert {i["id"] for i in response.json()["items"]} == {healthy, low}

    response = await client.get(
        "/inventory", params={"store_id": str(store_id), "status": "low-stock"}
    )
    assert [i["id"] for i in response.json()["items"]] == [low]

    first_page = (await client.get("/inventory", params={"limit": 2})).json()
    second_page = (await client.get("/inventory", params={"skip": 2, "limit": 2})).json()
    assert first_page["count"] == 2
    assert second_page["count"] == 1

    assert (await client.get("/inventory", params={"status": "bogus"})).status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_check_stock_is_public(client, db_session, acting_as):
    product = ProductFactory.create()
    item = InventoryItemFactory.create(product_id=product.id, current_stock=5)
    db_session.add_all([product, item])
    await db_session.commit()

    response = await client.get(
        "/inventory/check-stock",
        params={"product_id": str(product.id), "store_id": str(item.store_id), "quantity": 5},
    )

    assert response.status_code == 200
    assert response.json() == {
        "available": True,
        "available_stock": 5,
        "status": "low-stock",
    }
