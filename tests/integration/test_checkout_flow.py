"""Integration tests for the full order lifecycle over HTTP.

Place order -> pay -> deliver, with stock checked at every step.
"""

import uuid
from decimal import Decimal

import pytest
from services.commerce_service.services import notifications
from tests.factories import CouponFactory, InventoryItemFactory, ProductFactory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _seed_stock(db, *, price="100.00", current_stock=10, **item_overrides):
    product = ProductFactory.create(price=Decimal(price))
    item = InventoryItemFactory.create(
        product_id=product.id, current_stock=current_stock, **item_overrides
    )
    db.add_all([product, item])
    await db.commit()
    return product.id, item.store_id, item.id


async def _stock(client, acting_as, admin_user, item_id):
    previous = acting_as.user
    acting_as(admin_user)
    response = await client.get(f"/inventory/{item_id}")
    acting_as(previous)
    assert response.status_code == 200, response.text
    data = response.json()
    return data["current_stock"], data["reserved_stock"]


async def _place(client, product_id, store_id, quantity=3, **extra):
    payload = {
        "store_id": str(store_id),
        "items": [{"product_id": str(product_id), "quantity": quantity}],
        "payment_method": "card",
        **extra,
    }
    return await client.post("/orders", json=payload)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_pay_deliver(client, db_session, acting_as, admin_user, customer, notifier):
    """Stock is held at checkout and deducted at pickup; delivery completes the order."""
    product_id, store_id, item_id = await _seed_stock(db_session)

    response = await _place(client, product_id, store_id, quantity=3)
    assert response.status_code == 201, response.text
    order = response.json()
    assert order["status"] == "pending"
    assert order["user_id"] == customer.user_id
    assert Decimal(order["total_price"]) == Decimal("300")
    assert await _stock(client, acting_as, admin_user, item_id) == (10, 3)

    check = await client.get(
        "/inventory/check-stock",
        params={"product_id": str(product_id), "store_id": str(store_id), "quantity": 8},
    )
    assert check.status_code == 200
    assert check.json()["available"] is False
    assert check.json()["available_stock"] == 7

    response = await client.post("/payments", json={"order_id": order["id"]})
    assert response.status_code == 201, response.text
    payment = response.json()
    assert payment["status"] == "processing"
    assert Decimal(payment["amount"]) == Decimal("300")

    response = await client.put(
        f"/payments/{payment['id']}/success",
        json={"gateway_response": {"id": "pay_123"}},
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "success"

    response = await client.get(f"/orders/{order['id']}")
    assert response.json()["is_paid"] is True

    acting_as(admin_user)
    response = await client.post("/deliveries", json={"order_id": order["id"]})
    assert response.status_code == 201, response.text
    delivery = response.json()
    assert delivery["status"] == "pending"

    response = await client.put(
        f"/deliveries/{delivery['id']}/assign", json={"name": "Ravi"}
    )
    assert response.json()["courier_name"] == "Ravi"

    response = await client.put(
        f"/deliveries/{delivery['id']}/status", json={"status": "picked-up"}
    )
    assert response.status_code == 200, response.text
    assert response.json()["pickup_time"] is not None
    assert await _stock(client, acting_as, admin_user, item_id) == (7, 0)

    history = (await client.get(f"/inventory/{item_id}/history")).json()
    assert [(h["movement_type"], h["quantity"], h["reference"]) for h in history] == [
        ("out", 3, order["order_number"])
    ]

    response = await client.put(
        f"/deliveries/{delivery['id']}/status", json={"status": "out-for-delivery"}
    )
    assert response.status_code == 200
    assert (await client.get(f"/orders/{order['id']}")).json()["status"] == "shipped"

    response = await client.put(
        f"/deliveries/{delivery['id']}/status", json={"status": "delivered"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["actual_delivery_time"] is not None
    assert [event["status"] for event in body["history"]] == [
        "pending",
        "assigned",
        "picked-up",
        "out-for-delivery",
        "delivered",
    ]

    order_after = (await client.get(f"/orders/{order['id']}")).json()
    assert order_after["status"] == "delivered"
    assert order_after["is_delivered"] is True

    # Stock is deducted exactly once
    assert await _stock(client, acting_as, admin_user, item_id) == (7, 0)

    acting_as(customer)
    response = await client.put(
        f"/deliveries/{delivery['id']}/rate", json={"rating": 5, "feedback": "Quick"}
    )
    assert response.status_code == 200, response.text
    assert response.json()["rating"] == 5

    response = await client.post(f"/orders/{order['id']}/cancel")
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"

    events = notifier.names()
    assert events.index(notifications.ORDER_CREATED) < events.index(
        notifications.PAYMENT_SUCCEEDED
    )
    assert notifications.ORDER_PAID in events
    assert notifications.DELIVERY_STATUS_CHANGED in events


@pytest.mark.asyncio
@pytest.mark.integration
async def test_repeated_pickup_deducts_once(client, db_session, acting_as, admin_user):
    product_id, store_id, item_id = await _seed_stock(db_session)
    order = (await _place(client, product_id, store_id, quantity=2)).json()

    acting_as(admin_user)
    delivery = (await client.post("/deliveries", json={"order_id": order["id"]})).json()
    first = await client.put(
        f"/deliveries/{delivery['id']}/status", json={"status": "picked-up"}
    )
    await client.put(f"/deliveries/{delivery['id']}/status", json={"status": "in-transit"})
    second = await client.put(
        f"/deliveries/{delivery['id']}/status", json={"status": "picked-up"}
    )

    assert first.json()["pickup_time"] == second.json()["pickup_time"]
    assert await _stock(client, acting_as, admin_user, item_id) == (8, 0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delivery_without_pickup_still_deducts_stock(client, db_session, acting_as, admin_user):
    product_id, store_id, item_id = await _seed_stock(db_session)
    order = (await _place(client, product_id, store_id, quantity=3)).json()
    payment = (await client.post("/payments", json={"order_id": order["id"]})).json()
    await client.put(f"/payments/{payment['id']}/success", json={})

    acting_as(admin_user)
    delivery = (await client.post("/deliveries", json={"order_id": order["id"]})).json()
    response = await client.put(
        f"/deliveries/{delivery['id']}/status", json={"status": "delivered"}
    )

    assert response.status_code == 200, response.text
    assert response.json()["pickup_time"] is None
    assert (await client.get(f"/orders/{order['id']}")).json()["status"] == "delivered"
    assert await _stock(client, acting_as, admin_user, item_id) == (7, 0)

    history = (await client.get(f"/inventory/{item_id}/history")).json()
    assert [(h["movement_type"], h["quantity"]) for h in history] == [("out", 3)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_shipping_deducts_stock_once(client, db_session, acting_as, admin_user):
    product_id, store_id, item_id = await _seed_stock(db_session)
    order = (await _place(client, product_id, store_id, quantity=4)).json()

    acting_as(admin_user)
    response = await client.put(f"/orders/{order['id']}/status", json={"status": "shipped"})
    assert response.status_code == 200, response.text
    assert await _stock(client, acting_as, admin_user, item_id) == (6, 0)

    response = await client.put(
        f"/orders/{order['id']}/status", json={"status": "delivered"}
    )
    assert response.status_code == 200, response.text
    assert await _stock(client, acting_as, admin_user, item_id) == (6, 0)


# ---------------------------------------------------------------------------
# Checkout failures
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_insufficient_stock_leaves_nothing_behind(client, db_session, acting_as, admin_user):
    product_id, store_id, item_id = await _seed_stock(db_session, current_stock=2)

    response = await _place(client, product_id, store_id, quantity=3)

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "insufficient_stock"
    assert body["context"]["available_stock"] == 2
    assert (await client.get("/orders/mine")).json() == []
    assert await _stock(client, acting_as, admin_user, item_id) == (2, 0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_multi_line_order_is_all_or_nothing(client, db_session, acting_as, admin_user):
    plenty_id, store_id, plenty_item = await _seed_stock(db_session, current_stock=50)
    scarce_id, _, scarce_item = await _seed_stock(
        db_session, current_stock=1, store_id=store_id
    )

    response = await client.post(
        "/orders",
        json={
            "store_id": str(store_id),
            "items": [
                {"product_id": str(plenty_id), "quantity": 5},
                {"product_id": str(scarce_id), "quantity": 2},
            ],
            "payment_method": "upi",
        },
    )

    assert response.status_code == 409
    assert await _stock(client, acting_as, admin_user, plenty_item) == (50, 0)
    assert await _stock(client, acting_as, admin_user, scarce_item) == (1, 0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unstocked_product_is_not_found(client, db_session):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()

    response = await _place(client, product.id, uuid.uuid4())

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_discontinued_product_cannot_be_ordered(client, db_session):
    from services.commerce_service.models import InventoryStatus

    product_id, store_id, _ = await _seed_stock(
        db_session, current_stock=50, status=InventoryStatus.DISCONTINUED
    )

    response = await _place(client, product_id, store_id)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_order"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sale_price_is_snapshotted(client, db_session):
    product = ProductFactory.create(price=Decimal("100"), discount_price=Decimal("80"))
    item = InventoryItemFactory.create(product_id=product.id, current_stock=10)
    db_session.add_all([product, item])
    await db_session.commit()

    response = await _place(client, product.id, item.store_id, quantity=2)

    body = response.json()
    assert Decimal(body["items"][0]["price"]) == Decimal("80")
    assert Decimal(body["items_price"]) == Decimal("160")


# ---------------------------------------------------------------------------
# Coupons at checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_coupon_is_applied_and_redeemed(client, db_session):
    product_id, store_id, _ = await _seed_stock(db_session, price="500.00")
    coupon = CouponFactory.create(
        code="WELCOME10",
        discount_value=Decimal("10"),
        max_discount_amount=Decimal("50"),
        usage_limit=1,
    )
    db_session.add(coupon)
    await db_session.commit()
    coupon_id = coupon.id

    response = await _place(
        client,
        product_id,
        store_id,
        quantity=2,
        coupon_code="welcome10",
        tax_price="18.00",
        shipping_price="40.00",
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["coupon_code"] == "WELCOME10"
    assert Decimal(body["discount_amount"]) == Decimal("50")
    assert Decimal(body["total_price"]) == Decimal("1008")

    from services.commerce_service.models import Coupon

    refreshed = await db_session.get(Coupon, coupon_id, populate_existing=True)
    assert refreshed.used_count == 1

    # Limit reached: the second checkout is refused and holds no stock
    response = await _place(
        client, product_id, store_id, quantity=1, coupon_code="WELCOME10"
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_coupon"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_coupon_is_invalid(client, db_session):
    product_id, store_id, _ = await _seed_stock(db_session)

    response = await _place(client, product_id, store_id, coupon_code="NOPE")

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_coupon"
