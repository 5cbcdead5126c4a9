"""Integration tests for order placement and customer cancellation."""

import uuid
from decimal import Decimal

import pytest
from services.store_service.models import (
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    OrderTrackingEvent,
)
from services.store_service.services.notifications import get_order_notifier
from sqlalchemy import func, select
from tests.factories import (
    DUBAI_ADDRESS,
    SRINAGAR_ADDRESS,
    CartItemFactory,
    OrderFactory,
    OrderItemFactory,
    ProductFactory,
)
from tests.fakes import FailingNotifier


def _order_payload(*lines, address=None, **extra) -> dict:
    payload = {
        "items": [
            {"product_id": str(product.id), "quantity": quantity}
            for product, quantity in lines
        ],
        "shipping_address": address or SRINAGAR_ADDRESS,
        "payment_method": "razorpay",
    }
    payload.update(extra)
    return payload


async def _count(db_session, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_prices_from_catalog(client, db_session, notifier):
    product = ProductFactory.create(price=Decimal("100.00"), stock=10)
    db_session.add(product)
    await db_session.commit()

    response = await client.post(
        "/orders",
        json=_order_payload((product, 2), (product, 3), total="1.00"),
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["order_number"].startswith("ORD-")
    assert Decimal(data["subtotal"]) == Decimal("500.00")
    assert Decimal(data["tax_amount"]) == Decimal("90.00")
    assert Decimal(data["shipping_amount"]) == Decimal("50.00")
    # The client-supplied total is ignored
    assert Decimal(data["total_amount"]) == Decimal("640.00")
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert data["shipping_zone_id"] == "kashmir"
    assert data["courier_partner"] == "Blue Dart"
    assert sorted(item["quantity"] for item in data["items"]) == [2, 3]
    assert data["tracking_history"][0]["status"] == "pending"
    assert notifier.placed == [data["order_number"]]

    await db_session.refresh(product)
    assert product.stock == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshot_survives_product_edit(client, db_session):
    product = ProductFactory.create(name="Rose Attar 6ml", price=Decimal("100.00"))
    db_session.add(product)
    await db_session.commit()

    created = await client.post("/orders", json=_order_payload((product, 1)))
    assert created.status_code == 201, created.text

    product.name = "Rose Attar 12ml"
    product.price = Decimal("180.00")
    await db_session.commit()

    response = await client.get(f"/orders/{created.json()['id']}")
    item = response.json()["items"][0]
    assert item["product_snapshot"]["name"] == "Rose Attar 6ml"
    assert item["product_snapshot"]["price"] == "100.00"
    assert Decimal(item["unit_price"]) == Decimal("100.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_clears_cart(client, db_session, customer, other_customer):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.flush()
    db_session.add(CartItemFactory.create(product_id=product.id, user_id=customer.user_id))
    db_session.add(
        CartItemFactory.create(product_id=product.id, user_id=other_customer.user_id)
    )
    await db_session.commit()

    response = await client.post("/orders", json=_order_payload((product, 1)))
    assert response.status_code == 201, response.text

    remaining = (await db_session.execute(select(CartItem.user_id))).scalars().all()
    assert remaining == [other_customer.user_id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_email_failure_does_not_fail_order(client, db_session):
    from services.store_service.app.main import app

    app.dependency_overrides[get_order_notifier] = lambda: FailingNotifier()
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()

    response = await client.post("/orders", json=_order_payload((product, 1)))

    assert response.status_code == 201, response.text
    assert await _count(db_session, Order) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_product_leaves_no_rows(client, db_session):
    product = ProductFactory.create(stock=10)
    db_session.add(product)
    await db_session.commit()

    payload = _order_payload((product, 1))
    payload["items"].append({"product_id": str(uuid.uuid4()), "quantity": 1})
    response = await client.post("/orders", json=payload)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
    assert await _count(db_session, Order) == 0
    assert await _count(db_session, OrderItem) == 0
    await db_session.refresh(product)
    assert product.stock == 10


@pytest.mark.asyncio
@pytest.mark.integration
async def test_insufficient_stock_rolls_back_everything(client, db_session, customer):
    plenty = ProductFactory.create(stock=10)
    scarce = ProductFactory.create(name="Saffron Attar", stock=1)
    db_session.add_all([plenty, scarce])
    await db_session.flush()
    db_session.add(CartItemFactory.create(product_id=plenty.id, user_id=customer.user_id))
    await db_session.commit()

    response = await client.post(
        "/orders", json=_order_payload((plenty, 2), (scarce, 5))
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INSUFFICIENT_STOCK"
    await db_session.refresh(plenty)
    await db_session.refresh(scarce)
    assert plenty.stock == 10
    assert scarce.stock == 1
    assert await _count(db_session, Order) == 0
    assert await _count(db_session, OrderTrackingEvent) == 0
    assert await _count(db_session, CartItem) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_last_units_cannot_be_sold_twice(client, db_session, act_as, other_customer):
    product = ProductFactory.create(stock=3)
    db_session.add(product)
    await db_session.commit()

    first = await client.post("/orders", json=_order_payload((product, 2)))
    act_as(other_customer)
    second = await client.post("/orders", json=_order_payload((product, 2)))

    assert first.status_code == 201, first.text
    assert second.status_code == 409
    await db_session.refresh(product)
    assert product.stock == 1
    assert await _count(db_session, Order) == 1


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"items": []}, "Order must contain at least one item"),
        ({"shipping_address": None}, "Shipping address is required"),
        ({"payment_method": "  "}, "Payment method is required"),
    ],
)
async def test_place_order_requires_fields(client, db_session, overrides, message):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()

    payload = _order_payload((product, 1))
    payload.update(overrides)
    response = await client.post("/orders", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert response.json()["error"]["message"] == message


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_rejects_invalid_address(client, db_session):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()

    address = dict(SRINAGAR_ADDRESS, postal_code="1900")
    response = await client.post(
        "/orders", json=_order_payload((product, 1), address=address)
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["message"] == "Invalid shipping address"
    assert error["details"]["errors"] == ["Invalid Indian PIN code. Must be 6 digits."]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_international_order(client, db_session):
    product = ProductFactory.create(price=Decimal("1000.00"))
    db_session.add(product)
    await db_session.commit()

    response = await client.post(
        "/orders", json=_order_payload((product, 1), address=DUBAI_ADDRESS)
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["shipping_zone_id"] == "international-gcc"
    assert data["courier_partner"] == "DHL"
    assert Decimal(data["shipping_amount"]) == Decimal("500.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_requires_authentication(client):
    from libs.auth.dependencies import get_current_user
    from services.store_service.app.main import app

    app.dependency_overrides.pop(get_current_user)
    response = await client.post("/orders", json={})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customers_only_see_their_orders(client, db_session, other_customer):
    mine = OrderFactory.create()
    theirs = OrderFactory.create(user_id=other_customer.user_id)
    db_session.add_all([mine, theirs])
    await db_session.flush()
    db_session.add(OrderItemFactory.create(order_id=mine.id))
    await db_session.commit()

    listing = await client.get("/orders")
    assert listing.status_code == 200
    assert [order["id"] for order in listing.json()] == [str(mine.id)]
    assert listing.json()[0]["item_count"] == 1

    hidden = await client.get(f"/orders/{theirs.id}")
    assert hidden.status_code == 404


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_pending_order_restores_stock(client, db_session):
    product = ProductFactory.create(stock=10)
    db_session.add(product)
    await db_session.commit()

    created = await client.post("/orders", json=_order_payload((product, 4)))
    order_id = created.json()["id"]

    response = await client.put(
        f"/orders/{order_id}/status", json={"status": "cancelled"}
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancelled_at"] is not None
    assert data["tracking_history"][-1]["status"] == "cancelled"
    await db_session.refresh(product)
    assert product.stock == 10


@pytest.mark.asyncio
@pytest.mark.integration
async def test_confirmed_order_cannot_be_cancelled(client, db_session):
    order = OrderFactory.create(status=OrderStatus.CONFIRMED)
    db_session.add(order)
    await db_session.commit()

    response = await client.put(
        f"/orders/{order.id}/status", json={"status": "cancelled"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert response.json()["error"]["message"] == "Only pending orders can be cancelled"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cannot_set_other_statuses(client, db_session):
    order = OrderFactory.create()
    db_session.add(order)
    await db_session.commit()

    response = await client.put(f"/orders/{order.id}/status", json={"status": "shipped"})

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "You can only cancel orders"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cannot_cancel_someone_elses_order(client, db_session, other_customer):
    order = OrderFactory.create(user_id=other_customer.user_id)
    db_session.add(order)
    await db_session.commit()

    response = await client.put(
        f"/orders/{order.id}/status", json={"status": "cancelled"}
    )

    assert response.status_code == 404
    await db_session.refresh(order)
    assert order.status == OrderStatus.PENDING
