"""Integration tests for admin and seller order management."""

from decimal import Decimal

import pytest
from services.store_service.models import Order, OrderStatus, PaymentStatus
from sqlalchemy import select
from tests.factories import OrderFactory, OrderItemFactory, ProductFactory


async def _order_with_product(db_session, product=None, **overrides) -> Order:
    product = product or ProductFactory.create()
    order = OrderFactory.create(**overrides)
    db_session.add_all([product, order])
    await db_session.flush()
    db_session.add(OrderItemFactory.create(order_id=order.id, product=product, quantity=2))
    await db_session.commit()
    return order


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_lists_with_filters(client, db_session, act_as, admin):
    act_as(admin)
    paid = await _order_with_product(db_session, payment_status=PaymentStatus.PAID)
    await _order_with_product(db_session, status=OrderStatus.SHIPPED)

    response = await client.get("/admin/orders", params={"payment_status": "paid"})

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == str(paid.id)
    assert data["items"][0]["item_count"] == 1

    by_number = await client.get(
        "/admin/orders", params={"search": paid.order_number[-9:].lower()}
    )
    assert [order["id"] for order in by_number.json()["items"]] == [str(paid.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_list_paginates(client, db_session, act_as, admin):
    act_as(admin)
    for total in ("100.00", "300.00", "200.00"):
        await _order_with_product(db_session, total_amount=Decimal(total))

    response = await client.get(
        "/admin/orders",
        params={"sort_by": "total_amount", "sort_order": "asc", "page": 2, "page_size": 2},
    )

    data = response.json()
    assert data["total"] == 3
    assert [Decimal(order["total_amount"]) for order in data["items"]] == [
        Decimal("300.00")
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cannot_use_admin_routes(client, db_session):
    response = await client.get("/admin/orders")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_only_sees_own_product_orders(client, db_session, act_as, seller):
    act_as(seller)
    own = await _order_with_product(
        db_session, ProductFactory.create(seller_id=seller.user_id)
    )
    foreign = await _order_with_product(
        db_session, ProductFactory.create(seller_id="seller-2")
    )

    listing = await client.get("/admin/orders")
    assert [order["id"] for order in listing.json()["items"]] == [str(own.id)]

    assert (await client.get(f"/admin/orders/{own.id}")).status_code == 200
    assert (await client.get(f"/admin/orders/{foreign.id}")).status_code == 404


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_shipping_sets_timestamp_and_emails(client, db_session, act_as, admin, notifier):
    act_as(admin)
    order = await _order_with_product(db_session, status=OrderStatus.PROCESSING)

    response = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "shipped"}
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["status"] == "shipped"
    assert data["shipped_at"] is not None
    assert data["delivered_at"] is None
    assert data["tracking_history"][-1]["message"] == "Order status updated to shipped"
    assert notifier.shipped == [order.order_number]

    delivered = await client.patch(
        f"/admin/orders/{order.id}/status",
        json={"status": "delivered", "message": "Signed by customer"},
    )
    assert delivered.json()["delivered_at"] is not None
    assert delivered.json()["shipped_at"] == data["shipped_at"]
    assert delivered.json()["tracking_history"][-1]["message"] == "Signed by customer"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_same_status_is_a_no_op(client, db_session, act_as, admin):
    act_as(admin)
    order = await _order_with_product(db_session, status=OrderStatus.CONFIRMED)

    response = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "confirmed"}
    )

    assert response.status_code == 200
    assert response.json()["tracking_history"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delivered_orders_can_only_be_refunded(client, db_session, act_as, admin):
    act_as(admin)
    order = await _order_with_product(db_session, status=OrderStatus.DELIVERED)

    cancelled = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "cancelled"}
    )
    assert cancelled.status_code == 400
    assert cancelled.json()["error"]["message"] == "Delivered orders can only be refunded"

    refunded = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "refunded"}
    )
    assert refunded.status_code == 200
    assert refunded.json()["status"] == "refunded"

    reopened = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "processing"}
    )
    assert reopened.status_code == 400
    assert reopened.json()["error"]["message"] == "Order is already refunded"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_cancel_restocks_unshipped_order(client, db_session, act_as, admin):
    act_as(admin)
    product = ProductFactory.create(stock=5)
    order = await _order_with_product(
        db_session, product, status=OrderStatus.CONFIRMED
    )

    response = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "cancelled"}
    )

    assert response.status_code == 200
    assert response.json()["cancelled_at"] is not None
    await db_session.refresh(product)
    assert product.stock == 7


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancelling_shipped_order_keeps_stock(client, db_session, act_as, admin):
    act_as(admin)
    product = ProductFactory.create(stock=5)
    order = await _order_with_product(db_session, product, status=OrderStatus.SHIPPED)

    await client.patch(f"/admin/orders/{order.id}/status", json={"status": "cancelled"})

    await db_session.refresh(product)
    assert product.stock == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_limited_to_fulfilment_statuses(client, db_session, act_as, seller):
    act_as(seller)
    order = await _order_with_product(
        db_session, ProductFactory.create(seller_id=seller.user_id)
    )

    refused = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "confirmed"}
    )
    assert refused.status_code == 400

    shipped = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "shipped"}
    )
    assert shipped.status_code == 200
    assert shipped.json()["status"] == "shipped"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_status_is_rejected(client, db_session, act_as, admin):
    act_as(admin)
    order = await _order_with_product(db_session)

    response = await client.patch(
        f"/admin/orders/{order.id}/status", json={"status": "lost"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# Payment status, tracking, deletion
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_payment_status_is_independent(client, db_session, act_as, admin):
    act_as(admin)
    order = await _order_with_product(db_session, status=OrderStatus.PROCESSING)

    response = await client.patch(
        f"/admin/orders/{order.id}/payment-status", json={"payment_status": "paid"}
    )

    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid"
    assert response.json()["status"] == "processing"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tracking_number_required(client, db_session, act_as, admin):
    act_as(admin)
    order = await _order_with_product(db_session)

    missing = await client.patch(
        f"/admin/orders/{order.id}/tracking", json={"tracking_number": "  "}
    )
    assert missing.status_code == 400
    assert missing.json()["error"]["message"] == "Tracking number is required"

    added = await client.patch(
        f"/admin/orders/{order.id}/tracking",
        json={"tracking_number": "DLV99887766", "courier_partner": "Delhivery"},
    )
    assert added.status_code == 200
    assert added.json()["tracking_number"] == "DLV99887766"
    assert added.json()["courier_partner"] == "Delhivery"
    assert (
        added.json()["tracking_history"][-1]["message"]
        == "Tracking number added: DLV99887766"
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_cancels_instead_of_removing(client, db_session, act_as, admin):
    act_as(admin)
    order = await _order_with_product(db_session)

    response = await client.delete(f"/admin/orders/{order.id}")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    rows = (await db_session.execute(select(Order.id))).scalars().all()
    assert rows == [order.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_cannot_delete(client, db_session, act_as, seller):
    act_as(seller)
    order = await _order_with_product(
        db_session, ProductFactory.create(seller_id=seller.user_id)
    )

    response = await client.delete(f"/admin/orders/{order.id}")

    assert response.status_code == 403
