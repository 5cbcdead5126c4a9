"""Unit tests for server-side order pricing."""

import re
import uuid
from decimal import Decimal

import pytest
from libs.common.errors import NotFoundError
from services.store_service.models import Order
from services.store_service.schemas import ShippingAddress
from services.store_service.services.pricing import LineItem, OrderPricingEngine
from services.store_service.services.shipping import ShippingCalculator
from services.store_service.shipping_config import DEFAULT_SHIPPING_CONFIG
from tests.factories import MUMBAI_ADDRESS, SRINAGAR_ADDRESS, ProductFactory

ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d+-[A-Z0-9]{9}$")


@pytest.fixture
def engine() -> OrderPricingEngine:
    return OrderPricingEngine(ShippingCalculator(DEFAULT_SHIPPING_CONFIG))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_two_lines_same_product(db_session, engine):
    product = ProductFactory.create(price=Decimal("100.00"))
    db_session.add(product)
    await db_session.commit()

    priced = await engine.price(
        db_session,
        [LineItem(product.id, 2), LineItem(product.id, 3)],
        ShippingAddress(**SRINAGAR_ADDRESS),
    )

    assert priced.subtotal == Decimal("500.00")
    assert priced.tax_amount == Decimal("90.00")
    assert priced.shipping_amount == Decimal("50.00")
    assert priced.total_amount == Decimal("640.00")
    assert [line.total_price for line in priced.lines] == [
        Decimal("200.00"),
        Decimal("300.00"),
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_free_shipping_is_judged_on_subtotal(db_session, engine):
    product = ProductFactory.create(price=Decimal("1999.00"))
    db_session.add(product)
    await db_session.commit()

    # Subtotal 1999 is under the 2000 threshold even though tax pushes the total over
    priced = await engine.price(
        db_session, [LineItem(product.id, 1)], ShippingAddress(**MUMBAI_ADDRESS)
    )
    assert priced.shipping_quote.zone.id == "india-metro"
    assert priced.shipping_amount == Decimal("100.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_discount_reduces_total(db_session, engine):
    product = ProductFactory.create(price=Decimal("100.00"))
    db_session.add(product)
    await db_session.commit()

    priced = await engine.price(
        db_session,
        [LineItem(product.id, 1)],
        ShippingAddress(**SRINAGAR_ADDRESS),
        discount=Decimal("10"),
    )
    # 100 + 18 tax + 50 shipping - 10
    assert priced.discount_amount == Decimal("10.00")
    assert priced.total_amount == Decimal("158.00")


@pytest.mark.unit
def test_tax_rounds_half_up(engine):
    assert engine.tax_for(Decimal("0.25")) == Decimal("0.05")  # 0.045
    assert engine.tax_for(Decimal("333.33")) == Decimal("60.00")  # 59.9994


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_or_inactive_product_is_not_found(db_session, engine):
    hidden = ProductFactory.create(is_active=False)
    db_session.add(hidden)
    await db_session.commit()

    with pytest.raises(NotFoundError):
        await engine.price(
            db_session, [LineItem(uuid.uuid4(), 1)], ShippingAddress(**SRINAGAR_ADDRESS)
        )
    with pytest.raises(NotFoundError):
        await engine.price(
            db_session, [LineItem(hidden.id, 1)], ShippingAddress(**SRINAGAR_ADDRESS)
        )


@pytest.mark.unit
def test_order_number_format():
    numbers = {Order.generate_order_number() for _ in range(200)}
    assert all(ORDER_NUMBER_PATTERN.match(number) for number in numbers)
    assert len(numbers) == 200
