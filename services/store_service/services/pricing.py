"""Server-side order pricing.

Prices always come from the catalog; whatever the client claims an item or
the order costs is ignored.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence

from fastapi import Depends
from libs.common.currency import round_money, to_decimal
from services.store_service.models import Product
from services.store_service.services.inventory import get_product
from services.store_service.services.shipping import (
    ShippingCalculator,
    ShippingQuote,
    get_shipping_calculator,
)
from services.store_service.services.zones import AddressLike
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class LineItem:
    product_id: uuid.UUID
    quantity: int
    variant_id: Optional[str] = None


@dataclass(frozen=True)
class PricedLine:
    product: Product
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    variant_id: Optional[str] = None


@dataclass(frozen=True)
class PricedOrder:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    shipping_quote: ShippingQuote
    lines: list[PricedLine] = field(default_factory=list)


class OrderPricingEngine:
    def __init__(self, calculator: ShippingCalculator):
        self.calculator = calculator
        self.tax_rate = calculator.config.tax_rate

    def tax_for(self, subtotal: Decimal) -> Decimal:
        return round_money(subtotal * self.tax_rate)

    async def price(
        self,
        db: AsyncSession,
        line_items: Sequence[LineItem],
        shipping_address: AddressLike,
        discount: Decimal = Decimal("0"),
    ) -> PricedOrder:
        """Price line items against the live catalog.

        Raises NotFoundError for the first missing product; nothing is
        priced partially.
        """
        lines = []
        subtotal = Decimal("0")
        for item in line_items:
            product = await get_product(db, item.product_id, active_only=True)
            unit_price = round_money(product.price)
            total_price = round_money(unit_price * item.quantity)
            subtotal += total_price
            lines.append(
                PricedLine(
                    product=product,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    total_price=total_price,
                    variant_id=item.variant_id,
                )
            )

        subtotal = round_money(subtotal)
        discount = round_money(to_decimal(discount))
        tax_amount = self.tax_for(subtotal)
        quote = self.calculator.calculate(shipping_address, subtotal)
        shipping_amount = quote.shipping_cost

        return PricedOrder(
            subtotal=subtotal,
            tax_amount=tax_amount,
            shipping_amount=shipping_amount,
            discount_amount=discount,
            total_amount=round_money(subtotal + tax_amount + shipping_amount - discount),
            shipping_quote=quote,
            lines=lines,
        )


def get_pricing_engine(
    calculator: ShippingCalculator = Depends(get_shipping_calculator),
) -> OrderPricingEngine:
    return OrderPricingEngine(calculator)
