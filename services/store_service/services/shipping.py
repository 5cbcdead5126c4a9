"""Shipping quotes, zone lookup and address checks."""

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import Depends
from libs.common.currency import round_money, to_decimal
from services.store_service.services.delivery import (
    DeliveryEstimate,
    DeliveryEstimator,
    format_display_date,
)
from services.store_service.services.zones import AddressLike, detect_zone
from services.store_service.shipping_config import (
    ShippingConfig,
    ShippingZone,
    get_shipping_config,
)

INDIAN_PIN_CODE = re.compile(r"^\d{6}$")
UNSERVICEABLE_MESSAGE = "Sorry, we do not ship to this location yet."


@dataclass(frozen=True)
class ShippingQuote:
    zone: ShippingZone
    base_rate: Decimal
    shipping_cost: Decimal
    is_free_shipping: bool
    free_shipping_threshold: Decimal
    amount_to_free_shipping: Decimal
    estimated_delivery: DeliveryEstimate
    courier_partner: str


@dataclass(frozen=True)
class AddressValidation:
    is_valid: bool
    errors: list[str]


@dataclass(frozen=True)
class ShippingInfo:
    zone_id: str
    zone_name: str
    shipping_cost: Decimal
    is_free_shipping: bool
    free_shipping_threshold: Decimal
    amount_to_free_shipping: Decimal
    delivery_estimate: str
    courier_partner: str


class ShippingCalculator:
    def __init__(self, config: ShippingConfig):
        self.config = config
        self.estimator = DeliveryEstimator(config)

    def detect_zone(self, address: AddressLike) -> ShippingZone:
        return detect_zone(address, self.config)

    def select_courier(self, zone: ShippingZone) -> str:
        if zone.domestic:
            return self.config.domestic_couriers[0]
        return self.config.international_couriers[0]

    def calculate(
        self,
        address: AddressLike,
        order_total: Decimal,
        now: Optional[datetime] = None,
    ) -> ShippingQuote:
        zone = self.detect_zone(address)
        order_total = to_decimal(order_total)
        is_free = order_total >= zone.free_shipping_threshold
        return ShippingQuote(
            zone=zone,
            base_rate=zone.base_rate,
            shipping_cost=Decimal("0") if is_free else round_money(zone.base_rate),
            is_free_shipping=is_free,
            free_shipping_threshold=zone.free_shipping_threshold,
            amount_to_free_shipping=round_money(
                max(Decimal("0"), zone.free_shipping_threshold - order_total)
            ),
            estimated_delivery=self.estimator.estimate(zone, now),
            courier_partner=self.select_courier(zone),
        )

    def list_zones(self) -> list[ShippingZone]:
        return [zone for zone in self.config.zones if zone.is_active]

    def get_zone(self, zone_id: str) -> Optional[ShippingZone]:
        return self.config.zone(zone_id)

    def validate_address(self, address) -> AddressValidation:
        errors = []
        if not (address.city or "").strip():
            errors.append("City is required")
        if not (address.state or "").strip():
            errors.append("State is required")
        if not (address.country or "").strip():
            errors.append("Country is required")

        postal_code = (address.postal_code or "").strip()
        if not postal_code:
            errors.append("Postal code is required")
        elif self.config.is_home_country(address.country) and not INDIAN_PIN_CODE.match(
            postal_code
        ):
            errors.append("Invalid Indian PIN code. Must be 6 digits.")

        return AddressValidation(is_valid=not errors, errors=errors)

    def is_serviceable(self, address: AddressLike) -> bool:
        return self.detect_zone(address).is_active

    def shipping_info(
        self,
        address: AddressLike,
        order_total: Decimal,
        now: Optional[datetime] = None,
    ) -> ShippingInfo:
        quote = self.calculate(address, order_total, now)
        delivery = quote.estimated_delivery
        return ShippingInfo(
            zone_id=quote.zone.id,
            zone_name=quote.zone.name,
            shipping_cost=quote.shipping_cost,
            is_free_shipping=quote.is_free_shipping,
            free_shipping_threshold=quote.free_shipping_threshold,
            amount_to_free_shipping=quote.amount_to_free_shipping,
            delivery_estimate=(
                f"{format_display_date(delivery.min_date)} - "
                f"{format_display_date(delivery.max_date)}"
            ),
            courier_partner=quote.courier_partner,
        )


def get_shipping_calculator(
    config: ShippingConfig = Depends(get_shipping_config),
) -> ShippingCalculator:
    return ShippingCalculator(config)
