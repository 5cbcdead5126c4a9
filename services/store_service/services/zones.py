"""Shipping zone detection."""

from typing import Iterable, Protocol

from services.store_service.shipping_config import ShippingConfig, ShippingZone


class AddressLike(Protocol):
    country: str
    state: str


def region_matches(region: str, names: Iterable[str]) -> bool:
    """Case-insensitive substring match in either direction.

    "Srinagar, Jammu and Kashmir" matches "Kashmir" and "J&K" matches
    "Jammu & Kashmir (J&K)". An empty region matches nothing.
    """
    needle = (region or "").strip().lower()
    if not needle:
        return False
    for name in names:
        candidate = name.lower()
        if needle in candidate or candidate in needle:
            return True
    return False


def detect_zone(address: AddressLike, config: ShippingConfig) -> ShippingZone:
    """Resolve the single zone that serves an address.

    Home-country addresses go through the special-region zones in order and
    fall back to the default domestic zone. Other countries match the first
    international zone listing the country code, else the default
    international zone.
    """
    if config.is_home_country(address.country):
        for zone_id in config.special_region_zone_ids:
            zone = config.zone(zone_id)
            if region_matches(address.state, zone.regions):
                return zone
        return config.default_domestic_zone

    country_code = (address.country or "").strip().upper()
    if country_code:
        for zone in config.zones:
            if not zone.domestic and country_code in zone.countries:
                return zone
        return config.default_international_zone

    return config.default_domestic_zone
