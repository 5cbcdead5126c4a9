"""Shipping zones, couriers and delivery calendar for the store.

The configuration is an immutable value built once at import time and handed
to the shipping and pricing services through ``get_shipping_config``, so
tests can swap in alternate zone tables with a dependency override.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

# ISO weekdays: Monday=1 ... Sunday=7
MONDAY_TO_SATURDAY = frozenset({1, 2, 3, 4, 5, 6})


@dataclass(frozen=True)
class DeliveryDays:
    min_days: int
    max_days: int

    def __post_init__(self):
        if self.min_days < 0 or self.max_days < self.min_days:
            raise ValueError(
                f"Invalid delivery window {self.min_days}-{self.max_days} days"
            )


@dataclass(frozen=True)
class ShippingZone:
    """A rate and delivery-time bucket keyed by country and region."""

    id: str
    name: str
    description: str
    countries: tuple[str, ...]
    base_rate: Decimal
    free_shipping_threshold: Decimal
    delivery_days: DeliveryDays
    regions: tuple[str, ...] = ()
    is_active: bool = True
    domestic: bool = False


@dataclass(frozen=True)
class ShippingConfig:
    zones: tuple[ShippingZone, ...]
    home_countries: frozenset[str]
    # Region-matched domestic zones, most specific first
    special_region_zone_ids: tuple[str, ...]
    default_domestic_zone_id: str
    default_international_zone_id: str

    tax_rate: Decimal = Decimal("0.18")
    shipping_gst_rate: Decimal = Decimal("0.05")  # informational only
    domestic_couriers: tuple[str, ...] = ("Blue Dart", "Delhivery", "DTDC")
    international_couriers: tuple[str, ...] = ("DHL", "FedEx", "Aramex")

    processing_days_min: int = 1
    processing_days_max: int = 2
    order_cutoff_time: str = "14:00"
    working_days: frozenset[int] = MONDAY_TO_SATURDAY
    holidays: frozenset[str] = frozenset()

    country_names: dict[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        ids = [zone.id for zone in self.zones]
        if len(ids) != len(set(ids)):
            raise ValueError("Shipping zone ids must be unique")

        domestic_default = self.zone(self.default_domestic_zone_id)
        international_default = self.zone(self.default_international_zone_id)
        if domestic_default is None or not domestic_default.domestic:
            raise ValueError(
                f"Default domestic zone '{self.default_domestic_zone_id}' is not configured"
            )
        if international_default is None or international_default.domestic:
            raise ValueError(
                f"Default international zone '{self.default_international_zone_id}' "
                "is not configured"
            )
        for zone_id in self.special_region_zone_ids:
            zone = self.zone(zone_id)
            if zone is None or not zone.domestic:
                raise ValueError(f"Special region zone '{zone_id}' is not domestic")

        if not self.working_days:
            raise ValueError("At least one working day is required")
        if not self.working_days <= frozenset(range(1, 8)):
            raise ValueError("Working days must be ISO weekdays (1-7)")
        if not self.domestic_couriers or not self.international_couriers:
            raise ValueError("Both domestic and international couriers are required")
        if self.processing_days_min < 0:
            raise ValueError("Processing days cannot be negative")
        if not 0 <= self.cutoff_hour <= 23:
            raise ValueError(f"Invalid order cut-off time '{self.order_cutoff_time}'")

    @property
    def cutoff_hour(self) -> int:
        return int(self.order_cutoff_time.split(":")[0])

    def zone(self, zone_id: str) -> Optional[ShippingZone]:
        for zone in self.zones:
            if zone.id == zone_id:
                return zone
        return None

    @property
    def default_domestic_zone(self) -> ShippingZone:
        return self.zone(self.default_domestic_zone_id)

    @property
    def default_international_zone(self) -> ShippingZone:
        return self.zone(self.default_international_zone_id)

    def is_home_country(self, country: Optional[str]) -> bool:
        return (country or "").strip().upper() in self.home_countries


# ============================================================================
# DEFAULT ZONE TABLE
# ============================================================================

SHIPPING_ZONES = (
    ShippingZone(
        id="kashmir",
        name="Kashmir & J&K",
        description="Jammu & Kashmir, Ladakh",
        countries=("IN",),
        regions=(
            "Jammu and Kashmir",
            "Jammu & Kashmir",
            "J&K",
            "Kashmir",
            "Ladakh",
        ),
        base_rate=Decimal("50"),
        free_shipping_threshold=Decimal("2000"),
        delivery_days=DeliveryDays(2, 3),
        domestic=True,
    ),
    ShippingZone(
        id="india-metro",
        name="India - Metro Cities",
        description="Delhi, Mumbai, Bangalore, Chennai, Kolkata, Hyderabad",
        countries=("IN",),
        regions=(
            "Delhi",
            "NCR",
            "Maharashtra",
            "Karnataka",
            "Tamil Nadu",
            "West Bengal",
            "Telangana",
        ),
        base_rate=Decimal("100"),
        free_shipping_threshold=Decimal("2000"),
        delivery_days=DeliveryDays(3, 5),
        domestic=True,
    ),
    ShippingZone(
        id="india-rest",
        name="Rest of India",
        description="All other Indian states and territories",
        countries=("IN",),
        base_rate=Decimal("100"),
        free_shipping_threshold=Decimal("2000"),
        delivery_days=DeliveryDays(5, 7),
        domestic=True,
    ),
    ShippingZone(
        id="international-gcc",
        name="GCC Countries",
        description="UAE, Saudi Arabia, Qatar, Kuwait, Bahrain, Oman",
        countries=("AE", "SA", "QA", "KW", "BH", "OM"),
        base_rate=Decimal("500"),
        free_shipping_threshold=Decimal("5000"),
        delivery_days=DeliveryDays(7, 10),
    ),
    ShippingZone(
        id="international-us-uk",
        name="USA & UK",
        description="United States and United Kingdom",
        countries=("US", "GB"),
        base_rate=Decimal("800"),
        free_shipping_threshold=Decimal("8000"),
        delivery_days=DeliveryDays(10, 14),
    ),
    ShippingZone(
        id="international-other",
        name="Other International",
        description="Canada, Australia, Europe, and other countries",
        countries=("CA", "AU", "NZ", "SG", "MY"),
        base_rate=Decimal("1000"),
        free_shipping_threshold=Decimal("10000"),
        delivery_days=DeliveryDays(10, 14),
    ),
)

NATIONAL_HOLIDAYS = frozenset(
    {
        "2025-01-26",  # Republic Day
        "2025-03-14",  # Holi
        "2025-08-15",  # Independence Day
        "2025-10-02",  # Gandhi Jayanti
        "2025-10-24",  # Diwali
        "2025-12-25",  # Christmas
        "2026-01-26",
        "2026-03-04",
        "2026-08-15",
        "2026-10-02",
        "2026-11-08",
        "2026-12-25",
    }
)

COUNTRY_NAMES = {
    "IN": "India",
    "AE": "United Arab Emirates",
    "SA": "Saudi Arabia",
    "QA": "Qatar",
    "KW": "Kuwait",
    "BH": "Bahrain",
    "OM": "Oman",
    "US": "United States",
    "GB": "United Kingdom",
    "CA": "Canada",
    "AU": "Australia",
    "NZ": "New Zealand",
    "SG": "Singapore",
    "MY": "Malaysia",
}

DEFAULT_SHIPPING_CONFIG = ShippingConfig(
    zones=SHIPPING_ZONES,
    home_countries=frozenset({"IN", "INDIA"}),
    special_region_zone_ids=("kashmir", "india-metro"),
    default_domestic_zone_id="india-rest",
    default_international_zone_id="international-other",
    holidays=NATIONAL_HOLIDAYS,
    country_names=COUNTRY_NAMES,
)


def get_shipping_config() -> ShippingConfig:
    """FastAPI dependency returning the active shipping configuration."""
    return DEFAULT_SHIPPING_CONFIG
