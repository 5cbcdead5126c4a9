"""Delivery window estimation on the business-day calendar."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from libs.common.datetime_utils import store_now
from services.store_service.shipping_config import ShippingConfig, ShippingZone

# Longest run of non-business days tolerated before giving up.
MAX_CONSECUTIVE_CLOSED_DAYS = 366


@dataclass(frozen=True)
class DeliveryEstimate:
    min_days: int
    max_days: int
    min_date: date
    max_date: date


class DeliveryEstimator:
    def __init__(self, config: ShippingConfig):
        self.config = config

    def is_business_day(self, day: date) -> bool:
        return (
            day.isoweekday() in self.config.working_days
            and day.isoformat() not in self.config.holidays
        )

    def add_business_days(self, start: date, days: int) -> date:
        """Walk forward from ``start`` until ``days`` business days have passed.

        The start day itself never counts.
        """
        current = start
        added = 0
        closed_run = 0
        while added < days:
            current += timedelta(days=1)
            if self.is_business_day(current):
                added += 1
                closed_run = 0
            else:
                closed_run += 1
                if closed_run > MAX_CONSECUTIVE_CLOSED_DAYS:
                    raise ValueError(
                        "Delivery calendar has no business days; "
                        "check working days and holidays"
                    )
        return current

    def processing_days(self, now: datetime) -> int:
        days = self.config.processing_days_min
        if now.hour >= self.config.cutoff_hour:
            days += 1
        return days

    def estimate(
        self, zone: ShippingZone, now: Optional[datetime] = None
    ) -> DeliveryEstimate:
        now = now or store_now()
        processing = self.processing_days(now)
        today = now.date()
        return DeliveryEstimate(
            min_days=zone.delivery_days.min_days,
            max_days=zone.delivery_days.max_days,
            min_date=self.add_business_days(
                today, processing + zone.delivery_days.min_days
            ),
            max_date=self.add_business_days(
                today, processing + zone.delivery_days.max_days
            ),
        )


def format_display_date(value: date) -> str:
    """Format like "Jan 15, 2025"."""
    return f"{value:%b} {value.day}, {value.year}"
