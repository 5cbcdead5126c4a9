"""Datetime utilities for timezone-aware timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    This replaces the deprecated datetime.utcnow() which returns naive datetimes.
    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


@lru_cache
def _store_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def store_now() -> datetime:
    """Return the current time in the store's configured timezone."""
    return datetime.now(_store_zone(get_settings().TIMEZONE))


def epoch_millis(moment: datetime | None = None) -> int:
    """Milliseconds since the Unix epoch."""
    return int((moment or utc_now()).timestamp() * 1000)
