"""Store Service models package."""

from services.store_service.models.catalog import Product
from services.store_service.models.commerce import (
    CartItem,
    Order,
    OrderItem,
    OrderTrackingEvent,
)
from services.store_service.models.enums import (
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    PaymentStatus,
)

__all__ = [
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderTrackingEvent",
    "PaymentStatus",
    "Product",
    "TERMINAL_ORDER_STATUSES",
]
