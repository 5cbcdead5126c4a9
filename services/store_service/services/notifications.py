"""Customer emails for order events."""

from libs.common.emails import (
    send_order_confirmation_email,
    send_shipping_notification_email,
)
from libs.common.logging import get_logger
from services.store_service.models import Order

logger = get_logger(__name__)


def _customer_name(order: Order) -> str:
    address = order.shipping_address or {}
    if address.get("full_name"):
        return address["full_name"]
    if order.customer_email:
        return order.customer_email.split("@")[0]
    return "there"


class OrderNotifier:
    """Sends order emails. Errors propagate; callers decide if they matter."""

    async def order_placed(self, order: Order) -> bool:
        if not order.customer_email:
            logger.warning(
                "Order %s has no customer email - confirmation skipped",
                order.order_number,
            )
            return False
        return await send_order_confirmation_email(
            to_email=order.customer_email,
            customer_name=_customer_name(order),
            order_number=order.order_number,
            items=[
                {
                    "name": item.product_snapshot.get("name", "Item"),
                    "quantity": item.quantity,
                    "price": item.unit_price,
                }
                for item in order.items
            ],
            subtotal=order.subtotal,
            tax=order.tax_amount,
            shipping=order.shipping_amount,
            discount=order.discount_amount,
            total=order.total_amount,
            shipping_address=order.shipping_address,
            payment_method=order.payment_method,
        )

    async def order_shipped(self, order: Order) -> bool:
        if not order.customer_email:
            return False
        return await send_shipping_notification_email(
            to_email=order.customer_email,
            customer_name=_customer_name(order),
            order_number=order.order_number,
            tracking_number=order.tracking_number,
            courier_partner=order.courier_partner,
        )


def get_order_notifier() -> OrderNotifier:
    return OrderNotifier()
