"""
Store email package.

Modules:
- core: Base send_email function (SMTP)
- store: Order confirmation and shipping notification templates
"""

from libs.common.emails.core import send_email
from libs.common.emails.store import (
    send_order_confirmation_email,
    send_shipping_notification_email,
)

__all__ = [
    "send_email",
    "send_order_confirmation_email",
    "send_shipping_notification_email",
]
