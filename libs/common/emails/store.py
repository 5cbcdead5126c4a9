"""
Store-related email templates.
"""

from decimal import Decimal
from html import escape
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import format_inr
from libs.common.emails.core import send_email


def format_address(address: Optional[dict]) -> str:
    """Render a stored address as a single comma separated line."""
    if not address:
        return ""
    parts = [
        address.get("full_name"),
        address.get("address_line1"),
        address.get("address_line2"),
        address.get("city"),
        address.get("state"),
        address.get("postal_code"),
        address.get("country"),
    ]
    return ", ".join(p for p in parts if p)


async def send_order_confirmation_email(
    to_email: str,
    customer_name: str,
    order_number: str,
    items: list[dict],  # [{"name": str, "quantity": int, "price": Decimal}]
    subtotal: Decimal,
    tax: Decimal,
    shipping: Decimal,
    discount: Decimal,
    total: Decimal,
    shipping_address: dict,
    payment_method: str,
) -> bool:
    """
    Send order confirmation email right after an order is placed.
    """
    settings = get_settings()
    subject = f"Order Confirmation - {order_number}"
    address_line = format_address(shipping_address)

    items_text = "\n".join(
        f"  - {item['name']} x{item['quantity']} - {format_inr(item['price'])}"
        for item in items
    )
    items_html = "".join(
        f"<tr><td>{escape(str(item['name']))}</td>"
        f"<td style='text-align:center'>{item['quantity']}</td>"
        f"<td style='text-align:right'>{format_inr(item['price'])}</td></tr>"
        for item in items
    )

    body = f"""Hi {customer_name},

Thank you for your order! We have received it and will start preparing it right away.

Order {order_number}

Items:
{items_text}

Subtotal: {format_inr(subtotal)}
Shipping: {"FREE" if shipping == 0 else format_inr(shipping)}
GST: {format_inr(tax)}
{f"Discount: -{format_inr(discount)}" if discount > 0 else ""}
Total: {format_inr(total)}

Shipping to: {address_line}
Payment method: {payment_method}

Track your order at {settings.FRONTEND_URL}/orders

— The {settings.DEFAULT_FROM_NAME} Team
"""

    html_body = f"""
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: linear-gradient(135deg, #7c2d12 0%, #b45309 100%); color: white; padding: 30px; border-radius: 12px 12px 0 0; }}
        .content {{ background: #fffbeb; padding: 30px; border-radius: 0 0 12px 12px; }}
        .order-box {{ background: white; padding: 20px; border-radius: 8px; margin: 20px 0; }}
        table {{ width: 100%; border-collapse: collapse; }}
        th, td {{ padding: 10px; text-align: left; border-bottom: 1px solid #e2e8f0; }}
        .totals p {{ margin: 5px 0; display: flex; justify-content: space-between; }}
        .total-row {{ font-weight: bold; font-size: 18px; }}
        .footer {{ text-align: center; color: #64748b; font-size: 14px; margin-top: 20px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1 style="margin: 0;">Order Confirmed</h1>
            <p style="margin: 10px 0 0 0; opacity: 0.9;">Order {order_number}</p>
        </div>
        <div class="content">
            <p>Hi {escape(customer_name)},</p>
            <p>Thank you for your order! We have received it and will start preparing it right away.</p>
            <div class="order-box">
                <table>
                    <thead>
                        <tr><th>Item</th><th style="text-align:center">Qty</th><th style="text-align:right">Price</th></tr>
                    </thead>
                    <tbody>{items_html}</tbody>
                </table>
                <div class="totals">
                    <p><span>Subtotal</span><span>{format_inr(subtotal)}</span></p>
                    <p><span>Shipping</span><span>{"FREE" if shipping == 0 else format_inr(shipping)}</span></p>
                    <p><span>GST</span><span>{format_inr(tax)}</span></p>
                    {f"<p><span>Discount</span><span>-{format_inr(discount)}</span></p>" if discount > 0 else ""}
                    <p class="total-row"><span>Total</span><span>{format_inr(total)}</span></p>
                </div>
            </div>
            <p><strong>Shipping to</strong><br/>{escape(address_line)}</p>
            <p><strong>Payment method</strong><br/>{escape(payment_method)}</p>
            <div class="footer"><p>— The {escape(settings.DEFAULT_FROM_NAME)} Team</p></div>
        </div>
    </div>
</body>
</html>
"""

    return await send_email(to_email, subject, body, html_body)


async def send_shipping_notification_email(
    to_email: str,
    customer_name: str,
    order_number: str,
    tracking_number: Optional[str] = None,
    courier_partner: Optional[str] = None,
) -> bool:
    """
    Send notification when an order has been handed to the courier.
    """
    settings = get_settings()
    subject = f"Your Order {order_number} Has Shipped!"
    tracking_info = f"\nTracking Number: {tracking_number}" if tracking_number else ""
    courier_info = f"\nCourier: {courier_partner}" if courier_partner else ""

    body = f"""Hi {customer_name},

Great news! Your order {order_number} is on its way.{courier_info}{tracking_info}

Track your order at {settings.FRONTEND_URL}/orders

— The {settings.DEFAULT_FROM_NAME} Team
"""
    html_body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2>Your order has shipped</h2>
        <p>Hi {escape(customer_name)},</p>
        <p>Order <strong>{order_number}</strong> is on its way.</p>
        {f"<p><strong>Courier:</strong> {escape(courier_partner)}</p>" if courier_partner else ""}
        {f"<p><strong>Tracking Number:</strong> {escape(tracking_number)}</p>" if tracking_number else ""}
        <p style="color: #64748b;">— The {escape(settings.DEFAULT_FROM_NAME)} Team</p>
    </div>
</body>
</html>
"""
    return await send_email(to_email, subject, body, html_body)
