"""In-process stand-ins for the payment gateway and the order mailer."""

from typing import Optional

from services.store_service.razorpay_client import (
    GatewayOrder,
    GatewayPayment,
    GatewayRefund,
    RazorpayError,
)


class FakeRazorpay:
    """Records every call; payments are seeded per test."""

    def __init__(self):
        self.key_id = "rzp_test_key"
        self.payments: dict[str, GatewayPayment] = {}
        self.created_orders: list[dict] = []
        self.fetch_calls: list[str] = []
        self.refund_calls: list[tuple] = []
        self.fail_with: Optional[RazorpayError] = None

    def add_payment(
        self,
        payment_id: str,
        order_id: str,
        status: str = "captured",
        amount: int = 150000,
    ) -> GatewayPayment:
        payment = GatewayPayment(
            id=payment_id,
            order_id=order_id,
            status=status,
            amount=amount,
            currency="INR",
            method="upi",
            email="buyer@kashmirattar.in",
            contact="+919876543210",
        )
        self.payments[payment_id] = payment
        return payment

    async def create_order(self, amount_paise, currency, receipt, notes=None):
        if self.fail_with:
            raise self.fail_with
        self.created_orders.append(
            {
                "amount": amount_paise,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            }
        )
        return GatewayOrder(
            id=f"order_test{len(self.created_orders)}",
            amount=amount_paise,
            currency=currency,
            receipt=receipt,
            status="created",
        )

    async def fetch_payment(self, payment_id):
        self.fetch_calls.append(payment_id)
        if payment_id not in self.payments:
            raise RazorpayError("The id provided does not exist", status_code=400)
        return self.payments[payment_id]

    async def refund(self, payment_id, amount_paise=None, notes=None):
        self.refund_calls.append((payment_id, amount_paise, notes))
        payment = self.payments.get(payment_id)
        return GatewayRefund(
            id=f"rfnd_{payment_id}",
            payment_id=payment_id,
            amount=amount_paise if amount_paise is not None else payment.amount,
            status="processed",
        )


class RecordingNotifier:
    def __init__(self):
        self.placed: list[str] = []
        self.shipped: list[str] = []

    async def order_placed(self, order) -> bool:
        self.placed.append(order.order_number)
        return True

    async def order_shipped(self, order) -> bool:
        self.shipped.append(order.order_number)
        return True


class FailingNotifier(RecordingNotifier):
    async def order_placed(self, order) -> bool:
        raise ConnectionRefusedError("SMTP relay unreachable")

    async def order_shipped(self, order) -> bool:
        raise ConnectionRefusedError("SMTP relay unreachable")
