"""Gateway order issuance, payment verification and webhook handling.

Signatures are HMAC-SHA256 hex digests. They are always compared with
``hmac.compare_digest`` over bytes so the comparison time does not reveal
where (or whether) a forged signature diverges.
"""

import hashlib
import hmac
import json
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from fastapi import Depends
from libs.auth.models import AuthUser
from libs.common.config import Settings, get_settings
from libs.common.currency import format_inr, rupees_to_paise, to_decimal
from libs.common.datetime_utils import epoch_millis
from libs.common.errors import (
    ConfigurationError,
    InvalidRequestError,
    InvalidSignatureError,
    PaymentGatewayError,
    PaymentNotCapturedError,
)
from libs.common.logging import get_logger
from services.store_service.models import Order, OrderStatus, PaymentStatus
from services.store_service.razorpay_client import (
    GatewayOrder,
    GatewayPayment,
    GatewayRefund,
    RazorpayClient,
    RazorpayError,
    get_razorpay_client,
)
from services.store_service.services.order_placement import (
    get_order,
    record_tracking_event,
)
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CAPTURED = "captured"
RECEIPT_MAX_LENGTH = 40  # gateway limit


def compute_signature(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signatures_match(expected: str, provided: Optional[str]) -> bool:
    """Constant-time comparison; a length mismatch is not short-circuited."""
    return hmac.compare_digest(
        expected.encode("utf-8"), (provided or "").encode("utf-8")
    )


def verify_payment_signature(
    gateway_order_id: str, payment_id: str, signature: str, secret: str
) -> bool:
    message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
    return signatures_match(compute_signature(secret, message), signature)


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    if not signature:
        return False
    return signatures_match(compute_signature(secret, raw_body), signature)


def amount_matches(order: Order, amount_paise: Optional[int]) -> bool:
    """True when the gateway amount equals the order total in paise."""
    expected_paise = rupees_to_paise(order.total_amount)
    if amount_paise is not None and int(amount_paise) == expected_paise:
        return True
    logger.warning(
        "Payment amount mismatch for order %s: got %s, expected %d paise",
        order.order_number,
        amount_paise,
        expected_paise,
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "amount_paise": amount_paise,
                "expected_paise": expected_paise,
            }
        },
    )
    return False


@dataclass
class VerifiedPayment:
    payment: GatewayPayment
    order: Optional[Order] = None


class PaymentVerifier:
    def __init__(self, gateway: RazorpayClient, settings: Settings):
        self.gateway = gateway
        self.settings = settings

    def _require_credentials(self) -> None:
        if not self.settings.razorpay_configured:
            logger.error("Razorpay credentials not configured")
            raise ConfigurationError(
                "Payment service is not configured. Please contact support."
            )

    # ------------------------------------------------------------------
    # Gateway orders
    # ------------------------------------------------------------------

    async def create_gateway_order(
        self,
        db: AsyncSession,
        *,
        user: AuthUser,
        amount: Decimal,
        currency: Optional[str] = None,
        receipt: Optional[str] = None,
        notes: Optional[dict] = None,
        order_id: Optional[uuid.UUID] = None,
    ) -> GatewayOrder:
        amount = to_decimal(amount)
        amount_paise = rupees_to_paise(amount)
        if amount_paise <= 0:
            raise InvalidRequestError("Invalid amount. Amount must be greater than 0")
        if amount > self.settings.PAYMENT_MAX_AMOUNT:
            raise InvalidRequestError(
                f"Amount exceeds maximum limit of {format_inr(self.settings.PAYMENT_MAX_AMOUNT)}"
            )
        self._require_credentials()

        store_order = None
        if order_id is not None:
            store_order = await get_order(db, order_id, user_id=user.user_id)
            expected_paise = rupees_to_paise(store_order.total_amount)
            if amount_paise != expected_paise:
                logger.warning(
                    "Amount mismatch for order %s: got %d, expected %d paise",
                    store_order.order_number,
                    amount_paise,
                    expected_paise,
                )
                raise InvalidRequestError(
                    "Amount does not match the order total",
                    details={
                        "amount": str(amount),
                        "order_total": str(store_order.total_amount),
                    },
                )
            if store_order.payment_status == PaymentStatus.PAID:
                raise InvalidRequestError("Order is already paid")

        if not receipt:
            receipt = (
                store_order.order_number
                if store_order
                else f"receipt_{user.user_id[:12]}_{epoch_millis()}"
            )
        gateway_notes = {**(notes or {}), "user_id": user.user_id}
        if store_order:
            gateway_notes["store_order_id"] = str(store_order.id)

        try:
            gateway_order = await self.gateway.create_order(
                amount_paise=amount_paise,
                currency=currency or self.settings.DEFAULT_CURRENCY,
                receipt=receipt[:RECEIPT_MAX_LENGTH],
                notes=gateway_notes,
            )
        except RazorpayError as exc:
            logger.error(
                "Razorpay order creation failed for user %s: %s", user.user_id, exc
            )
            raise PaymentGatewayError(
                exc.message or "Failed to create payment order"
            ) from exc

        if store_order:
            store_order.gateway_order_id = gateway_order.id
            await db.commit()

        logger.info(
            "Gateway order %s created for user %s (amount=%d paise)",
            gateway_order.id,
            user.user_id,
            gateway_order.amount,
        )
        return gateway_order

    # ------------------------------------------------------------------
    # Client-side verification
    # ------------------------------------------------------------------

    async def verify_payment(
        self,
        db: AsyncSession,
        *,
        user: AuthUser,
        gateway_order_id: str,
        payment_id: str,
        signature: str,
    ) -> VerifiedPayment:
        if not gateway_order_id or not payment_id or not signature:
            raise InvalidRequestError("Missing payment verification parameters")
        self._require_credentials()

        if not verify_payment_signature(
            gateway_order_id, payment_id, signature, self.settings.RAZORPAY_KEY_SECRET
        ):
            logger.warning(
                "Invalid payment signature from user %s for gateway order %s",
                user.user_id,
                gateway_order_id,
            )
            raise InvalidSignatureError(
                "Invalid payment signature. Payment verification failed."
            )

        payment = await self.fetch_payment(payment_id)
        if payment.status != CAPTURED:
            logger.warning(
                "Payment %s not captured (status=%s)", payment_id, payment.status
            )
            raise PaymentNotCapturedError("Payment not captured. Please try again.")

        # The gateway already holds the money; a failed write is logged, not raised
        order = None
        try:
            order = await self._mark_order_paid(
                db, user=user, gateway_order_id=gateway_order_id, payment=payment
            )
        except Exception:
            await db.rollback()
            logger.error(
                "Failed to reconcile payment %s for gateway order %s",
                payment_id,
                gateway_order_id,
                exc_info=True,
            )

        return VerifiedPayment(payment=payment, order=order)

    async def _mark_order_paid(
        self,
        db: AsyncSession,
        *,
        user: AuthUser,
        gateway_order_id: str,
        payment: GatewayPayment,
    ) -> Optional[Order]:
        payment_id = payment.id
        result = await db.execute(
            select(Order).where(
                Order.gateway_order_id == gateway_order_id,
                Order.user_id == user.user_id,
            )
        )
        order = result.scalars().first()
        if order is None:
            # Gateway order created without a store order attached
            result = await db.execute(
                select(Order)
                .where(
                    Order.user_id == user.user_id,
                    Order.status == OrderStatus.PENDING,
                    Order.payment_status == PaymentStatus.PENDING,
                )
                .order_by(Order.created_at.desc())
                .limit(1)
            )
            order = result.scalar_one_or_none()
        if order is None:
            logger.warning(
                "No pending order found for verified payment %s (user %s)",
                payment_id,
                user.user_id,
            )
            return None

        if (
            order.payment_status == PaymentStatus.PAID
            and order.gateway_payment_id == payment_id
        ):
            logger.info("Payment %s already applied to %s", payment_id, order.order_number)
            return order
        if not amount_matches(order, payment.amount):
            return None

        order.payment_status = PaymentStatus.PAID
        order.gateway_order_id = gateway_order_id
        order.gateway_payment_id = payment_id
        record_tracking_event(
            db, order, order.status.value, "Payment received", user.user_id
        )
        await db.commit()

        logger.info("Order %s marked paid (payment %s)", order.order_number, payment_id)
        return order

    # ------------------------------------------------------------------
    # Lookups and refunds
    # ------------------------------------------------------------------

    async def fetch_payment(self, payment_id: str) -> GatewayPayment:
        if not payment_id:
            raise InvalidRequestError("Payment ID is required")
        self._require_credentials()
        try:
            return await self.gateway.fetch_payment(payment_id)
        except RazorpayError as exc:
            raise PaymentGatewayError(
                exc.message or "Failed to fetch payment details"
            ) from exc

    async def refund(
        self,
        payment_id: str,
        amount: Optional[Decimal] = None,
        notes: Optional[dict] = None,
    ) -> GatewayRefund:
        if not payment_id:
            raise InvalidRequestError("Payment ID is required")
        self._require_credentials()
        amount_paise = rupees_to_paise(amount) if amount is not None else None
        try:
            refund = await self.gateway.refund(payment_id, amount_paise, notes)
        except RazorpayError as exc:
            raise PaymentGatewayError(exc.message or "Failed to process refund") from exc

        logger.info(
            "Refund %s created for payment %s (amount=%s paise)",
            refund.id,
            payment_id,
            refund.amount,
        )
        return refund

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def check_webhook_signature(self, raw_body: bytes, signature: Optional[str]) -> None:
        secret = self.settings.RAZORPAY_WEBHOOK_SECRET
        if not secret:
            logger.error("Razorpay webhook secret not configured")
            raise ConfigurationError("Webhook secret is not configured")
        if not verify_webhook_signature(raw_body, signature, secret):
            logger.warning("Invalid webhook signature detected")
            raise InvalidSignatureError("Invalid webhook signature", status_code=401)

    async def handle_webhook(
        self, db: AsyncSession, raw_body: bytes, signature: Optional[str]
    ) -> None:
        """Verify and apply a webhook event.

        Only a bad signature (or missing secret) raises. Anything that goes
        wrong after that is logged so the gateway does not keep retrying.
        """
        self.check_webhook_signature(raw_body, signature)

        try:
            payload = json.loads(raw_body.decode("utf-8") or "{}")
            await self._apply_event(db, payload)
        except Exception:
            await db.rollback()
            logger.error("Webhook processing failed", exc_info=True)

    async def _apply_event(self, db: AsyncSession, payload: dict) -> None:
        event = payload.get("event")
        body = payload.get("payload") or {}
        payment = (body.get("payment") or {}).get("entity") or {}
        refund = (body.get("refund") or {}).get("entity") or {}

        logger.info(
            "Razorpay webhook received: %s",
            event,
            extra={"extra_fields": {"event": event, "payment_id": payment.get("id")}},
        )

        if event == "payment.authorized":
            order = await self._find_order(db, payment.get("id"), payment.get("order_id"))
            if order and not order.gateway_payment_id:
                order.gateway_payment_id = payment.get("id")
                await db.commit()
        elif event == "payment.captured":
            order = await self._find_order(db, payment.get("id"), payment.get("order_id"))
            if (
                order
                and order.payment_status != PaymentStatus.PAID
                and amount_matches(order, payment.get("amount"))
            ):
                order.payment_status = PaymentStatus.PAID
                order.gateway_payment_id = payment.get("id")
                record_tracking_event(db, order, order.status.value, "Payment captured")
                await db.commit()
        elif event == "payment.failed":
            logger.info(
                "Payment %s failed: %s", payment.get("id"), payment.get("error_reason")
            )
            order = await self._find_order(db, payment.get("id"), payment.get("order_id"))
            if order and order.payment_status == PaymentStatus.PENDING:
                order.payment_status = PaymentStatus.FAILED
                order.gateway_payment_id = order.gateway_payment_id or payment.get("id")
                await db.commit()
        elif event == "refund.created":
            order = await self._find_order(db, refund.get("payment_id"), None)
            if order and order.payment_status != PaymentStatus.REFUNDED:
                order.payment_status = PaymentStatus.REFUNDED
                record_tracking_event(
                    db, order, order.status.value, f"Refund {refund.get('id')} created"
                )
                await db.commit()
        else:
            logger.info("Unhandled webhook event: %s", event)
            return

        if order is None:
            logger.warning("Webhook %s did not match any order", event)

    async def _find_order(
        self,
        db: AsyncSession,
        payment_id: Optional[str],
        gateway_order_id: Optional[str],
    ) -> Optional[Order]:
        conditions = []
        if payment_id:
            conditions.append(Order.gateway_payment_id == payment_id)
        if gateway_order_id:
            conditions.append(Order.gateway_order_id == gateway_order_id)
        if not conditions:
            return None
        result = await db.execute(
            select(Order).where(or_(*conditions)).order_by(Order.created_at.desc())
        )
        return result.scalars().first()


def get_payment_gateway() -> RazorpayClient:
    return get_razorpay_client()


def get_payment_verifier(
    gateway: RazorpayClient = Depends(get_payment_gateway),
) -> PaymentVerifier:
    return PaymentVerifier(gateway, get_settings())
