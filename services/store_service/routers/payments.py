"""Razorpay payment router: gateway orders, verification, refunds, webhooks."""

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import paise_to_rupees
from libs.common.rate_limit import payment_limit
from libs.db.session import get_async_db
from services.store_service.razorpay_client import GatewayPayment
from services.store_service.schemas import (
    CreatePaymentOrderRequest,
    CreatePaymentOrderResponse,
    PaymentDetailsResponse,
    RefundRequest,
    RefundResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookAck,
)
from services.store_service.services.payment_verifier import (
    PaymentVerifier,
    get_payment_verifier,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payment", tags=["payments"])

WEBHOOK_SIGNATURE_HEADER = "x-razorpay-signature"


def _payment_details(payment: GatewayPayment) -> dict:
    return {
        "id": payment.id,
        "order_id": payment.order_id,
        "status": payment.status,
        "amount": paise_to_rupees(payment.amount),
        "currency": payment.currency,
        "method": payment.method,
        "email": payment.email,
        "contact": payment.contact,
    }


@router.post("/create-order", response_model=CreatePaymentOrderResponse)
@payment_limit
async def create_payment_order(
    request: Request,
    payload: CreatePaymentOrderRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    """Create a Razorpay order for the checkout widget. Amount is in rupees."""
    gateway_order = await verifier.create_gateway_order(
        db,
        user=current_user,
        amount=payload.amount,
        currency=payload.currency,
        receipt=payload.receipt,
        notes=payload.notes,
        order_id=payload.order_id,
    )
    return CreatePaymentOrderResponse(
        order_id=gateway_order.id,
        amount=gateway_order.amount,
        currency=gateway_order.currency,
        receipt=gateway_order.receipt,
        key_id=get_settings().RAZORPAY_KEY_ID,
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
@payment_limit
async def verify_payment(
    request: Request,
    payload: VerifyPaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    """Check the checkout signature, confirm capture and mark the order paid."""
    verified = await verifier.verify_payment(
        db,
        user=current_user,
        gateway_order_id=payload.gateway_order_id,
        payment_id=payload.payment_id,
        signature=payload.signature,
    )
    return VerifyPaymentResponse(
        **_payment_details(verified.payment),
        verified=True,
        store_order_id=verified.order.id if verified.order else None,
    )


@router.get("/payments/{payment_id}", response_model=PaymentDetailsResponse)
async def get_payment(
    payment_id: str,
    current_user: AuthUser = Depends(get_current_user),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    payment = await verifier.fetch_payment(payment_id)
    return PaymentDetailsResponse(**_payment_details(payment))


@router.post("/refund", response_model=RefundResponse)
@payment_limit
async def refund_payment(
    request: Request,
    payload: RefundRequest,
    current_user: AuthUser = Depends(require_admin),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    """Refund a captured payment (admin). Omit amount for a full refund."""
    refund = await verifier.refund(payload.payment_id, payload.amount, payload.notes)
    return RefundResponse(
        refund_id=refund.id,
        payment_id=refund.payment_id,
        amount=paise_to_rupees(refund.amount),
        status=refund.status,
    )


@router.post("/webhook", response_model=WebhookAck)
async def razorpay_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    """
    Razorpay webhook endpoint (no auth; verified by x-razorpay-signature).

    Always acknowledged once the signature checks out.
    """
    raw = await request.body()
    signature = request.headers.get(WEBHOOK_SIGNATURE_HEADER)
    await verifier.handle_webhook(db, raw, signature)
    return WebhookAck(received=True)
