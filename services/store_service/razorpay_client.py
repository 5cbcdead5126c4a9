"""
Razorpay API client for orders, payments and refunds.

Provides async methods for:
- Creating gateway orders before checkout
- Fetching a payment by id
- Refunding a captured payment

All amounts on the wire are in paise.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


@dataclass
class GatewayOrder:
    """Razorpay order created ahead of payment."""

    id: str
    amount: int  # in paise
    currency: str
    receipt: str
    status: str


@dataclass
class GatewayPayment:
    """Razorpay payment as returned by the fetch API."""

    id: str
    order_id: Optional[str]
    status: str  # created, authorized, captured, refunded, failed
    amount: int  # in paise
    currency: str
    method: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None


@dataclass
class GatewayRefund:
    """Result of a refund request."""

    id: str
    payment_id: str
    amount: int  # in paise
    status: str


class RazorpayError(Exception):
    """Base exception for Razorpay API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class RazorpayClient:
    """Async client for the Razorpay Orders, Payments and Refunds APIs."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.key_id = key_id
        self._auth = (key_id, key_secret)
        self.base_url = (base_url or get_settings().RAZORPAY_BASE_URL).rstrip("/")
        self.timeout = timeout

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
    ) -> dict:
        """Make an authenticated request to the Razorpay API."""
        url = f"{self.base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    auth=self._auth,
                    json=json_data,
                )
        except httpx.HTTPError as exc:
            logger.error("Razorpay request %s %s failed: %s", method, endpoint, exc)
            raise RazorpayError(f"Could not reach Razorpay: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error = data.get("error") or {}
            logger.error(
                "Razorpay API error: %s - %s", response.status_code, error or data
            )
            raise RazorpayError(
                message=error.get("description", "Unknown Razorpay error"),
                status_code=response.status_code,
                response_data=data,
            )

        return data

    # =========================================================================
    # Orders
    # =========================================================================

    async def create_order(
        self,
        amount_paise: int,
        currency: str,
        receipt: str,
        notes: Optional[dict] = None,
    ) -> GatewayOrder:
        """
        Create a gateway order the checkout widget will be opened against.

        Args:
            amount_paise: Amount in paise (rupees * 100)
            currency: ISO currency code, e.g. INR
            receipt: Merchant receipt reference (max 40 chars)
            notes: Free-form key/value notes stored on the order
        """
        data = await self._request(
            "POST",
            "/orders",
            json_data={
                "amount": amount_paise,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )
        return GatewayOrder(
            id=data["id"],
            amount=data.get("amount", amount_paise),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status", "created"),
        )

    # =========================================================================
    # Payments
    # =========================================================================

    async def fetch_payment(self, payment_id: str) -> GatewayPayment:
        data = await self._request("GET", f"/payments/{payment_id}")
        return GatewayPayment(
            id=data.get("id", payment_id),
            order_id=data.get("order_id"),
            status=data.get("status", ""),
            amount=data.get("amount", 0),
            currency=data.get("currency", "INR"),
            method=data.get("method"),
            email=data.get("email"),
            contact=data.get("contact"),
        )

    async def refund(
        self,
        payment_id: str,
        amount_paise: Optional[int] = None,
        notes: Optional[dict] = None,
    ) -> GatewayRefund:
        """
        Refund a captured payment, fully when no amount is given.
        """
        payload = {"notes": notes or {}}
        if amount_paise is not None:
            payload["amount"] = amount_paise

        data = await self._request(
            "POST", f"/payments/{payment_id}/refund", json_data=payload
        )
        return GatewayRefund(
            id=data["id"],
            payment_id=data.get("payment_id", payment_id),
            amount=data.get("amount", amount_paise or 0),
            status=data.get("status", "pending"),
        )


def get_razorpay_client() -> RazorpayClient:
    """Build a client from settings. Callers check credentials first."""
    settings = get_settings()
    return RazorpayClient(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_BASE_URL,
    )
