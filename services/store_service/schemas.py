"""Pydantic schemas for store service."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from services.store_service.models import OrderStatus, PaymentStatus

# ============================================================================
# ADDRESS SCHEMAS
# ============================================================================


class ShippingAddress(BaseModel):
    """Canonical postal address, used for both shipping and billing.

    Required parts are checked by the shipping calculator so callers get the
    full list of problems instead of the first one.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address_line1: Optional[str] = Field(None, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field("", max_length=100)
    state: str = Field("", max_length=100)
    country: str = Field("", max_length=100)
    postal_code: str = Field("", max_length=20)


# ============================================================================
# SHIPPING SCHEMAS
# ============================================================================


class DeliveryDaysResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    min_days: int
    max_days: int


class ShippingZoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    countries: list[str]
    regions: list[str]
    base_rate: Decimal
    free_shipping_threshold: Decimal
    delivery_days: DeliveryDaysResponse
    is_active: bool
    domestic: bool


class ShippingCalculateRequest(BaseModel):
    address: ShippingAddress
    order_total: Decimal = Field(..., ge=0)


class DeliveryEstimateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    min_days: int
    max_days: int
    min_date: date
    max_date: date


class ShippingQuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    zone: ShippingZoneResponse
    base_rate: Decimal
    shipping_cost: Decimal
    is_free_shipping: bool
    free_shipping_threshold: Decimal
    amount_to_free_shipping: Decimal
    estimated_delivery: DeliveryEstimateResponse
    courier_partner: str


class ShippingInfoResponse(BaseModel):
    """Display-ready shipping summary."""

    model_config = ConfigDict(from_attributes=True)

    zone_id: str
    zone_name: str
    shipping_cost: Decimal
    is_free_shipping: bool
    free_shipping_threshold: Decimal
    amount_to_free_shipping: Decimal
    delivery_estimate: str  # "Jan 15, 2025 - Jan 18, 2025"
    courier_partner: str


class AddressValidationResponse(BaseModel):
    is_valid: bool
    errors: list[str] = []


class ServiceabilityResponse(BaseModel):
    serviceable: bool
    zone_id: str
    zone_name: str
    message: Optional[str] = None


class ShippingConfigResponse(BaseModel):
    """Public shipping constants for the storefront."""

    tax_rate: Decimal
    shipping_gst_rate: Decimal
    domestic_couriers: list[str]
    international_couriers: list[str]
    processing_days_min: int
    processing_days_max: int
    order_cutoff_time: str
    working_days: list[int]
    holidays: list[str]
    countries: dict[str, str]


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemCreate(BaseModel):
    product_id: uuid.UUID
    variant_id: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: Optional[str]
    quantity: int
    created_at: datetime
    updated_at: datetime

    # Enriched from product
    product_name: Optional[str] = None
    unit_price: Optional[Decimal] = None
    image: Optional[str] = None
    in_stock: bool = True


class CartResponse(BaseModel):
    items: list[CartItemResponse] = []
    item_count: int = 0
    subtotal: Decimal = Decimal("0")


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderLineItemRequest(BaseModel):
    product_id: uuid.UUID
    variant_id: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(..., ge=1)
    # Display hint from the client; never used for pricing
    price: Optional[Decimal] = None


class OrderCreateRequest(BaseModel):
    """Place an order. Presence checks happen in the workflow."""

    items: list[OrderLineItemRequest] = []
    shipping_address: Optional[ShippingAddress] = None
    billing_address: Optional[ShippingAddress] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    # Client-computed total; ignored
    total: Optional[Decimal] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: Optional[str]
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product_snapshot: dict
    created_at: datetime


class TrackingEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: str
    message: Optional[str]
    created_by: Optional[str]
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: str
    customer_email: Optional[str]

    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: str

    shipping_address: dict
    billing_address: Optional[dict]
    shipping_zone_id: Optional[str]
    courier_partner: Optional[str]
    tracking_number: Optional[str]

    gateway_order_id: Optional[str]
    gateway_payment_id: Optional[str]
    notes: Optional[str]

    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class OrderSummaryResponse(OrderResponse):
    item_count: int = 0


class OrderDetailResponse(OrderResponse):
    items: list[OrderItemResponse] = []
    tracking_history: list[TrackingEventResponse] = Field(
        default=[], validation_alias="tracking_events"
    )


class OrderCancelRequest(BaseModel):
    """Customer status change; only "cancelled" is accepted."""

    status: str


class OrderListResponse(BaseModel):
    """Paginated order list."""

    items: list[OrderSummaryResponse]
    total: int
    page: int
    page_size: int


class OrderStatusUpdate(BaseModel):
    """Update order status (admin/seller)."""

    status: OrderStatus
    message: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class TrackingUpdate(BaseModel):
    tracking_number: Optional[str] = Field(None, max_length=100)
    courier_partner: Optional[str] = Field(None, max_length=100)


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================


class CreatePaymentOrderRequest(BaseModel):
    amount: Decimal  # rupees
    currency: Optional[str] = Field(None, max_length=3)
    receipt: Optional[str] = Field(None, max_length=40)
    notes: dict[str, str] = {}
    # Store order to attach the gateway order to
    order_id: Optional[uuid.UUID] = None


class CreatePaymentOrderResponse(BaseModel):
    order_id: str  # gateway order id
    amount: int  # paise
    currency: str
    receipt: str
    key_id: str


class VerifyPaymentRequest(BaseModel):
    gateway_order_id: str = Field(
        ..., validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id")
    )
    payment_id: str = Field(
        ..., validation_alias=AliasChoices("payment_id", "razorpay_payment_id")
    )
    signature: str = Field(
        ..., validation_alias=AliasChoices("signature", "razorpay_signature")
    )


class PaymentDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: Optional[str]
    status: str
    amount: Decimal  # rupees
    currency: str
    method: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None


class VerifyPaymentResponse(PaymentDetailsResponse):
    verified: bool = True
    store_order_id: Optional[uuid.UUID] = None


class RefundRequest(BaseModel):
    payment_id: str
    amount: Optional[Decimal] = Field(None, gt=0)  # rupees; full refund when omitted
    notes: dict[str, str] = {}


class RefundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    refund_id: str
    payment_id: str
    amount: Decimal
    status: str


class WebhookAck(BaseModel):
    received: bool = True
