"""Order placement and status transitions.

Order creation runs as one unit of work: the order row, its item snapshots,
the conditional stock decrements, the first tracking event and the cart
clear all commit together or not at all. The confirmation email goes out
after the commit and can never undo an order.
"""

import uuid
from typing import Optional

from libs.auth.models import ADMIN, SELLER, AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    StoreError,
)
from libs.common.logging import get_logger
from services.store_service.models import (
    TERMINAL_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    OrderTrackingEvent,
    PaymentStatus,
    Product,
)
from services.store_service.schemas import OrderCreateRequest
from services.store_service.services.inventory import (
    clear_cart,
    decrement_stock,
    restore_stock,
)
from services.store_service.services.notifications import OrderNotifier
from services.store_service.services.pricing import LineItem, OrderPricingEngine
from services.store_service.services.shipping import UNSERVICEABLE_MESSAGE
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

ORDER_NUMBER_ATTEMPTS = 5

# Stock goes back on the shelf only if the parcel never left.
RESTOCKABLE_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}
)
SELLER_STATUSES = frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED})
SORTABLE_COLUMNS = {
    "order_number": Order.order_number,
    "total_amount": Order.total_amount,
    "status": Order.status,
    "created_at": Order.created_at,
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def generate_unique_order_number(db: AsyncSession) -> str:
    """Draw order numbers until one is unused (the column is unique too)."""
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = Order.generate_order_number()
        existing = await db.execute(
            select(Order.id).where(Order.order_number == candidate)
        )
        if existing.scalar_one_or_none() is None:
            return candidate
        logger.warning("Order number collision on %s, retrying", candidate)
    raise StoreError("Could not allocate a unique order number")


def _seller_scope(seller_id: str):
    return Order.id.in_(
        select(OrderItem.order_id)
        .join(Product, Product.id == OrderItem.product_id)
        .where(Product.seller_id == seller_id)
    )


async def get_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    user_id: Optional[str] = None,
    seller_id: Optional[str] = None,
) -> Order:
    """Load an order with items and tracking history.

    ``user_id`` limits the lookup to the owner's orders and ``seller_id`` to
    orders containing the seller's products; anything else is NOT_FOUND.
    """
    query = (
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.tracking_events))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    if seller_id is not None:
        query = query.where(_seller_scope(seller_id))

    order = (await db.execute(query)).scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


async def get_order_for_actor(
    db: AsyncSession, actor: AuthUser, order_id: uuid.UUID
) -> Order:
    seller_id = actor.user_id if actor.role == SELLER else None
    return await get_order(db, order_id, seller_id=seller_id)


async def list_user_orders(db: AsyncSession, user_id: str) -> list[Order]:
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_orders(
    db: AsyncSession,
    *,
    actor: AuthUser,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """Filtered, paginated order listing for staff."""
    conditions = []
    if actor.role == SELLER:
        conditions.append(_seller_scope(actor.user_id))
    if status:
        conditions.append(Order.status == status)
    if payment_status:
        conditions.append(Order.payment_status == payment_status)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                Order.order_number.ilike(pattern),
                Order.customer_email.ilike(pattern),
            )
        )

    count_result = await db.execute(
        select(func.count()).select_from(Order).where(*conditions)
    )
    total = count_result.scalar_one()

    column = SORTABLE_COLUMNS.get(sort_by, Order.created_at)
    ordering = column.asc() if sort_order.lower() == "asc" else column.desc()
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(*conditions)
        .order_by(ordering)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


def record_tracking_event(
    db: AsyncSession,
    order: Order,
    status: str,
    message: Optional[str] = None,
    created_by: Optional[str] = None,
) -> OrderTrackingEvent:
    event = OrderTrackingEvent(
        order_id=order.id,
        status=status,
        message=message,
        created_by=created_by,
    )
    db.add(event)
    return event


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


def _validate_request(request: OrderCreateRequest, pricing: OrderPricingEngine) -> None:
    if not request.items:
        raise InvalidRequestError("Order must contain at least one item")
    if request.shipping_address is None:
        raise InvalidRequestError("Shipping address is required")
    if not (request.payment_method or "").strip():
        raise InvalidRequestError("Payment method is required")

    validation = pricing.calculator.validate_address(request.shipping_address)
    if not validation.is_valid:
        raise InvalidRequestError(
            "Invalid shipping address", details={"errors": validation.errors}
        )
    if not pricing.calculator.is_serviceable(request.shipping_address):
        raise InvalidRequestError(UNSERVICEABLE_MESSAGE)


async def place_order(
    db: AsyncSession,
    *,
    user: AuthUser,
    request: OrderCreateRequest,
    pricing: OrderPricingEngine,
    notifier: OrderNotifier,
) -> Order:
    """Validate, price and persist an order, then email the customer."""
    _validate_request(request, pricing)

    order_number = await generate_unique_order_number(db)
    priced = await pricing.price(
        db,
        [
            LineItem(
                product_id=item.product_id,
                quantity=item.quantity,
                variant_id=item.variant_id,
            )
            for item in request.items
        ],
        request.shipping_address,
    )
    quote = priced.shipping_quote

    try:
        order = Order(
            order_number=order_number,
            user_id=user.user_id,
            customer_email=user.email,
            subtotal=priced.subtotal,
            tax_amount=priced.tax_amount,
            shipping_amount=priced.shipping_amount,
            discount_amount=priced.discount_amount,
            total_amount=priced.total_amount,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=request.payment_method.strip(),
            shipping_address=request.shipping_address.model_dump(),
            billing_address=(
                request.billing_address.model_dump()
                if request.billing_address
                else None
            ),
            shipping_zone_id=quote.zone.id,
            courier_partner=quote.courier_partner,
            notes=request.notes,
        )
        db.add(order)
        await db.flush()

        for line in priced.lines:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=line.product.id,
                    variant_id=line.variant_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                    product_snapshot=line.product.snapshot(),
                )
            )
            await decrement_stock(db, line.product.id, line.quantity)

        record_tracking_event(
            db, order, OrderStatus.PENDING.value, "Order placed", user.user_id
        )
        await clear_cart(db, user.user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    order = await get_order(db, order.id)
    logger.info(
        "Order %s placed by %s (total=%s, zone=%s)",
        order.order_number,
        user.user_id,
        order.total_amount,
        order.shipping_zone_id,
    )

    try:
        await notifier.order_placed(order)
    except Exception:
        logger.error(
            "Failed to send order confirmation email for %s",
            order.order_number,
            exc_info=True,
        )

    return order


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


async def _restore_order_stock(db: AsyncSession, order: Order) -> None:
    for item in order.items:
        await restore_stock(db, item.product_id, item.quantity)


async def cancel_order(
    db: AsyncSession,
    *,
    user: AuthUser,
    order_id: uuid.UUID,
    requested_status: str,
) -> Order:
    """Customer cancellation of their own pending order."""
    order = await get_order(db, order_id, user_id=user.user_id)

    if requested_status != OrderStatus.CANCELLED.value:
        raise ForbiddenError("You can only cancel orders")
    if order.status != OrderStatus.PENDING:
        raise InvalidRequestError("Only pending orders can be cancelled")

    # Guarded so a concurrent staff update cannot be overwritten
    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == OrderStatus.PENDING)
        .values(
            status=OrderStatus.CANCELLED,
            cancelled_at=utc_now(),
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise InvalidRequestError("Only pending orders can be cancelled")

    await _restore_order_stock(db, order)
    record_tracking_event(
        db, order, OrderStatus.CANCELLED.value, "Order cancelled by customer", user.user_id
    )
    await db.commit()

    logger.info("Order %s cancelled by customer %s", order.order_number, user.user_id)
    return await get_order(db, order.id)


async def update_order_status(
    db: AsyncSession,
    *,
    actor: AuthUser,
    order_id: uuid.UUID,
    new_status: OrderStatus,
    notifier: OrderNotifier,
    message: Optional[str] = None,
) -> Order:
    """Staff status change with timestamps and a tracking event."""
    if actor.role == SELLER and new_status not in SELLER_STATUSES:
        raise InvalidRequestError(
            "Invalid status. Sellers can only update to shipped or delivered"
        )

    order = await get_order_for_actor(db, actor, order_id)
    previous = order.status
    if previous == new_status:
        return order

    if previous in TERMINAL_ORDER_STATUSES:
        raise InvalidRequestError(f"Order is already {previous.value}")
    if previous == OrderStatus.DELIVERED and new_status != OrderStatus.REFUNDED:
        raise InvalidRequestError("Delivered orders can only be refunded")

    now = utc_now()
    order.status = new_status
    if new_status == OrderStatus.SHIPPED and order.shipped_at is None:
        order.shipped_at = now
    elif new_status == OrderStatus.DELIVERED and order.delivered_at is None:
        order.delivered_at = now
    elif new_status == OrderStatus.CANCELLED:
        order.cancelled_at = now
        if previous in RESTOCKABLE_STATUSES:
            await _restore_order_stock(db, order)

    record_tracking_event(
        db,
        order,
        new_status.value,
        message or f"Order status updated to {new_status.value}",
        actor.user_id,
    )
    await db.commit()

    logger.info(
        "Order %s status %s -> %s by %s",
        order.order_number,
        previous.value,
        new_status.value,
        actor.user_id,
    )

    order = await get_order(db, order.id)
    if new_status == OrderStatus.SHIPPED:
        try:
            await notifier.order_shipped(order)
        except Exception:
            logger.error(
                "Failed to send shipping email for %s", order.order_number, exc_info=True
            )
    return order


async def update_payment_status(
    db: AsyncSession,
    *,
    actor: AuthUser,
    order_id: uuid.UUID,
    payment_status: PaymentStatus,
) -> Order:
    order = await get_order_for_actor(db, actor, order_id)
    previous = order.payment_status
    order.payment_status = payment_status
    record_tracking_event(
        db,
        order,
        order.status.value,
        f"Payment status updated to {payment_status.value}",
        actor.user_id,
    )
    await db.commit()

    logger.info(
        "Order %s payment status %s -> %s by %s",
        order.order_number,
        previous.value,
        payment_status.value,
        actor.user_id,
    )
    return await get_order(db, order.id)


async def update_tracking_number(
    db: AsyncSession,
    *,
    actor: AuthUser,
    order_id: uuid.UUID,
    tracking_number: Optional[str],
    courier_partner: Optional[str] = None,
) -> Order:
    tracking_number = (tracking_number or "").strip()
    if not tracking_number:
        raise InvalidRequestError("Tracking number is required")

    order = await get_order_for_actor(db, actor, order_id)
    order.tracking_number = tracking_number
    if courier_partner and courier_partner.strip():
        order.courier_partner = courier_partner.strip()
    record_tracking_event(
        db,
        order,
        order.status.value,
        f"Tracking number added: {tracking_number}",
        actor.user_id,
    )
    await db.commit()
    return await get_order(db, order.id)


async def soft_delete_order(
    db: AsyncSession,
    *,
    actor: AuthUser,
    order_id: uuid.UUID,
    notifier: OrderNotifier,
) -> Order:
    """Admin delete keeps the row and cancels it."""
    if actor.role != ADMIN:
        raise ForbiddenError("Only administrators can delete orders")
    return await update_order_status(
        db,
        actor=actor,
        order_id=order_id,
        new_status=OrderStatus.CANCELLED,
        notifier=notifier,
        message="Order cancelled by admin",
    )
