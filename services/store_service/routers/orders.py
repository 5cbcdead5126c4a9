"""Store orders router: placement, order history and customer cancellation."""

import uuid

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import order_limit
from libs.db.session import get_async_db
from services.store_service.schemas import (
    OrderCancelRequest,
    OrderCreateRequest,
    OrderDetailResponse,
    OrderSummaryResponse,
)
from services.store_service.services import order_placement
from services.store_service.services.notifications import (
    OrderNotifier,
    get_order_notifier,
)
from services.store_service.services.pricing import (
    OrderPricingEngine,
    get_pricing_engine,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "", response_model=OrderDetailResponse, status_code=status.HTTP_201_CREATED
)
@order_limit
async def create_order(
    request: Request,
    payload: OrderCreateRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    pricing: OrderPricingEngine = Depends(get_pricing_engine),
    notifier: OrderNotifier = Depends(get_order_notifier),
):
    """Place an order priced from the live catalog.

    Stock is decremented and the cart cleared in the same transaction as
    the order insert. The confirmation email is best-effort.
    """
    order = await order_placement.place_order(
        db,
        user=current_user,
        request=payload,
        pricing=pricing,
        notifier=notifier,
    )
    return OrderDetailResponse.model_validate(order)


@router.get("", response_model=list[OrderSummaryResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the current user's orders, newest first."""
    orders = await order_placement.list_user_orders(db, current_user.user_id)
    return [OrderSummaryResponse.model_validate(order) for order in orders]


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get one of the current user's orders with items and tracking history."""
    order = await order_placement.get_order(db, order_id, user_id=current_user.user_id)
    return OrderDetailResponse.model_validate(order)


@router.put("/{order_id}/status", response_model=OrderDetailResponse)
async def update_my_order_status(
    order_id: uuid.UUID,
    payload: OrderCancelRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Customers may only cancel, and only while the order is pending."""
    order = await order_placement.cancel_order(
        db,
        user=current_user,
        order_id=order_id,
        requested_status=payload.status,
    )
    return OrderDetailResponse.model_validate(order)
