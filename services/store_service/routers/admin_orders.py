"""Admin/seller order management: listing, status, payment status, tracking."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.auth.dependencies import require_admin, require_staff
from libs.auth.models import AuthUser
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.store_service.models import OrderStatus, PaymentStatus
from services.store_service.schemas import (
    OrderDetailResponse,
    OrderListResponse,
    OrderStatusUpdate,
    OrderSummaryResponse,
    PaymentStatusUpdate,
    TrackingUpdate,
)
from services.store_service.services import order_placement
from services.store_service.services.notifications import (
    OrderNotifier,
    get_order_notifier,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])


@router.get("", response_model=OrderListResponse)
@admin_limit
async def list_orders(
    request: Request,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc|ASC|DESC)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """List orders with filters. Sellers only see orders with their products."""
    orders, total = await order_placement.list_orders(
        db,
        actor=current_user,
        status=status,
        payment_status=payment_status,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    return OrderListResponse(
        items=[OrderSummaryResponse.model_validate(order) for order in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_placement.get_order_for_actor(db, current_user, order_id)
    return OrderDetailResponse.model_validate(order)


@router.patch("/{order_id}/status", response_model=OrderDetailResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
    notifier: OrderNotifier = Depends(get_order_notifier),
):
    """Advance an order; sets shipped/delivered timestamps on first entry."""
    order = await order_placement.update_order_status(
        db,
        actor=current_user,
        order_id=order_id,
        new_status=payload.status,
        notifier=notifier,
        message=payload.message,
    )
    return OrderDetailResponse.model_validate(order)


@router.patch("/{order_id}/payment-status", response_model=OrderDetailResponse)
async def update_payment_status(
    order_id: uuid.UUID,
    payload: PaymentStatusUpdate,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_placement.update_payment_status(
        db,
        actor=current_user,
        order_id=order_id,
        payment_status=payload.payment_status,
    )
    return OrderDetailResponse.model_validate(order)


@router.patch("/{order_id}/tracking", response_model=OrderDetailResponse)
async def update_tracking(
    order_id: uuid.UUID,
    payload: TrackingUpdate,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_placement.update_tracking_number(
        db,
        actor=current_user,
        order_id=order_id,
        tracking_number=payload.tracking_number,
        courier_partner=payload.courier_partner,
    )
    return OrderDetailResponse.model_validate(order)


@router.delete("/{order_id}", response_model=OrderDetailResponse)
async def delete_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    notifier: OrderNotifier = Depends(get_order_notifier),
):
    """Soft delete: the order is cancelled, never removed."""
    order = await order_placement.soft_delete_order(
        db, actor=current_user, order_id=order_id, notifier=notifier
    )
    return OrderDetailResponse.model_validate(order)
