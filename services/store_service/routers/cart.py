"""Store cart router: the customer's cart line items."""

import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.currency import round_money
from libs.db.session import get_async_db
from services.store_service.models import CartItem
from services.store_service.schemas import (
    CartItemCreate,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
)
from services.store_service.services import inventory
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/cart", tags=["cart"])


def _item_response(item: CartItem) -> CartItemResponse:
    response = CartItemResponse.model_validate(item)
    product = item.product
    if product is None:
        return response
    images = product.images or []
    return response.model_copy(
        update={
            "product_name": product.name,
            "unit_price": product.price,
            "image": images[0] if images else None,
            "in_stock": product.is_active and product.stock >= item.quantity,
        }
    )


@router.get("", response_model=CartResponse)
async def get_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    items = await inventory.list_cart_items(db, current_user.user_id)
    responses = [_item_response(item) for item in items]
    subtotal = sum(
        (r.unit_price * r.quantity for r in responses if r.unit_price is not None),
        Decimal("0"),
    )
    return CartResponse(
        items=responses,
        item_count=sum(r.quantity for r in responses),
        subtotal=round_money(subtotal),
    )


@router.post(
    "/items", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED
)
async def add_cart_item(
    payload: CartItemCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    item = await inventory.add_cart_item(
        db,
        user_id=current_user.user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        variant_id=payload.variant_id,
    )
    return _item_response(item)


@router.patch("/items/{item_id}", response_model=CartItemResponse)
async def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    item = await inventory.update_cart_item(
        db, user_id=current_user.user_id, item_id=item_id, quantity=payload.quantity
    )
    return _item_response(item)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_cart_item(
    item_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await inventory.remove_cart_item(db, user_id=current_user.user_id, item_id=item_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await inventory.clear_cart(db, current_user.user_id)
    await db.commit()
