"""Catalog stock and cart storage used by the order workflow."""

import uuid
from typing import Optional

from libs.common.errors import InsufficientStockError, NotFoundError
from libs.common.logging import get_logger
from services.store_service.models import CartItem, Product
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


async def get_product(
    db: AsyncSession, product_id: uuid.UUID, *, active_only: bool = False
) -> Product:
    """Load a product or raise NotFoundError."""
    query = select(Product).where(Product.id == product_id)
    if active_only:
        query = query.where(Product.is_active.is_(True))
    product = (await db.execute(query)).scalar_one_or_none()
    if product is None:
        raise NotFoundError(
            f"Product {product_id} not found", details={"product_id": str(product_id)}
        )
    return product


async def decrement_stock(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> None:
    """Take ``quantity`` units in one conditional UPDATE.

    The row only changes when enough stock is left, so concurrent checkouts
    can never drive stock below zero. No row updated means the product ran
    out (or vanished) and the caller's transaction must be rolled back.
    """
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        logger.warning(
            "Stock decrement rejected for product %s (requested=%d)",
            product_id,
            quantity,
        )
        raise InsufficientStockError(
            "Insufficient stock",
            details={"product_id": str(product_id), "requested": quantity},
        )


async def restore_stock(db: AsyncSession, product_id: uuid.UUID, quantity: int) -> None:
    """Give units back, e.g. when a pending order is cancelled."""
    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session="fetch")
    )


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


async def list_cart_items(db: AsyncSession, user_id: str) -> list[CartItem]:
    result = await db.execute(
        select(CartItem)
        .options(selectinload(CartItem.product))
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.created_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_cart_item(
    db: AsyncSession, user_id: str, item_id: uuid.UUID
) -> CartItem:
    result = await db.execute(
        select(CartItem)
        .options(selectinload(CartItem.product))
        .where(CartItem.id == item_id, CartItem.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Cart item not found")
    return item


async def add_cart_item(
    db: AsyncSession,
    *,
    user_id: str,
    product_id: uuid.UUID,
    quantity: int,
    variant_id: Optional[str] = None,
) -> CartItem:
    """Add to the cart, merging with an existing line for the same product."""
    product = await get_product(db, product_id, active_only=True)

    query = select(CartItem).where(
        CartItem.user_id == user_id, CartItem.product_id == product_id
    )
    if variant_id is None:
        query = query.where(CartItem.variant_id.is_(None))
    else:
        query = query.where(CartItem.variant_id == variant_id)
    item = (await db.execute(query)).scalar_one_or_none()

    new_quantity = quantity + (item.quantity if item else 0)
    if product.stock < new_quantity:
        raise InsufficientStockError("Insufficient stock")

    if item:
        item.quantity = new_quantity
    else:
        item = CartItem(
            user_id=user_id,
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
        )
        db.add(item)

    await db.commit()
    return await get_cart_item(db, user_id, item.id)


async def update_cart_item(
    db: AsyncSession, *, user_id: str, item_id: uuid.UUID, quantity: int
) -> CartItem:
    item = await get_cart_item(db, user_id, item_id)
    if item.product is not None and item.product.stock < quantity:
        raise InsufficientStockError("Insufficient stock")
    item.quantity = quantity
    await db.commit()
    return item


async def remove_cart_item(db: AsyncSession, *, user_id: str, item_id: uuid.UUID) -> None:
    item = await get_cart_item(db, user_id, item_id)
    await db.delete(item)
    await db.commit()


async def clear_cart(db: AsyncSession, user_id: str) -> int:
    """Delete every cart line of the user. Does not commit."""
    result = await db.execute(
        delete(CartItem)
        .where(CartItem.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
