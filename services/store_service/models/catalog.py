"""Store catalog model: the product rows orders are priced and snapshotted from."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Integer, Numeric
from sqlalchemy import String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Product(Base):
    """Sellable products.

    Owned by the catalog; the order workflow only reads these rows and moves
    the stock counter.
    """

    __tablename__ = "store_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    images: Mapped[list] = mapped_column(JSONType, default=list)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    seller_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (CheckConstraint("stock >= 0", name="product_stock_non_negative"),)

    def snapshot(self) -> dict:
        """Point-in-time copy embedded in order items."""
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "images": list(self.images or []),
            "sku": self.sku,
            "category_id": str(self.category_id) if self.category_id else None,
            "seller_id": self.seller_id,
        }

    def __repr__(self):
        return f"<Product {self.name} stock={self.stock}>"
