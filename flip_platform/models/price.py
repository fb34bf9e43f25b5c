"""Historical sold-price records."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from flip_platform.db.base import Base, TimestampMixin


class ProductPrice(Base, TimestampMixin):
    """One observed price for a product on a marketplace."""

    __tablename__ = "product_prices"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="SEK", nullable=False)
    marketplace: Mapped[str] = mapped_column(String(50), nullable=False)
    marketplace_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    condition: Mapped[str | None] = mapped_column(String(20), nullable=True)
    seller_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sold_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
