"""SQLAlchemy model for Product (catalog entry with its commission rule)."""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .affiliate_link import AffiliateLink

COMMISSION_PERCENTAGE = "percentage"
COMMISSION_FIXED = "fixed"
COMMISSION_TYPES = (COMMISSION_PERCENTAGE, COMMISSION_FIXED)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Display price such as "€49/mo"; price_value is the number behind it
    price: Mapped[str | None] = mapped_column(String(100))
    price_value: Mapped[Decimal] = mapped_column(default=Decimal("0.00"), nullable=False)
    type: Mapped[str] = mapped_column(String(50), default="product", nullable=False)
    commission_type: Mapped[str] = mapped_column(
        Enum(*COMMISSION_TYPES, name="commission_type_enum"),
        default=COMMISSION_PERCENTAGE,
        nullable=False,
    )
    commission_value: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), index=True)
    image_data: Mapped[str | None] = mapped_column(Text)
    product_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    links: Mapped[list["AffiliateLink"]] = relationship(
        "AffiliateLink", back_populates="product", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<Product(id={self.id}, name='{self.name}', "
            f"commission={self.commission_type}:{self.commission_value})>"
        )
