"""SQLAlchemy model for AffiliateLink: one trackable code per (user, product)."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .click import Click
    from .conversion import Conversion
    from .product import Product
    from .user import User


class AffiliateLink(Base):
    __tablename__ = "affiliate_links"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_affiliate_links_user_product"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    link_code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relations
    user: Mapped["User"] = relationship("User", back_populates="links")
    product: Mapped["Product"] = relationship("Product", back_populates="links")
    clicks: Mapped[list["Click"]] = relationship(
        "Click", back_populates="link", cascade="all, delete-orphan", passive_deletes=True
    )
    conversions: Mapped[list["Conversion"]] = relationship(
        "Conversion", back_populates="link", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<AffiliateLink(id={self.id}, user_id={self.user_id}, "
            f"product_id={self.product_id}, code='{self.link_code}')>"
        )
