"""SQLAlchemy model for Conversion (confirmed sale with its frozen commission)."""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .affiliate_link import AffiliateLink


class Conversion(Base):
    __tablename__ = "conversions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    link_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("affiliate_links.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    # Computed once from the product rule at insert time, never recomputed
    commission: Mapped[Decimal] = mapped_column(nullable=False)
    converted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    link: Mapped["AffiliateLink"] = relationship("AffiliateLink", back_populates="conversions")

    def __repr__(self) -> str:
        return (
            f"<Conversion(id={self.id}, link_id={self.link_id}, "
            f"amount={self.amount}, commission={self.commission})>"
        )
