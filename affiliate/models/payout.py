"""SQLAlchemy model for Payouts (withdrawal requests against the balance)."""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .user import User

PAYOUT_PENDING = "pending"
PAYOUT_APPROVED = "approved"
PAYOUT_PAID = "paid"
PAYOUT_REJECTED = "rejected"
PAYOUT_STATUSES = (PAYOUT_PENDING, PAYOUT_APPROVED, PAYOUT_PAID, PAYOUT_REJECTED)


class Payout(Base):
    __tablename__ = "payouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(*PAYOUT_STATUSES, name="payout_status_enum"),
        default=PAYOUT_PENDING,
        nullable=False,
        index=True,
    )
    payment_method: Mapped[str | None] = mapped_column(String(100))
    payment_details: Mapped[str | None] = mapped_column(Text)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relations
    user: Mapped["User"] = relationship("User", back_populates="payouts")

    def __repr__(self) -> str:
        return (
            f"<Payout(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, status='{self.status}')>"
        )
