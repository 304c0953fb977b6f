"""
ReferralCommission model.

Append-only audit of commissions paid to referrers.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base
from adledger.models.types import MoneyType


class ReferralCommission(Base):
    """Commission paid to a referrer for one earning of their referee."""

    __tablename__ = "referral_commissions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referrer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referred_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # One commission per originating earning
    original_earning_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("earnings.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralCommission(id={self.id}, "
            f"referrer_id={self.referrer_id}, "
            f"amount={self.commission_amount})>"
        )
