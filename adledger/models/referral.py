"""
Referral model.

Links an inviting user to the user they invited.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base
from adledger.models.enums import ReferralStatus
from adledger.models.types import MoneyType


class Referral(Base):
    """
    Referral entity.

    Reward amounts are captured when the referral completes and never
    recomputed afterwards.

    Attributes:
        id: Primary key
        referrer_id: Inviting user
        referee_id: Invited user
        status: pending or completed
        reward_amount: Primary token bonus snapshot
        usd_reward_amount: USD bonus snapshot
        secondary_reward_amount: Secondary token bonus snapshot
        activated_at: When the referral completed
    """

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint(
            "referrer_id", "referee_id", name="uq_referrals_pair"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referrer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ReferralStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    # Snapshots taken at activation
    reward_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    usd_reward_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    secondary_reward_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    @property
    def is_completed(self) -> bool:
        return self.status == ReferralStatus.COMPLETED

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(id={self.id}, referrer_id={self.referrer_id}, "
            f"referee_id={self.referee_id}, status={self.status})>"
        )
