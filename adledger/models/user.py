"""
User model.

Represents a registered mini-app user.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base
from adledger.models.enums import WithdrawalMethod
from adledger.models.types import MoneyType


class User(Base):
    """
    User model - registered mini-app users.

    The balance and total_earned columns are a legacy projection of the
    primary token balance. The authoritative value lives in user_balances.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "total_earned >= 0", name="check_user_total_earned_non_negative"
        ),
        CheckConstraint(
            "ads_watched_today >= 0",
            name="check_user_ads_watched_today_non_negative",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Telegram data
    telegram_id: Mapped[int] = mapped_column(
        BigInteger, unique=True, index=True, nullable=False
    )
    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    first_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Referral data
    referral_code: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )
    referred_by: Mapped[str | None] = mapped_column(
        String(32), nullable=True, index=True,
        comment="Referral code of the inviting user",
    )
    first_ad_watched: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
        comment="Activation gate for referral bonuses",
    )

    # Payout destinations per rail
    ton_wallet_address: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    usdt_wallet_address: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    telegram_stars_username: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Legacy balance projection
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Activity counters
    ads_watched: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    ads_watched_today: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    channel_visited: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    app_shared: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    link_shared: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    friend_invited: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    friends_invited: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_ad_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Periodic reset idempotency key
    last_reset_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    last_reset_date: Mapped[str | None] = mapped_column(
        String(10), nullable=True
    )

    is_banned: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def destination_for(self, method: WithdrawalMethod) -> str | None:
        """Payout handle registered for a rail."""
        if method == WithdrawalMethod.TON:
            return self.ton_wallet_address
        if method == WithdrawalMethod.USDT:
            return self.usdt_wallet_address
        return self.telegram_stars_username

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, telegram_id={self.telegram_id}, "
            f"username={self.username})>"
        )
