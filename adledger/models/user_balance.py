"""
UserBalance model.

Authoritative multi-currency balance row, one per user.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base
from adledger.models.enums import Currency
from adledger.models.types import MoneyType


class UserBalance(Base):
    """
    UserBalance entity.

    Attributes:
        id: Primary key
        user_id: Owner (unique)
        balance: Primary token balance
        secondary_balance: Secondary token balance (withdrawal gate)
        usd_balance: Withdrawable USD balance
        bonus_balance: Bonus accounting token balance
    """

    __tablename__ = "user_balances"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="check_balance_non_negative"),
        CheckConstraint(
            "secondary_balance >= 0",
            name="check_secondary_balance_non_negative",
        ),
        CheckConstraint(
            "usd_balance >= 0", name="check_usd_balance_non_negative"
        ),
        CheckConstraint(
            "bonus_balance >= 0", name="check_bonus_balance_non_negative"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    secondary_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    usd_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    bonus_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @staticmethod
    def column_name(currency: Currency) -> str:
        """Name of the balance column holding a currency."""
        return {
            Currency.PRIMARY: "balance",
            Currency.SECONDARY: "secondary_balance",
            Currency.USD: "usd_balance",
            Currency.BONUS: "bonus_balance",
        }[Currency(currency)]

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserBalance(user_id={self.user_id}, balance={self.balance}, "
            f"secondary={self.secondary_balance}, usd={self.usd_balance})>"
        )
