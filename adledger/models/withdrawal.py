"""
Withdrawal model.

Withdrawal requests and their settlement state.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base
from adledger.models.enums import WithdrawalStatus
from adledger.models.types import JsonType, MoneyType


class Withdrawal(Base):
    """
    Withdrawal request entity.

    The deducted flag tells whether the balance has been taken for this
    request. Allowed (deducted, refunded, status) sequences:
    - (F, F, pending) -> (T, F, Approved)
    - (F, F, pending) -> (F, F, rejected)
    - (T, F, pending) -> (T, F, Approved)
    - (T, F, pending) -> (F, T, rejected)

    Attributes:
        id: Primary key
        user_id: Requesting user
        amount: Net USD amount paid out (after fee)
        method: Payment rail
        status: pending, Approved or rejected
        details: requestedAmount, fee, feePercent, totalDeducted,
            secondaryDeducted, packageSelector, destination
        deducted: Balance already taken for this request
        refunded: Withheld balance returned on rejection
        transaction_hash: Payout reference set on approval
        admin_notes: Note left by the reviewing admin
    """

    __tablename__ = "withdrawals"
    __table_args__ = (
        Index("idx_withdrawals_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=WithdrawalStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    details: Mapped[dict[str, Any]] = mapped_column(
        JsonType, default=dict, nullable=False
    )
    deducted: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    refunded: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    transaction_hash: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def total_deducted(self) -> Decimal:
        """Gross USD amount taken from the balance for this request."""
        value = (self.details or {}).get("totalDeducted")
        return Decimal(str(value)) if value is not None else self.amount

    @property
    def secondary_deducted(self) -> Decimal:
        """Secondary token amount reserved by this request."""
        value = (self.details or {}).get("secondaryDeducted")
        return Decimal(str(value)) if value is not None else Decimal("0")

    @property
    def is_pending(self) -> bool:
        return self.status == WithdrawalStatus.PENDING

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Withdrawal(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, method={self.method}, "
            f"status={self.status}, deducted={self.deducted})>"
        )
