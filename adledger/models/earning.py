"""
Earning model.

Append-only ledger of every balance-affecting event.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base
from adledger.models.enums import Currency, EarningOrigin
from adledger.models.types import JsonType, MoneyType


class Earning(Base):
    """
    Earning entity.

    Records are never updated or deleted once written.

    Attributes:
        id: Primary key
        user_id: User credited (or debited when amount is negative)
        amount: Signed amount
        currency: Balance column the amount applies to
        source: EarningSource value
        origin: direct (user action) or derived (produced by another earning)
        description: Human readable description
        metadata_: Free-form JSON metadata
        created_at: When the record was written
    """

    __tablename__ = "earnings"
    __table_args__ = (
        Index("idx_earnings_user_source", "user_id", "source"),
        Index("idx_earnings_user_created", "user_id", "created_at"),
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
    currency: Mapped[str] = mapped_column(
        String(20), default=Currency.PRIMARY.value, nullable=False
    )
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    origin: Mapped[str] = mapped_column(
        String(20), default=EarningOrigin.DIRECT.value, nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JsonType, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Earning(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, currency={self.currency}, "
            f"source={self.source})>"
        )
