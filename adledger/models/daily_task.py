"""
DailyTask model.

Per-period progress on the sequential ad-watching task tiers.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from adledger.models.base import Base
from adledger.models.types import MoneyType


class DailyTask(Base):
    """
    DailyTask entity.

    Attributes:
        id: Primary key
        user_id: Task owner
        task_level: Tier number (1-based)
        progress: Ads counted toward this tier
        required: Ads needed to complete the tier
        completed: Progress reached required
        claimed: Reward already paid
        reward_amount: Primary token reward
        reset_date: Period bucket (YYYY-MM-DD)
    """

    __tablename__ = "daily_tasks"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "task_level",
            "reset_date",
            name="uq_daily_tasks_user_level_date",
        ),
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
    task_level: Mapped[int] = mapped_column(Integer, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    required: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    claimed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    reward_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    reset_date: Mapped[str] = mapped_column(
        String(10), nullable=False, index=True
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<DailyTask(user_id={self.user_id}, level={self.task_level}, "
            f"progress={self.progress}/{self.required}, "
            f"claimed={self.claimed})>"
        )
