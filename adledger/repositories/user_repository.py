"""
User repository.

Data access layer for User model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.user import User
from adledger.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_telegram_id(self, telegram_id: int) -> User | None:
        """
        Get user by Telegram ID.

        Args:
            telegram_id: Telegram user ID

        Returns:
            User or None
        """
        return await self.get_by(telegram_id=telegram_id)

    async def get_by_referral_code(self, referral_code: str) -> User | None:
        """
        Get user by referral code.

        Args:
            referral_code: Referral code

        Returns:
            User or None
        """
        return await self.get_by(referral_code=referral_code)

    async def apply_projection_delta(
        self, user_id: int, amount: Decimal
    ) -> int:
        """
        Mirror a primary balance delta onto the legacy user columns.

        total_earned only grows; negative deltas only touch balance.

        Args:
            user_id: User ID
            amount: Signed primary token delta

        Returns:
            Number of rows updated (0 when the user is missing)
        """
        values = {"balance": User.balance + amount}
        if amount > 0:
            values["total_earned"] = User.total_earned + amount

        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def find_due_for_reset(
        self, period_start: datetime, limit: int, after_id: int = 0
    ) -> list[User]:
        """
        Get users whose counters were not reset in the current period.

        Args:
            period_start: Start of the current reset period
            limit: Batch size
            after_id: Only users with a greater ID (batch cursor)

        Returns:
            Users with last_reset_at NULL or before period_start
        """
        stmt = (
            select(User)
            .where(
                or_(
                    User.last_reset_at.is_(None),
                    User.last_reset_at < period_start,
                )
            )
            .where(User.id > after_id)
            .order_by(User.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
