"""
UserBalance repository.

Data access layer for the authoritative balance rows.
"""

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.enums import Currency
from adledger.models.user_balance import UserBalance
from adledger.repositories.base import BaseRepository


class UserBalanceRepository(BaseRepository[UserBalance]):
    """Balance repository with atomic increments."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize balance repository."""
        super().__init__(UserBalance, session)

    async def ensure(self, user_id: int) -> None:
        """
        Create the zero balance row for a user if it does not exist.

        Concurrent callers are safe: the first insert wins, the rest no-op.

        Args:
            user_id: User ID
        """
        await self.insert_or_ignore(
            {
                "user_id": user_id,
                "balance": Decimal("0"),
                "secondary_balance": Decimal("0"),
                "usd_balance": Decimal("0"),
                "bonus_balance": Decimal("0"),
            }
        )

    async def get_by_user(self, user_id: int) -> UserBalance | None:
        """Get fresh balance row for a user."""
        stmt = (
            select(UserBalance)
            .where(UserBalance.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_user_for_update(self, user_id: int) -> UserBalance | None:
        """
        Get balance row for a user holding its row lock.

        Args:
            user_id: User ID

        Returns:
            Locked balance row or None
        """
        stmt = (
            select(UserBalance)
            .where(UserBalance.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment(
        self, user_id: int, currency: Currency, amount: Decimal
    ) -> int:
        """
        Atomically add amount to one balance column.

        Single UPDATE col = col + :amount, which takes the row lock.

        Args:
            user_id: User ID
            currency: Balance column to change
            amount: Signed delta

        Returns:
            Number of rows updated (0 when the row is missing)
        """
        column = getattr(UserBalance, UserBalance.column_name(currency))
        stmt = (
            update(UserBalance)
            .where(UserBalance.user_id == user_id)
            .values({column: column + amount})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
