"""
Withdrawal repository.

Data access layer for Withdrawal model.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.enums import WithdrawalStatus
from adledger.models.withdrawal import Withdrawal
from adledger.repositories.base import BaseRepository

TERMINAL_STATUSES = (
    WithdrawalStatus.APPROVED.value,
    WithdrawalStatus.REJECTED.value,
)


class WithdrawalRepository(BaseRepository[Withdrawal]):
    """Withdrawal repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(Withdrawal, session)

    async def get_pending_for_user(self, user_id: int) -> Withdrawal | None:
        """
        Get a user's pending request, if any.

        Args:
            user_id: User ID

        Returns:
            Pending withdrawal or None
        """
        stmt = (
            select(Withdrawal)
            .where(
                Withdrawal.user_id == user_id,
                Withdrawal.status == WithdrawalStatus.PENDING.value,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_last_terminal_at(self, user_id: int) -> datetime | None:
        """
        Get when the user's last approved or rejected request was settled.

        Args:
            user_id: User ID

        Returns:
            updated_at of the latest terminal request or None
        """
        stmt = select(func.max(Withdrawal.updated_at)).where(
            Withdrawal.user_id == user_id,
            Withdrawal.status.in_(TERMINAL_STATUSES),
        )
        result = await self.session.execute(stmt)
        return result.scalar()

    async def list_pending(self, limit: int = 100) -> list[Withdrawal]:
        """Get pending requests, oldest first."""
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.status == WithdrawalStatus.PENDING.value)
            .order_by(Withdrawal.created_at, Withdrawal.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(
        self, user_id: int, limit: int = 50
    ) -> list[Withdrawal]:
        """Get a user's requests, newest first."""
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.user_id == user_id)
            .order_by(Withdrawal.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
