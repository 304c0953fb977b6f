"""
Withdrawal query service module.

Read-only queries over withdrawal requests.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.withdrawal import Withdrawal
from adledger.repositories.withdrawal_repository import WithdrawalRepository


class WithdrawalQueryService:
    """Handles withdrawal query operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal query service.

        Args:
            session: Database session
        """
        self.session = session
        self.withdrawal_repo = WithdrawalRepository(session)

    async def get_pending_withdrawals(self, limit: int = 100) -> list[Withdrawal]:
        """
        Get pending withdrawals (for admin), oldest first.

        Returns:
            List of pending requests
        """
        return await self.withdrawal_repo.list_pending(limit=limit)

    async def get_user_withdrawals(
        self, user_id: int, limit: int = 50
    ) -> list[Withdrawal]:
        """
        Get a user's withdrawal history, newest first.

        Args:
            user_id: User ID
            limit: Max number of requests

        Returns:
            List of requests
        """
        return await self.withdrawal_repo.list_for_user(user_id, limit=limit)
