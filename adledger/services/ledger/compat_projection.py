"""
Compatibility projection.

Mirrors primary balance changes onto the legacy users.balance and
users.total_earned columns. The projection is best effort: the authoritative
balance lives in user_balances and never depends on it.
"""

from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.repositories.user_repository import UserRepository
from adledger.services.base_service import BaseService


class CompatProjection(BaseService):
    """Best-effort mirror of the primary balance onto the users table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.user_repo = UserRepository(session)

    async def apply(self, user_id: int, amount: Decimal) -> bool:
        """
        Mirror a primary delta in its own SAVEPOINT.

        Args:
            user_id: User ID
            amount: Signed primary token delta

        Returns:
            True if the mirror was written
        """
        if amount == 0:
            return True

        try:
            async with self.session.begin_nested():
                updated = await self.user_repo.apply_projection_delta(
                    user_id, amount
                )
        except SQLAlchemyError as e:
            self.logger.warning(
                "Legacy balance projection failed",
                extra={
                    "user_id": user_id,
                    "amount": str(amount),
                    "error": str(e),
                },
            )
            return False

        if not updated:
            self.logger.warning(
                "Legacy balance projection skipped, user row missing",
                extra={"user_id": user_id},
            )
        return bool(updated)
