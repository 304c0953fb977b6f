"""
Referral repository.

Data access layer for Referral model.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.enums import ReferralStatus
from adledger.models.referral import Referral
from adledger.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_pair(
        self, referrer_id: int, referee_id: int
    ) -> Referral | None:
        """Get the referral linking two users."""
        return await self.get_by(referrer_id=referrer_id, referee_id=referee_id)

    async def get_by_referee(self, referee_id: int) -> Referral | None:
        """
        Get the referral where user is the referee.

        Args:
            referee_id: Invited user ID

        Returns:
            Referral or None
        """
        stmt = (
            select(Referral)
            .where(Referral.referee_id == referee_id)
            .order_by(Referral.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_completed_for_referee(
        self, referee_id: int
    ) -> Referral | None:
        """Get the completed referral where user is the referee."""
        stmt = (
            select(Referral)
            .where(
                Referral.referee_id == referee_id,
                Referral.status == ReferralStatus.COMPLETED.value,
            )
            .order_by(Referral.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending_for_referee_for_update(
        self, referee_id: int
    ) -> list[Referral]:
        """
        Get pending referrals of a referee, locking the rows.

        Args:
            referee_id: Invited user ID

        Returns:
            Locked pending referrals
        """
        stmt = (
            select(Referral)
            .where(
                Referral.referee_id == referee_id,
                Referral.status == ReferralStatus.PENDING.value,
            )
            .order_by(Referral.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_completed(
        self, referrer_id: int, since: datetime | None = None
    ) -> int:
        """
        Count completed referrals of a referrer.

        Args:
            referrer_id: Referrer user ID
            since: Only count referrals activated after this time

        Returns:
            Count of completed referrals
        """
        stmt = select(func.count(Referral.id)).where(
            Referral.referrer_id == referrer_id,
            Referral.status == ReferralStatus.COMPLETED.value,
        )
        if since is not None:
            stmt = stmt.where(Referral.activated_at > since)

        result = await self.session.execute(stmt)
        return result.scalar() or 0
