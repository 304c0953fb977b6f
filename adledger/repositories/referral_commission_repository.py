"""
ReferralCommission repository.

Data access layer for commission audit rows.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.referral_commission import ReferralCommission
from adledger.repositories.base import BaseRepository


class ReferralCommissionRepository(BaseRepository[ReferralCommission]):
    """Commission repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(ReferralCommission, session)

    async def total_for_referrer(self, referrer_id: int) -> Decimal:
        """Sum of commissions paid to a referrer."""
        stmt = select(
            func.coalesce(
                func.sum(ReferralCommission.commission_amount), Decimal("0")
            )
        ).where(ReferralCommission.referrer_id == referrer_id)
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))
