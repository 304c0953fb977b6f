"""
Earning repository.

Data access layer for the append-only earning ledger.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.earning import Earning
from adledger.models.enums import Currency, EarningSource
from adledger.repositories.base import BaseRepository


class EarningRepository(BaseRepository[Earning]):
    """Earning repository with aggregate queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize earning repository."""
        super().__init__(Earning, session)

    async def count_by_source(
        self,
        user_id: int,
        source: EarningSource,
        since: datetime | None = None,
    ) -> int:
        """
        Count a user's earnings of one source.

        Args:
            user_id: User ID
            source: Earning source
            since: Only count records created after this time

        Returns:
            Number of records
        """
        stmt = select(func.count(Earning.id)).where(
            Earning.user_id == user_id,
            Earning.source == source.value,
        )
        if since is not None:
            stmt = stmt.where(Earning.created_at > since)

        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def sum_amount(
        self,
        user_id: int,
        currency: Currency = Currency.PRIMARY,
        source: EarningSource | None = None,
    ) -> Decimal:
        """
        Sum a user's earning amounts in one currency.

        Args:
            user_id: User ID
            currency: Currency to sum
            source: Optional source filter

        Returns:
            Sum of amounts (0 when no records)
        """
        stmt = select(
            func.coalesce(func.sum(Earning.amount), Decimal("0"))
        ).where(
            Earning.user_id == user_id,
            Earning.currency == currency.value,
        )
        if source is not None:
            stmt = stmt.where(Earning.source == source.value)

        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_user_earnings(
        self, user_id: int, limit: int = 50
    ) -> list[Earning]:
        """Get a user's most recent earnings, newest first."""
        stmt = (
            select(Earning)
            .where(Earning.user_id == user_id)
            .order_by(Earning.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
