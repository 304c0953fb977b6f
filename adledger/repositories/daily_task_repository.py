"""
DailyTask repository.

Data access layer for per-period task progress.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.daily_task import DailyTask
from adledger.repositories.base import BaseRepository


class DailyTaskRepository(BaseRepository[DailyTask]):
    """Daily task repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize daily task repository."""
        super().__init__(DailyTask, session)

    async def get_for_period(
        self, user_id: int, reset_date: str, for_update: bool = False
    ) -> list[DailyTask]:
        """
        Get a user's task rows for one period, ordered by level.

        Args:
            user_id: User ID
            reset_date: Period bucket (YYYY-MM-DD)
            for_update: Lock the rows

        Returns:
            Task rows
        """
        stmt = (
            select(DailyTask)
            .where(
                DailyTask.user_id == user_id,
                DailyTask.reset_date == reset_date,
            )
            .order_by(DailyTask.task_level)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_older_than(self, reset_date: str) -> int:
        """
        Delete task rows of periods before reset_date.

        ISO date strings compare in calendar order.

        Args:
            reset_date: Oldest period bucket to keep

        Returns:
            Number of rows deleted
        """
        stmt = delete(DailyTask).where(DailyTask.reset_date < reset_date)
        result = await self.session.execute(stmt)
        return result.rowcount or 0
