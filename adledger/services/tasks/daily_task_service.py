"""
Daily task service.

Sequential ad-watching tiers that reset every period. Only one tier is
active at a time: the first unclaimed tier whose predecessors are all
claimed. Ads consumed by claimed tiers do not count toward the active one.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.daily_task import DailyTask
from adledger.models.earning import Earning
from adledger.models.enums import EarningSource
from adledger.repositories.daily_task_repository import DailyTaskRepository
from adledger.services.base_service import BaseService
from adledger.utils.datetime_utils import period_date, utc_now
from adledger.utils.exceptions import ValidationError

if TYPE_CHECKING:
    from adledger.services.ledger.earning_ledger import EarningLedger


@dataclass(frozen=True)
class TaskTier:
    """One tier of the daily task ladder."""

    level: int
    required: int
    reward: Decimal


TASK_TIERS: tuple[TaskTier, ...] = tuple(
    TaskTier(level=level, required=20, reward=Decimal("0.00033"))
    for level in range(1, 10)
)


def task_rows_for_period(user_id: int, reset_date: str) -> list[dict]:
    """Fresh task row values for every tier of one period."""
    return [
        {
            "user_id": user_id,
            "task_level": tier.level,
            "progress": 0,
            "required": tier.required,
            "completed": False,
            "claimed": False,
            "reward_amount": tier.reward,
            "reset_date": reset_date,
        }
        for tier in TASK_TIERS
    ]


def find_active_task(tasks: list[DailyTask]) -> DailyTask | None:
    """First unclaimed task whose lower levels are all claimed."""
    for task in tasks:
        if task.claimed:
            continue
        if all(t.claimed for t in tasks if t.task_level < task.task_level):
            return task
        return None
    return None


class DailyTaskService(BaseService):
    """Tracks and pays the daily task tiers."""

    def __init__(
        self,
        session: AsyncSession,
        reset_hour: int = 0,
        ledger: "EarningLedger | None" = None,
    ) -> None:
        """
        Initialize daily task service.

        Args:
            session: Database session
            reset_hour: UTC hour at which periods start
            ledger: Ledger used to pay task rewards
        """
        super().__init__(session)
        self.reset_hour = reset_hour
        self.ledger = ledger
        self.task_repo = DailyTaskRepository(session)

    def current_period(self, now: datetime | None = None) -> str:
        return period_date(now, self.reset_hour)

    async def get_user_daily_tasks(
        self,
        user_id: int,
        now: datetime | None = None,
        for_update: bool = False,
    ) -> list[DailyTask]:
        """
        Get the user's tasks for the current period, creating them if needed.

        Args:
            user_id: User ID
            now: Reference time
            for_update: Lock the rows

        Returns:
            Task rows ordered by level
        """
        reset_date = self.current_period(now)
        tasks = await self.task_repo.get_for_period(
            user_id, reset_date, for_update=for_update
        )
        if len(tasks) < len(TASK_TIERS):
            await self.task_repo.insert_or_ignore(
                task_rows_for_period(user_id, reset_date)
            )
            tasks = await self.task_repo.get_for_period(
                user_id, reset_date, for_update=for_update
            )
        return tasks

    async def update_task_progress(
        self,
        user_id: int,
        ads_watched_today: int,
        now: datetime | None = None,
    ) -> DailyTask | None:
        """
        Advance the active tier to match today's ad count.

        Args:
            user_id: User ID
            ads_watched_today: Ads watched in the current period
            now: Reference time

        Returns:
            Active task after the update, or None when all are claimed
        """
        tasks = await self.get_user_daily_tasks(user_id, now, for_update=True)
        active = find_active_task(tasks)
        if active is None:
            return None

        consumed = sum(
            t.required
            for t in tasks
            if t.task_level < active.task_level and t.claimed
        )
        progress = min(max(0, ads_watched_today - consumed), active.required)
        completed = progress >= active.required

        if completed and not active.completed:
            active.completed_at = utc_now()
        active.progress = progress
        active.completed = completed

        # Tiers above the active one start fresh when they unlock
        for task in tasks:
            if task.task_level > active.task_level and not task.claimed:
                task.progress = 0
                task.completed = False
                task.completed_at = None

        await self.session.flush()
        return active

    async def claim_task_reward(
        self,
        user_id: int,
        task_level: int,
        now: datetime | None = None,
    ) -> Earning:
        """
        Pay the reward of a completed tier.

        Args:
            user_id: User ID
            task_level: Tier to claim
            now: Reference time

        Returns:
            Task completion earning

        Raises:
            ValidationError: Task missing, not completed, already claimed or
                a lower tier is unclaimed
        """
        if self.ledger is None:
            raise RuntimeError("DailyTaskService needs a ledger to pay rewards")

        tasks = await self.get_user_daily_tasks(user_id, now, for_update=True)
        by_level = {t.task_level: t for t in tasks}
        task = by_level.get(task_level)

        if task is None:
            raise ValidationError("Task not found", "TASK_NOT_FOUND")
        if not task.completed:
            raise ValidationError("Task not completed yet", "TASK_NOT_COMPLETED")
        if task.claimed:
            raise ValidationError("Task already claimed", "TASK_ALREADY_CLAIMED")
        previous = by_level.get(task_level - 1)
        if task_level > 1 and (previous is None or not previous.claimed):
            raise ValidationError(
                "Complete previous tasks first", "PREVIOUS_TASK_UNCLAIMED"
            )

        task.claimed = True
        task.claimed_at = utc_now()
        await self.session.flush()

        earning = await self.ledger.record_earning(
            user_id,
            task.reward_amount,
            EarningSource.TASK_COMPLETION,
            f"Task {task_level} completed: Watch {task.required} ads",
            metadata={
                "taskLevel": task_level,
                "required": task.required,
                "resetDate": task.reset_date,
            },
        )

        self.logger.info(
            "Task reward claimed",
            extra={
                "user_id": user_id,
                "task_level": task_level,
                "reward": str(task.reward_amount),
            },
        )
        return earning
