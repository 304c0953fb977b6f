"""
Periodic reset.

Zeroes the per-period activity counters and seeds the next period's task
rows. The user's last_reset_at is the idempotency key: a user whose
last_reset_at is at or after the current period start is skipped, so running
the reset twice in one period changes nothing the second time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from adledger.models.user import User
from adledger.repositories.daily_task_repository import DailyTaskRepository
from adledger.repositories.user_repository import UserRepository
from adledger.services.base_service import BaseService, log_operation
from adledger.services.tasks.daily_task_service import task_rows_for_period
from adledger.utils.datetime_utils import period_start


@dataclass
class ResetReport:
    """
    Outcome of one reset run.

    Attributes:
        period_date: Period bucket that was reset into (YYYY-MM-DD)
        users_reset: Users whose counters were reset
        failures: Users skipped because their reset failed
        tasks_deleted: Expired task rows removed
    """

    period_date: str
    users_reset: int = 0
    failures: int = 0
    tasks_deleted: int = 0

    @property
    def is_noop(self) -> bool:
        return self.users_reset == 0 and self.failures == 0


@dataclass
class BatchResult:
    """Outcome of one reset batch."""

    processed: int = 0
    reset: int = 0
    failures: int = 0
    last_user_id: int = 0


class PeriodicResetService(BaseService):
    """Resets one batch of users inside the caller's transaction."""

    def __init__(
        self,
        session: AsyncSession,
        batch_size: int = 1000,
        retention_days: int = 7,
    ) -> None:
        super().__init__(session)
        self.batch_size = batch_size
        self.retention_days = retention_days
        self.user_repo = UserRepository(session)
        self.task_repo = DailyTaskRepository(session)

    async def reset_batch(
        self, current_period_start: datetime, after_id: int = 0
    ) -> BatchResult:
        """
        Reset the next batch of due users.

        Each user is reset in its own SAVEPOINT; a failing user is logged
        and skipped without affecting the rest of the batch.

        Args:
            current_period_start: Start of the current period
            after_id: Batch cursor (last user ID of the previous batch)

        Returns:
            Batch counts and the new cursor
        """
        users = await self.user_repo.find_due_for_reset(
            current_period_start, self.batch_size, after_id=after_id
        )
        result = BatchResult(processed=len(users), last_user_id=after_id)
        period_key = current_period_start.date().isoformat()

        for user in users:
            result.last_user_id = user.id
            try:
                async with self.session.begin_nested():
                    await self._reset_user(user, current_period_start, period_key)
            except SQLAlchemyError as e:
                result.failures += 1
                self.logger.error(
                    "Failed to reset user",
                    extra={"user_id": user.id, "error": str(e)},
                )
                continue
            result.reset += 1

        return result

    async def _reset_user(
        self, user: User, current_period_start: datetime, period_key: str
    ) -> None:
        user.ads_watched_today = 0
        user.channel_visited = False
        user.app_shared = False
        user.link_shared = False
        user.friend_invited = False
        user.friends_invited = 0
        user.last_reset_at = current_period_start
        user.last_reset_date = period_key
        await self.session.flush()

        await self.task_repo.insert_or_ignore(
            task_rows_for_period(user.id, period_key)
        )

    async def cleanup_tasks(self, current_period_start: datetime) -> int:
        """
        Delete task rows older than the retention window.

        Returns:
            Number of rows deleted
        """
        cutoff = (
            current_period_start - timedelta(days=self.retention_days)
        ).date().isoformat()
        deleted = await self.task_repo.delete_older_than(cutoff)
        if deleted:
            self.logger.info(
                "Expired task rows deleted",
                extra={"cutoff": cutoff, "deleted": deleted},
            )
        return deleted


class PeriodicResetRunner:
    """Runs a full reset, one transaction per batch."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        reset_hour: int = 0,
        batch_size: int = 1000,
        retention_days: int = 7,
    ) -> None:
        """
        Initialize reset runner.

        Args:
            session_maker: Factory for per-batch sessions
            reset_hour: UTC hour at which periods start
            batch_size: Users per batch
            retention_days: Days of task rows kept
        """
        self.session_maker = session_maker
        self.reset_hour = reset_hour
        self.batch_size = batch_size
        self.retention_days = retention_days
        self.logger = logger.bind(service=self.__class__.__name__)

    def _service(self, session: AsyncSession) -> PeriodicResetService:
        return PeriodicResetService(
            session,
            batch_size=self.batch_size,
            retention_days=self.retention_days,
        )

    @log_operation
    async def run(self, now: datetime | None = None) -> ResetReport:
        """
        Reset every user due in the period containing now.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Reset report
        """
        current = period_start(now, self.reset_hour)
        report = ResetReport(period_date=current.date().isoformat())

        after_id = 0
        while True:
            async with self.session_maker() as session:
                async with session.begin():
                    batch = await self._service(session).reset_batch(
                        current, after_id=after_id
                    )
            report.users_reset += batch.reset
            report.failures += batch.failures
            after_id = batch.last_user_id
            if batch.processed < self.batch_size:
                break

        async with self.session_maker() as session:
            async with session.begin():
                report.tasks_deleted = await self._service(
                    session
                ).cleanup_tasks(current)

        if report.is_noop:
            self.logger.debug(
                "Periodic reset found no due users",
                extra={"period_date": report.period_date},
            )
        else:
            self.logger.info(
                "Periodic reset completed",
                extra={
                    "period_date": report.period_date,
                    "users_reset": report.users_reset,
                    "failures": report.failures,
                    "tasks_deleted": report.tasks_deleted,
                },
            )
        return report
