"""
Rewards engine.

Public entry point of the ledger. Every operation runs in one database
transaction with one settings snapshot; notifications queued during the
operation are dispatched only after the transaction commits.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from adledger.config.app_settings import (
    ConfigProvider,
    ConfigSnapshot,
    DatabaseConfigProvider,
)
from adledger.models.daily_task import DailyTask
from adledger.models.earning import Earning
from adledger.models.enums import Currency, EarningSource, WithdrawalMethod
from adledger.models.referral import Referral
from adledger.models.withdrawal import Withdrawal
from adledger.services.ledger.balance_store import BalanceSnapshot, BalanceStore
from adledger.services.ledger.earning_ledger import EarningLedger
from adledger.services.notification.core import (
    Notifier,
    PendingNotification,
    dispatch_after_commit,
)
from adledger.services.referral.binding import ReferralBindingService
from adledger.services.tasks.ad_watch_service import AdWatchResult, AdWatchService
from adledger.services.tasks.daily_task_service import DailyTaskService
from adledger.services.tasks.periodic_reset import (
    PeriodicResetRunner,
    ResetReport,
)
from adledger.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
)
from adledger.services.withdrawal.withdrawal_query_service import (
    WithdrawalQueryService,
)
from adledger.services.withdrawal.withdrawal_request_handler import (
    WithdrawalReceipt,
    WithdrawalRequestHandler,
)
from adledger.utils.exceptions import BalanceUpdateError, TransientStoreError

T = TypeVar("T")

Operation = Callable[
    [AsyncSession, ConfigSnapshot, list[PendingNotification]], Awaitable[T]
]

# Retries for lock conflicts on withdrawal operations
MAX_RETRIES = 3
RETRY_DELAY_BASE = 0.5  # Base delay in seconds

# Upper bound for a single operation's transaction
DEFAULT_OPERATION_TIMEOUT = 30.0


class RewardsEngine:
    """
    Ledger and reward-distribution engine.

    Example:
        engine = RewardsEngine(async_session_maker)
        await engine.record_earning(
            user_id, Decimal("1000"), EarningSource.AD_WATCH, "Watched ad"
        )
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config_provider: ConfigProvider | None = None,
        notifier: Notifier | None = None,
        reset_hour: int = 0,
        reset_batch_size: int = 1000,
        task_retention_days: int = 7,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
    ) -> None:
        """
        Initialize rewards engine.

        Args:
            session_maker: Factory for per-operation sessions
            config_provider: Source of admin settings snapshots
            notifier: Notification sender (defaults to the registered bot)
            reset_hour: UTC hour at which periods start
            reset_batch_size: Users per reset batch
            task_retention_days: Days of task rows kept by the reset
            operation_timeout: Seconds before an operation is rolled back
        """
        self.session_maker = session_maker
        self.config_provider = config_provider or DatabaseConfigProvider()
        self.notifier = notifier or Notifier()
        self.reset_hour = reset_hour
        self.reset_batch_size = reset_batch_size
        self.task_retention_days = task_retention_days
        self.operation_timeout = operation_timeout
        self.logger = logger.bind(service=self.__class__.__name__)

    async def _execute(
        self, operation: Operation[T], keep_earning_on_balance_error: bool = False
    ) -> T:
        """
        Run an operation in one transaction and dispatch its notifications.

        Args:
            operation: Coroutine function taking (session, config, outbox)
            keep_earning_on_balance_error: Commit the transaction when the
                operation fails with BalanceUpdateError, then re-raise

        Returns:
            Operation result
        """
        outbox: list[PendingNotification] = []
        deferred: list[BalanceUpdateError] = []

        async def run() -> Any:
            async with self.session_maker() as session:
                async with session.begin():
                    config = await self.config_provider.snapshot(session)
                    try:
                        return await operation(session, config, outbox)
                    except BalanceUpdateError as e:
                        if not keep_earning_on_balance_error:
                            raise
                        deferred.append(e)
                        return None

        result = await asyncio.wait_for(run(), timeout=self.operation_timeout)
        if deferred:
            raise deferred[0]

        dispatch_after_commit(outbox, self.notifier)
        return result

    async def _execute_with_retry(self, operation: Operation[T]) -> T:
        """Run an operation, retrying the transaction on lock conflicts."""
        for attempt in range(MAX_RETRIES):
            try:
                return await self._execute(operation)
            except OperationalError as e:
                if attempt < MAX_RETRIES - 1:
                    delay = RETRY_DELAY_BASE * (2 ** attempt) + random.uniform(0, 0.1)
                    self.logger.warning(
                        "Lock conflict, retrying operation",
                        extra={"attempt": attempt + 1, "delay": round(delay, 3)},
                    )
                    await asyncio.sleep(delay)
                    continue
                raise TransientStoreError(
                    "Store is busy, try again shortly"
                ) from e
        raise TransientStoreError("Store is busy, try again shortly")

    # Ledger

    async def record_earning(
        self,
        user_id: int,
        amount: Decimal,
        source: EarningSource,
        description: str,
        metadata: dict[str, Any] | None = None,
        currency: Currency = Currency.PRIMARY,
    ) -> Earning:
        """
        Record an earning and apply it to the user's balance.

        Raises:
            BalanceUpdateError: The record was committed but the balance
                update failed
        """
        async def operation(session, config, outbox):
            ledger = EarningLedger(session, config, outbox)
            return await ledger.record_earning(
                user_id, amount, source, description, metadata, currency
            )

        return await self._execute(operation, keep_earning_on_balance_error=True)

    async def get_balance(self, user_id: int) -> BalanceSnapshot:
        """Get a user's balances (zeros when the user has none)."""
        async with self.session_maker() as session:
            return await BalanceStore(session).get_balance(user_id)

    async def reconcile(self, user_id: int) -> Decimal:
        """Sum of the user's primary earning records."""
        async with self.session_maker() as session:
            ledger = EarningLedger(session, ConfigSnapshot({}))
            return await ledger.reconcile(user_id)

    # Withdrawals

    async def create_withdrawal(
        self,
        user_id: int,
        method: WithdrawalMethod | str,
        package_selector: Decimal | float | str | None = None,
    ) -> WithdrawalReceipt:
        """Create a pending withdrawal request."""
        async def operation(session, config, outbox):
            handler = WithdrawalRequestHandler(session, config)
            return await handler.request_withdrawal(
                user_id, method, package_selector
            )

        return await self._execute_with_retry(operation)

    async def approve_withdrawal(
        self,
        withdrawal_id: int,
        admin_note: str | None = None,
        transaction_hash: str | None = None,
    ) -> Withdrawal:
        """Approve a pending withdrawal."""
        async def operation(session, config, outbox):
            handler = WithdrawalLifecycleHandler(session, config, outbox)
            return await handler.approve_withdrawal(
                withdrawal_id, admin_note, transaction_hash
            )

        return await self._execute_with_retry(operation)

    async def reject_withdrawal(
        self, withdrawal_id: int, admin_note: str | None = None
    ) -> Withdrawal:
        """Reject a pending withdrawal."""
        async def operation(session, config, outbox):
            handler = WithdrawalLifecycleHandler(session, config, outbox)
            return await handler.reject_withdrawal(withdrawal_id, admin_note)

        return await self._execute_with_retry(operation)

    async def list_pending_withdrawals(self) -> list[Withdrawal]:
        async with self.session_maker() as session:
            return await WithdrawalQueryService(session).get_pending_withdrawals()

    async def list_user_withdrawals(self, user_id: int) -> list[Withdrawal]:
        async with self.session_maker() as session:
            return await WithdrawalQueryService(session).get_user_withdrawals(
                user_id
            )

    # Referrals, ads and tasks

    async def bind_referral(self, referrer_id: int, referee_id: int) -> Referral:
        """Create a pending referral between two users."""
        async def operation(session, config, outbox):
            return await ReferralBindingService(session).bind_referral(
                referrer_id, referee_id
            )

        return await self._execute(operation)

    async def record_ad_watch(
        self, user_id: int, now: datetime | None = None
    ) -> AdWatchResult:
        """Record one watched ad and its earning."""
        async def operation(session, config, outbox):
            ledger = EarningLedger(session, config, outbox)
            service = AdWatchService(session, config, ledger, self.reset_hour)
            return await service.record_ad_watch(user_id, now)

        return await self._execute(operation, keep_earning_on_balance_error=True)

    async def claim_task_reward(
        self, user_id: int, task_level: int, now: datetime | None = None
    ) -> Earning:
        """Pay the reward of a completed daily task tier."""
        async def operation(session, config, outbox):
            ledger = EarningLedger(session, config, outbox)
            service = DailyTaskService(session, self.reset_hour, ledger)
            return await service.claim_task_reward(user_id, task_level, now)

        return await self._execute(operation, keep_earning_on_balance_error=True)

    async def get_user_daily_tasks(
        self, user_id: int, now: datetime | None = None
    ) -> list[DailyTask]:
        """Get the user's task tiers for the current period."""
        async def operation(session, config, outbox):
            service = DailyTaskService(session, self.reset_hour)
            return await service.get_user_daily_tasks(user_id, now)

        return await self._execute(operation)

    # Periodic reset

    async def run_periodic_reset(self, now: datetime | None = None) -> ResetReport:
        """Reset every user due in the period containing now."""
        runner = PeriodicResetRunner(
            self.session_maker,
            reset_hour=self.reset_hour,
            batch_size=self.reset_batch_size,
            retention_days=self.task_retention_days,
        )
        return await runner.run(now)
