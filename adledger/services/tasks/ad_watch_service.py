"""
Ad watch service.

Records a watched ad: enforces the per-period ad limit, advances the
activity counters and task progress, and records the ad-watch earning.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config import setting_keys as keys
from adledger.config.app_settings import ConfigSnapshot
from adledger.models.earning import Earning
from adledger.models.enums import EarningSource
from adledger.models.user import User
from adledger.repositories.user_repository import UserRepository
from adledger.services.base_service import BaseService
from adledger.services.ledger.earning_ledger import EarningLedger
from adledger.services.tasks.daily_task_service import DailyTaskService
from adledger.utils.datetime_utils import ensure_utc, period_start, utc_now
from adledger.utils.exceptions import ValidationError


@dataclass(frozen=True)
class AdWatchResult:
    """Outcome of a recorded ad watch."""

    earning: Earning
    ads_watched_today: int
    daily_limit: int


class AdWatchService(BaseService):
    """Records ad watches for users."""

    def __init__(
        self,
        session: AsyncSession,
        config: ConfigSnapshot,
        ledger: EarningLedger,
        reset_hour: int = 0,
    ) -> None:
        """
        Initialize ad watch service.

        Args:
            session: Database session (transaction owned by the caller)
            config: Settings snapshot for this operation
            ledger: Ledger recording the ad-watch earning
            reset_hour: UTC hour at which periods start
        """
        super().__init__(session)
        self.config = config
        self.ledger = ledger
        self.reset_hour = reset_hour
        self.user_repo = UserRepository(session)
        self.task_service = DailyTaskService(session, reset_hour, ledger)

    def ads_watched_in_period(self, user: User, now: datetime) -> int:
        """Ads the user watched in the period containing now."""
        if user.last_ad_date is None:
            return 0
        current = period_start(now, self.reset_hour)
        if ensure_utc(user.last_ad_date) < current:
            return 0
        return user.ads_watched_today or 0

    async def can_watch_ad(self, user_id: int, now: datetime | None = None) -> bool:
        """Check whether the user is below the per-period ad limit."""
        user = await self.user_repo.get_by_id(user_id)
        if user is None or user.is_banned:
            return False
        now = now or utc_now()
        limit = self.config.get_int(keys.DAILY_AD_LIMIT)
        return self.ads_watched_in_period(user, now) < limit

    async def record_ad_watch(
        self, user_id: int, now: datetime | None = None
    ) -> AdWatchResult:
        """
        Record one watched ad.

        Args:
            user_id: User ID
            now: Reference time

        Returns:
            Earning and the updated per-period count

        Raises:
            ValidationError: Unknown or banned user, or ad limit reached
        """
        now = now or utc_now()
        user = await self.user_repo.get_for_update(user_id)
        if user is None:
            raise ValidationError("User not found", "USER_NOT_FOUND")
        if user.is_banned:
            raise ValidationError("Account is banned", "USER_BANNED")

        limit = self.config.get_int(keys.DAILY_AD_LIMIT)
        watched = self.ads_watched_in_period(user, now)
        if watched >= limit:
            self.logger.info(
                "Daily ad limit reached",
                extra={"user_id": user_id, "limit": limit},
            )
            raise ValidationError(
                f"Daily ad limit of {limit} reached", "DAILY_AD_LIMIT"
            )

        watched += 1
        user.ads_watched_today = watched
        user.ads_watched = (user.ads_watched or 0) + 1
        user.last_ad_date = now
        await self.session.flush()

        await self.task_service.update_task_progress(user_id, watched, now)

        reward = self.config.get_decimal(keys.AD_REWARD_AMOUNT)
        earning = await self.ledger.record_earning(
            user_id,
            reward,
            EarningSource.AD_WATCH,
            "Watched ad",
            metadata={"adsWatchedToday": watched},
        )

        return AdWatchResult(
            earning=earning, ads_watched_today=watched, daily_limit=limit
        )
