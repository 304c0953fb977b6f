"""
Referral activation engine.

A referral completes the first time its referee reaches the configured number
of ad watches. Completion snapshots the reward amounts onto the referral row
and credits the referrer exactly once.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config import setting_keys as keys
from adledger.config.app_settings import ConfigSnapshot
from adledger.models.enums import (
    Currency,
    EarningOrigin,
    EarningSource,
    ReferralStatus,
)
from adledger.models.referral import Referral
from adledger.models.user import User
from adledger.repositories.earning_repository import EarningRepository
from adledger.repositories.referral_repository import ReferralRepository
from adledger.repositories.user_repository import UserRepository
from adledger.services.base_service import BaseService
from adledger.services.notification.core import PendingNotification
from adledger.services.referral.referral_notifications import (
    referral_activated_notification,
)
from adledger.utils.datetime_utils import utc_now
from adledger.utils.exceptions import LedgerError

if TYPE_CHECKING:
    from adledger.services.ledger.earning_ledger import EarningLedger


class ReferralActivationEngine(BaseService):
    """Completes pending referrals once the referee becomes active."""

    def __init__(
        self,
        session: AsyncSession,
        config: ConfigSnapshot,
        outbox: list[PendingNotification],
        ledger: "EarningLedger",
    ) -> None:
        """
        Initialize activation engine.

        Args:
            session: Database session
            config: Settings snapshot for this operation
            outbox: Collector for post-commit notifications
            ledger: Ledger used to credit referrers
        """
        super().__init__(session)
        self.config = config
        self.outbox = outbox
        self.ledger = ledger
        self.user_repo = UserRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.earning_repo = EarningRepository(session)

    async def check_and_activate(self, user_id: int) -> list[Referral]:
        """
        Activate the user's pending referrals if the threshold is reached.

        Runs in a SAVEPOINT. Failures are logged and swallowed so they never
        fail the earning that triggered them.

        Args:
            user_id: Referee who just recorded a direct ad-watch earning

        Returns:
            Referrals completed by this call
        """
        try:
            async with self.session.begin_nested():
                activated, notifications = await self._activate(user_id)
        except (SQLAlchemyError, LedgerError) as e:
            self.logger.error(
                "Referral activation failed",
                extra={"user_id": user_id, "error": str(e)},
            )
            return []

        self.outbox.extend(notifications)
        return activated

    async def _activate(
        self, user_id: int
    ) -> tuple[list[Referral], list[PendingNotification]]:
        user = await self.user_repo.get_for_update(user_id)
        if user is None or user.first_ad_watched:
            return [], []

        ads_required = self.config.get_int(keys.REFERRAL_ADS_REQUIRED)
        ads_watched = await self.earning_repo.count_by_source(
            user_id, EarningSource.AD_WATCH
        )
        if ads_watched < ads_required:
            return [], []

        user.first_ad_watched = True
        pending = await self.referral_repo.get_pending_for_referee_for_update(
            user_id
        )

        reward_pad = self.config.get_decimal(keys.REFERRAL_REWARD_PAD)
        reward_usd = self.config.get_decimal(keys.REFERRAL_REWARD_USD)
        secondary_reward = reward_usd * self.config.get_decimal(
            keys.REFERRAL_SECONDARY_MULTIPLIER
        )
        usd_enabled = self.config.get_bool(keys.REFERRAL_REWARD_ENABLED)

        now = utc_now()
        for referral in pending:
            referral.status = ReferralStatus.COMPLETED.value
            referral.reward_amount = reward_pad
            referral.usd_reward_amount = reward_usd
            referral.secondary_reward_amount = secondary_reward
            referral.activated_at = now
        await self.session.flush()

        self.logger.info(
            "First ad watched, referrals activated",
            extra={
                "user_id": user_id,
                "ads_watched": ads_watched,
                "activated": len(pending),
            },
        )

        notifications = []
        for referral in pending:
            usd_paid = await self._reward_referrer(
                referral, user, usd_enabled
            )
            referrer = await self.user_repo.get_by_id(referral.referrer_id)
            if referrer is not None:
                notifications.append(
                    referral_activated_notification(
                        referrer, user, referral.reward_amount, usd_paid
                    )
                )

        return pending, notifications

    async def _reward_referrer(
        self, referral: Referral, referee: User, usd_enabled: bool
    ) -> Decimal:
        """Credit the referrer from the referral's snapshot. Returns USD paid."""
        metadata = {"referralId": referral.id, "refereeId": referee.id}
        description = f"Referral bonus - friend #{referee.id} watched their first ad"

        if referral.reward_amount > 0:
            await self.ledger.record_earning(
                referral.referrer_id,
                referral.reward_amount,
                EarningSource.REFERRAL,
                description,
                metadata=metadata,
                origin=EarningOrigin.DERIVED,
            )

        if not usd_enabled or referral.usd_reward_amount <= 0:
            return Decimal("0")

        await self.ledger.record_earning(
            referral.referrer_id,
            referral.usd_reward_amount,
            EarningSource.REFERRAL,
            f"{description} (USD)",
            metadata=metadata,
            currency=Currency.USD,
            origin=EarningOrigin.DERIVED,
        )
        if referral.secondary_reward_amount > 0:
            await self.ledger.record_earning(
                referral.referrer_id,
                referral.secondary_reward_amount,
                EarningSource.REFERRAL,
                f"{description} (secondary)",
                metadata=metadata,
                currency=Currency.SECONDARY,
                origin=EarningOrigin.DERIVED,
            )

        self.logger.info(
            "Referral USD bonus credited",
            extra={
                "referral_id": referral.id,
                "referrer_id": referral.referrer_id,
                "usd": str(referral.usd_reward_amount),
                "secondary": str(referral.secondary_reward_amount),
            },
        )
        return referral.usd_reward_amount
