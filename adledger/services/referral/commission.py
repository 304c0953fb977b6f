"""
Commission cascade.

Pays the referrer a share of each direct ad-watch earning of their completed
referee. Commission earnings are derived and never cascade further.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config import setting_keys as keys
from adledger.config.app_settings import ConfigSnapshot
from adledger.models.earning import Earning
from adledger.models.enums import Currency, EarningOrigin, EarningSource
from adledger.models.referral_commission import ReferralCommission
from adledger.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from adledger.repositories.referral_repository import ReferralRepository
from adledger.services.base_service import BaseService
from adledger.utils.exceptions import LedgerError

if TYPE_CHECKING:
    from adledger.services.ledger.earning_ledger import EarningLedger

COMMISSION_QUANTUM = Decimal("0.00000001")


def calculate_commission(amount: Decimal, rate: Decimal) -> Decimal:
    """Commission on amount at rate, rounded to 8 places."""
    return (amount * rate).quantize(COMMISSION_QUANTUM, rounding=ROUND_HALF_UP)


class CommissionCascade(BaseService):
    """Pays referral commissions on direct ad-watch earnings."""

    def __init__(
        self,
        session: AsyncSession,
        config: ConfigSnapshot,
        ledger: "EarningLedger",
    ) -> None:
        super().__init__(session)
        self.config = config
        self.ledger = ledger
        self.referral_repo = ReferralRepository(session)
        self.commission_repo = ReferralCommissionRepository(session)

    @staticmethod
    def is_eligible(earning: Earning) -> bool:
        """Only direct, positive, primary ad-watch earnings pay commission."""
        return (
            earning.origin == EarningOrigin.DIRECT
            and earning.source == EarningSource.AD_WATCH
            and earning.currency == Currency.PRIMARY
            and earning.amount > 0
        )

    async def process(self, earning: Earning) -> ReferralCommission | None:
        """
        Pay the commission for one earning, if any is due.

        Runs in a SAVEPOINT. Failures are logged and swallowed.

        Args:
            earning: Originating earning record

        Returns:
            Commission row or None when nothing was paid
        """
        if not self.is_eligible(earning):
            return None

        try:
            async with self.session.begin_nested():
                return await self._pay(earning)
        except (SQLAlchemyError, LedgerError) as e:
            self.logger.error(
                "Referral commission failed",
                extra={
                    "earning_id": earning.id,
                    "user_id": earning.user_id,
                    "error": str(e),
                },
            )
            return None

    async def _pay(self, earning: Earning) -> ReferralCommission | None:
        referral = await self.referral_repo.get_completed_for_referee(
            earning.user_id
        )
        if referral is None:
            return None

        rate = self.config.get_decimal(keys.REFERRAL_COMMISSION_RATE)
        amount = calculate_commission(earning.amount, rate)
        if amount <= 0:
            return None

        commission = await self.commission_repo.create(
            referrer_id=referral.referrer_id,
            referred_user_id=earning.user_id,
            original_earning_id=earning.id,
            commission_amount=amount,
        )
        await self.ledger.record_earning(
            referral.referrer_id,
            amount,
            EarningSource.REFERRAL_COMMISSION,
            f"Referral commission from friend #{earning.user_id}",
            metadata={
                "originalEarningId": earning.id,
                "refereeId": earning.user_id,
                "rate": str(rate),
            },
            origin=EarningOrigin.DERIVED,
        )

        self.logger.info(
            "Referral commission paid",
            extra={
                "referrer_id": referral.referrer_id,
                "referee_id": earning.user_id,
                "earning_id": earning.id,
                "commission": str(amount),
            },
        )
        return commission
