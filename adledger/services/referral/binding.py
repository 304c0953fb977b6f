"""
Referral binding.

Links a new user to the user whose referral code they arrived with, and
answers referral queries.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.models.enums import Currency, EarningSource, ReferralStatus
from adledger.models.referral import Referral
from adledger.models.user import User
from adledger.repositories.earning_repository import EarningRepository
from adledger.repositories.referral_repository import ReferralRepository
from adledger.repositories.user_repository import UserRepository
from adledger.services.base_service import BaseService
from adledger.utils.exceptions import ValidationError


class ReferralBindingService(BaseService):
    """Creates pending referrals and serves referral lookups."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.earning_repo = EarningRepository(session)

    async def bind_referral(self, referrer_id: int, referee_id: int) -> Referral:
        """
        Create a pending referral between two users.

        Args:
            referrer_id: Inviting user ID
            referee_id: Invited user ID

        Returns:
            New pending referral

        Raises:
            ValidationError: Self-referral, unknown user, duplicate pair or
                referee already referred
        """
        if referrer_id == referee_id:
            raise ValidationError("Users cannot refer themselves", "SELF_REFERRAL")

        referrer = await self.user_repo.get_by_id(referrer_id)
        if referrer is None:
            raise ValidationError("Referrer not found", "REFERRER_NOT_FOUND")

        referee = await self.user_repo.get_for_update(referee_id)
        if referee is None:
            raise ValidationError("Referred user not found", "REFEREE_NOT_FOUND")

        if await self.referral_repo.get_pair(referrer_id, referee_id):
            raise ValidationError("Referral already exists", "DUPLICATE_REFERRAL")

        if await self.referral_repo.get_by_referee(referee_id):
            raise ValidationError(
                "User already has a referrer", "ALREADY_REFERRED"
            )

        referral = await self.referral_repo.create(
            referrer_id=referrer_id,
            referee_id=referee_id,
            status=ReferralStatus.PENDING.value,
            reward_amount=Decimal("0"),
            usd_reward_amount=Decimal("0"),
            secondary_reward_amount=Decimal("0"),
        )
        referee.referred_by = referrer.referral_code
        referrer.friends_invited = (referrer.friends_invited or 0) + 1
        referrer.friend_invited = True
        await self.session.flush()

        self.logger.info(
            "Referral bound",
            extra={
                "referral_id": referral.id,
                "referrer_id": referrer_id,
                "referee_id": referee_id,
            },
        )
        return referral

    async def resolve_referral_code(self, code: str) -> User | None:
        """
        Find the owner of a referral code.

        Args:
            code: Referral code (surrounding whitespace ignored)

        Returns:
            User or None
        """
        code = (code or "").strip()
        if not code:
            return None
        return await self.user_repo.get_by_referral_code(code)

    async def count_total_invites(self, user_id: int) -> int:
        """Number of users the user has invited (any status)."""
        return await self.referral_repo.count(referrer_id=user_id)

    async def get_referral_earnings_total(self, user_id: int) -> Decimal:
        """Primary tokens earned from referral bonuses and commissions."""
        bonuses = await self.earning_repo.sum_amount(
            user_id, Currency.PRIMARY, EarningSource.REFERRAL
        )
        commissions = await self.earning_repo.sum_amount(
            user_id, Currency.PRIMARY, EarningSource.REFERRAL_COMMISSION
        )
        return bonuses + commissions
