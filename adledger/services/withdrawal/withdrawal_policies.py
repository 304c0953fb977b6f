"""
Withdrawal policies.

Each eligibility rule is a policy object evaluated against a
WithdrawalContext. Policies run inside the transaction that holds the user's
balance row lock, so the balances they read cannot change before the request
is persisted.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from adledger.config import setting_keys as keys
from adledger.config.app_settings import ConfigSnapshot
from adledger.models.enums import EarningSource, WithdrawalMethod
from adledger.models.user import User
from adledger.models.user_balance import UserBalance
from adledger.repositories.earning_repository import EarningRepository
from adledger.repositories.referral_repository import ReferralRepository
from adledger.repositories.withdrawal_repository import WithdrawalRepository
from adledger.utils.exceptions import ValidationError

FULL_BALANCE = "FULL"
FEE_QUANTUM = Decimal("0.00000001")


@dataclass(frozen=True)
class WithdrawalPackage:
    """Resolved withdrawal amount and its secondary token requirement."""

    amount: Decimal
    secondary_required: Decimal
    selector: str


@dataclass
class ValidationResult:
    """Result of a withdrawal policy check."""

    is_valid: bool
    error_message: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True)

    @classmethod
    def error(
        cls, message: str, code: str | None = None
    ) -> "ValidationResult":
        """Create an error validation result."""
        return cls(is_valid=False, error_message=message, error_code=code)


@dataclass
class WithdrawalContext:
    """
    Everything a policy needs to judge one withdrawal request.

    Attributes:
        user: Requesting user
        balance: Balance row, locked by the caller
        method: Payment rail
        package: Resolved amount and secondary requirement
        fee: Fee for this request
        config: Settings snapshot for this operation
        last_terminal_at: When the user's last request was settled
    """

    user: User
    balance: UserBalance
    method: WithdrawalMethod
    package: WithdrawalPackage
    fee: Decimal
    config: ConfigSnapshot
    last_terminal_at: datetime | None = None


def calculate_fee(amount: Decimal, fee_percent: Decimal) -> Decimal:
    """Fee for a gross amount at a percentage, rounded to 8 places."""
    return (amount * fee_percent / Decimal("100")).quantize(
        FEE_QUANTUM, rounding=ROUND_HALF_UP
    )


def secondary_requirement(amount: Decimal, per_usd: Decimal) -> Decimal:
    """Secondary tokens required to withdraw amount USD (rounded up)."""
    return (amount * per_usd).to_integral_value(rounding=ROUND_CEILING)


def resolve_package(
    selector: Decimal | float | str | None,
    usd_balance: Decimal,
    config: ConfigSnapshot,
) -> WithdrawalPackage:
    """
    Resolve a package selector to an amount.

    Args:
        selector: Package USD amount, or None / "FULL" for the whole balance
        usd_balance: Current USD balance
        config: Settings snapshot

    Returns:
        Resolved package

    Raises:
        ValidationError: Selector is not one of the configured packages
    """
    per_usd = config.get_decimal(keys.SECONDARY_PER_USD)

    if selector is None or str(selector).strip().upper() == FULL_BALANCE:
        return WithdrawalPackage(
            amount=usd_balance,
            secondary_required=secondary_requirement(usd_balance, per_usd),
            selector=FULL_BALANCE,
        )

    try:
        amount = Decimal(str(selector))
    except InvalidOperation:
        raise ValidationError(
            f"Invalid withdrawal package: {selector}", "INVALID_PACKAGE"
        ) from None

    packages = config.get_json(keys.WITHDRAWAL_PACKAGES)
    if isinstance(packages, str):
        packages = json.loads(packages)

    for package in packages or []:
        try:
            package_usd = Decimal(str(package["usd"]))
        except (KeyError, TypeError, InvalidOperation):
            continue
        if package_usd != amount:
            continue

        explicit = package.get("secondary", package.get("bug"))
        required = (
            Decimal(str(explicit))
            if explicit is not None
            else secondary_requirement(amount, per_usd)
        )
        return WithdrawalPackage(
            amount=amount,
            secondary_required=required,
            selector=str(package_usd),
        )

    raise ValidationError(
        f"Unknown withdrawal package: {selector}", "UNKNOWN_PACKAGE"
    )


class WithdrawalPolicy:
    """Base class for withdrawal eligibility rules."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def evaluate(self, ctx: WithdrawalContext) -> ValidationResult:
        raise NotImplementedError


class PendingRequestPolicy(WithdrawalPolicy):
    """At most one pending request per user."""

    async def evaluate(self, ctx: WithdrawalContext) -> ValidationResult:
        pending = await WithdrawalRepository(self.session).get_pending_for_user(
            ctx.user.id
        )
        if pending is not None:
            return ValidationResult.error(
                "You already have a pending withdrawal request",
                "PENDING_REQUEST",
            )
        return ValidationResult.success()


class InviteRequirementPolicy(WithdrawalPolicy):
    """Completed invites since the last settled withdrawal."""

    async def evaluate(self, ctx: WithdrawalContext) -> ValidationResult:
        if not ctx.config.get_bool(keys.WITHDRAWAL_INVITE_REQUIREMENT_ENABLED):
            return ValidationResult.success()

        required = ctx.config.get_int(keys.MINIMUM_INVITES_FOR_WITHDRAWAL)
        invites = await ReferralRepository(self.session).count_completed(
            ctx.user.id, since=ctx.last_terminal_at
        )
        if invites < required:
            return ValidationResult.error(
                f"Invite {required - invites} more active friend(s) to withdraw",
                "INVITES_REQUIRED",
            )
        return ValidationResult.success()


class AdRequirementPolicy(WithdrawalPolicy):
    """Ads watched since the last settled withdrawal."""

    async def evaluate(self, ctx: WithdrawalContext) -> ValidationResult:
        if not ctx.config.get_bool(keys.WITHDRAWAL_AD_REQUIREMENT_ENABLED):
            return ValidationResult.success()

        required = ctx.config.get_int(keys.MINIMUM_ADS_FOR_WITHDRAWAL)
        ads = await EarningRepository(self.session).count_by_source(
            ctx.user.id, EarningSource.AD_WATCH, since=ctx.last_terminal_at
        )
        if ads < required:
            return ValidationResult.error(
                f"Watch {required - ads} more ad(s) to withdraw",
                "ADS_REQUIRED",
            )
        return ValidationResult.success()


class SecondaryTokenPolicy(WithdrawalPolicy):
    """Secondary token balance covers the package requirement."""

    async def evaluate(self, ctx: WithdrawalContext) -> ValidationResult:
        if not ctx.config.get_bool(
            keys.WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED
        ):
            return ValidationResult.success()

        required = ctx.package.secondary_required
        if ctx.balance.secondary_balance < required:
            return ValidationResult.error(
                f"Insufficient secondary balance: {required.normalize():f} required",
                "SECONDARY_REQUIRED",
            )
        return ValidationResult.success()


class DestinationPolicy(WithdrawalPolicy):
    """Payout handle registered for the rail."""

    async def evaluate(self, ctx: WithdrawalContext) -> ValidationResult:
        destination = ctx.user.destination_for(ctx.method)
        if not destination or not destination.strip():
            return ValidationResult.error(
                f"Set your {ctx.method.value.upper()} payout address first",
                "DESTINATION_MISSING",
            )
        return ValidationResult.success()


class AmountPolicy(WithdrawalPolicy):
    """Amount within rail minimum and USD balance, fee below amount."""

    async def evaluate(self, ctx: WithdrawalContext) -> ValidationResult:
        amount = ctx.package.amount
        if amount <= 0:
            return ValidationResult.error(
                "Nothing to withdraw", "INVALID_AMOUNT"
            )

        minimum = ctx.config.get_decimal(keys.minimum_withdrawal_key(ctx.method))
        if amount < minimum:
            return ValidationResult.error(
                f"Minimum withdrawal is ${minimum.normalize():f}",
                "MIN_AMOUNT",
            )

        if amount > ctx.balance.usd_balance:
            return ValidationResult.error(
                "Insufficient balance", "INSUFFICIENT_BALANCE"
            )

        if ctx.fee >= amount:
            return ValidationResult.error(
                "Fee exceeds withdrawal amount", "FEE_TOO_HIGH"
            )
        return ValidationResult.success()


DEFAULT_POLICIES: tuple[type[WithdrawalPolicy], ...] = (
    PendingRequestPolicy,
    InviteRequirementPolicy,
    AdRequirementPolicy,
    SecondaryTokenPolicy,
    DestinationPolicy,
    AmountPolicy,
)
