"""
Model enumerations.

String enums stored as plain strings in the database.
"""

from enum import StrEnum


class Currency(StrEnum):
    """Balance column an earning applies to."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    USD = "usd"
    BONUS = "bonus"


class EarningSource(StrEnum):
    """What produced an earning record."""

    AD_WATCH = "ad_watch"
    REFERRAL = "referral"
    REFERRAL_COMMISSION = "referral_commission"
    DAILY_TASK_COMPLETION = "daily_task_completion"
    TASK_COMPLETION = "task_completion"
    PROMO_CODE = "promo_code"
    WITHDRAWAL = "withdrawal"
    WITHDRAWAL_REFUND = "withdrawal_refund"
    BONUS_CLAIM = "bonus_claim"


class EarningOrigin(StrEnum):
    """
    Whether an earning came from a user action or from another earning.

    Derived earnings never trigger activation or commissions.
    """

    DIRECT = "direct"
    DERIVED = "derived"


# Sources that are always produced by the engine itself
DERIVED_SOURCES = frozenset(
    {EarningSource.REFERRAL, EarningSource.REFERRAL_COMMISSION}
)


class ReferralStatus(StrEnum):
    """Referral activation state."""

    PENDING = "pending"
    COMPLETED = "completed"


class WithdrawalStatus(StrEnum):
    """Withdrawal request state."""

    PENDING = "pending"
    APPROVED = "Approved"
    REJECTED = "rejected"


class WithdrawalMethod(StrEnum):
    """Payment rail of a withdrawal."""

    TON = "ton"
    USDT = "usdt"
    STARS = "stars"
