"""
Admin setting keys and their defaults.

Admin settings are plain key -> string pairs. Every key the engine reads is
listed here together with the value used when the admin never set it.
"""

from adledger.models.enums import WithdrawalMethod

# Referral activation
REFERRAL_ADS_REQUIRED = "referral_ads_required"
REFERRAL_REWARD_ENABLED = "referral_reward_enabled"
REFERRAL_REWARD_PAD = "referral_reward_pad"
REFERRAL_REWARD_USD = "referral_reward_usd"
REFERRAL_SECONDARY_MULTIPLIER = "referral_secondary_multiplier"
REFERRAL_COMMISSION_RATE = "referral_commission_rate"

# Withdrawal gating
SECONDARY_PER_USD = "secondary_per_usd"
WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED = "withdrawal_secondary_requirement_enabled"
WITHDRAWAL_AD_REQUIREMENT_ENABLED = "withdrawal_ad_requirement_enabled"
MINIMUM_ADS_FOR_WITHDRAWAL = "minimum_ads_for_withdrawal"
WITHDRAWAL_INVITE_REQUIREMENT_ENABLED = "withdrawal_invite_requirement_enabled"
MINIMUM_INVITES_FOR_WITHDRAWAL = "minimum_invites_for_withdrawal"
WITHDRAWAL_PACKAGES = "withdrawal_packages"
WITHDRAWAL_WITHHOLD_ON_SUBMIT = "withdrawal_withhold_on_submit"

# Ads
DAILY_AD_LIMIT = "daily_ad_limit"
AD_REWARD_AMOUNT = "ad_reward_amount"


def withdrawal_fee_key(method: WithdrawalMethod) -> str:
    """Fee percentage key for a payment rail."""
    return f"withdrawal_fee_{method.value}"


def minimum_withdrawal_key(method: WithdrawalMethod) -> str:
    """Minimum withdrawal amount key for a payment rail."""
    return f"minimum_withdrawal_{method.value}"


DEFAULTS: dict[str, str] = {
    REFERRAL_ADS_REQUIRED: "1",
    REFERRAL_REWARD_ENABLED: "false",
    REFERRAL_REWARD_PAD: "50",
    REFERRAL_REWARD_USD: "0.0005",
    REFERRAL_SECONDARY_MULTIPLIER: "50",
    REFERRAL_COMMISSION_RATE: "0.10",
    SECONDARY_PER_USD: "10000",
    WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED: "true",
    WITHDRAWAL_AD_REQUIREMENT_ENABLED: "false",
    MINIMUM_ADS_FOR_WITHDRAWAL: "100",
    WITHDRAWAL_INVITE_REQUIREMENT_ENABLED: "false",
    MINIMUM_INVITES_FOR_WITHDRAWAL: "3",
    WITHDRAWAL_PACKAGES: '[{"usd": 0.2}, {"usd": 0.4}, {"usd": 0.8}]',
    WITHDRAWAL_WITHHOLD_ON_SUBMIT: "false",
    DAILY_AD_LIMIT: "160",
    AD_REWARD_AMOUNT: "1000",
    withdrawal_fee_key(WithdrawalMethod.TON): "5",
    withdrawal_fee_key(WithdrawalMethod.USDT): "5",
    withdrawal_fee_key(WithdrawalMethod.STARS): "5",
    minimum_withdrawal_key(WithdrawalMethod.TON): "0.5",
    minimum_withdrawal_key(WithdrawalMethod.USDT): "0.01",
    minimum_withdrawal_key(WithdrawalMethod.STARS): "1.00",
}
