"""
Referral notifications.

Builds notifications for referral events.
"""

from decimal import Decimal

from adledger.models.user import User
from adledger.services.notification.core import PendingNotification


def _display_name(user: User) -> str:
    if user.username:
        return f"@{user.username}"
    return user.first_name or f"ID:{user.telegram_id}"


def referral_activated_notification(
    referrer: User,
    referee: User,
    reward_amount: Decimal,
    usd_reward_amount: Decimal = Decimal("0"),
) -> PendingNotification:
    """
    Notify referrer that an invited friend became active.

    Args:
        referrer: Inviting user
        referee: Invited user who just activated
        reward_amount: Primary token bonus credited
        usd_reward_amount: USD bonus credited (0 when disabled)

    Returns:
        Queued notification
    """
    text = (
        "Your friend is now active!\n\n"
        f"{_display_name(referee)} watched their first ad. "
        f"You received {reward_amount.normalize():f} PAD"
    )
    if usd_reward_amount > 0:
        text += f" and ${usd_reward_amount.normalize():f}"
    text += " as a referral bonus."

    return PendingNotification(
        telegram_id=referrer.telegram_id,
        text=text,
        kind="referral_activated",
        context={
            "referrer_id": referrer.id,
            "referee_id": referee.id,
            "reward_amount": str(reward_amount),
        },
    )
