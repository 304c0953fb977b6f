"""
Withdrawal notifications.

Builds notifications for withdrawal decisions.
"""

from adledger.models.user import User
from adledger.models.withdrawal import Withdrawal
from adledger.services.notification.core import PendingNotification


def withdrawal_approved_notification(
    user: User, withdrawal: Withdrawal
) -> PendingNotification:
    """
    Notify user that their withdrawal was approved.

    Args:
        user: Requesting user
        withdrawal: Approved request

    Returns:
        Queued notification
    """
    text = (
        "Withdrawal approved!\n\n"
        f"${withdrawal.amount.normalize():f} is on its way via "
        f"{withdrawal.method.upper()}."
    )
    if withdrawal.transaction_hash:
        text += f"\nTransaction: {withdrawal.transaction_hash}"

    return PendingNotification(
        telegram_id=user.telegram_id,
        text=text,
        kind="withdrawal_approved",
        context={"withdrawal_id": withdrawal.id, "user_id": user.id},
    )


def withdrawal_rejected_notification(
    user: User, withdrawal: Withdrawal
) -> PendingNotification:
    """Notify user that their withdrawal was rejected."""
    text = "Withdrawal rejected.\n\n"
    if withdrawal.refunded:
        text += f"${withdrawal.total_deducted.normalize():f} was returned to your balance."
    else:
        text += "Your balance was not charged."
    if withdrawal.admin_notes:
        text += f"\nReason: {withdrawal.admin_notes}"

    return PendingNotification(
        telegram_id=user.telegram_id,
        text=text,
        kind="withdrawal_rejected",
        context={"withdrawal_id": withdrawal.id, "user_id": user.id},
    )
