"""
Core notification service.

Notifications are collected while a transaction runs and sent only after it
commits. Delivery is fire-and-forget: a failure is logged and never reaches
the ledger operation that produced the notification.
"""

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aiogram.exceptions import TelegramAPIError
from loguru import logger

from adledger.services.bot_provider import get_bot
from adledger.utils.exceptions import DownstreamNotificationError

if TYPE_CHECKING:
    from aiogram import Bot

# Seconds to wait for the Bot API before giving up on a message
TELEGRAM_TIMEOUT = 10.0

# Strong references to in-flight delivery tasks
_background_tasks: set[asyncio.Task] = set()


@dataclass
class PendingNotification:
    """
    Notification queued during a transaction.

    Attributes:
        telegram_id: Recipient chat ID
        text: Plain message text
        kind: Event type for logging
        context: Extra fields for logging
    """

    telegram_id: int
    text: str
    kind: str
    context: dict[str, Any] = field(default_factory=dict)


class Notifier:
    """Sends queued notifications through the Telegram bot."""

    def __init__(self, bot: "Bot | None" = None) -> None:
        """
        Initialize notifier.

        Args:
            bot: Bot instance (defaults to the registered bot)
        """
        self._bot = bot

    @property
    def bot(self) -> "Bot | None":
        return self._bot or get_bot()

    async def deliver(self, notification: PendingNotification) -> bool:
        """
        Send one notification.

        Returns:
            False when no bot is configured and the message was skipped

        Raises:
            DownstreamNotificationError: Bot API call failed or timed out
        """
        bot = self.bot
        if bot is None:
            logger.debug(
                "Bot not configured, notification skipped",
                extra={"kind": notification.kind, **notification.context},
            )
            return False

        try:
            await asyncio.wait_for(
                bot.send_message(
                    chat_id=notification.telegram_id, text=notification.text
                ),
                timeout=TELEGRAM_TIMEOUT,
            )
        except (TelegramAPIError, TimeoutError) as e:
            raise DownstreamNotificationError(
                f"Failed to deliver {notification.kind} notification: {e}"
            ) from e
        return True

    async def send(self, notification: PendingNotification) -> bool:
        """
        Send one notification, logging instead of raising.

        Returns:
            True if sent successfully
        """
        try:
            sent = await self.deliver(notification)
        except DownstreamNotificationError as e:
            logger.warning(
                "Notification delivery failed",
                extra={
                    "kind": notification.kind,
                    "telegram_id": notification.telegram_id,
                    "error": str(e),
                    **notification.context,
                },
            )
            return False

        if not sent:
            return False

        logger.info(
            "Notification sent",
            extra={
                "kind": notification.kind,
                "telegram_id": notification.telegram_id,
                **notification.context,
            },
        )
        return True


def dispatch_after_commit(
    notifications: list[PendingNotification],
    notifier: Notifier | None = None,
) -> list[asyncio.Task]:
    """
    Schedule delivery of notifications without awaiting them.

    Must be called after the transaction that queued them has committed.

    Args:
        notifications: Queued notifications
        notifier: Notifier to use (defaults to the registered bot)

    Returns:
        Scheduled delivery tasks
    """
    notifier = notifier or Notifier()
    tasks = []
    for notification in notifications:
        task = asyncio.create_task(notifier.send(notification))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        tasks.append(task)
    return tasks
