"""Provider for the bot instance without circular imports."""
from collections.abc import Callable

from aiogram import Bot
from loguru import logger

_bot_getter: Callable[[], Bot | None] | None = None


def set_bot_getter(getter: Callable[[], Bot | None] | None) -> None:
    """Register the function returning the bot. Called at process startup."""
    global _bot_getter
    _bot_getter = getter


def get_bot() -> Bot | None:
    """Get the bot instance, or None when notifications are disabled."""
    if _bot_getter is None:
        return None
    return _bot_getter()


def init_bot(token: str | None) -> Bot | None:
    """
    Create the notification bot and register it.

    Args:
        token: Telegram bot token (None disables notifications)

    Returns:
        Registered bot or None
    """
    if not token:
        logger.info("Telegram bot token not set, notifications disabled")
        set_bot_getter(None)
        return None

    bot = Bot(token=token)
    set_bot_getter(lambda: bot)
    return bot
