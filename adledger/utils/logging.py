"""
Logging setup.

Configures the loguru logger for the engine and background workers.
Sets up log rotation and retention policies.
"""

from loguru import logger

from adledger.config.settings import settings


def setup_logging(sink: str = "logs/adledger.log") -> None:
    """Configure logger with file rotation."""
    logger.add(
        sink,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(
        "Logging configured",
        extra={"sink": sink, "environment": settings.environment},
    )
