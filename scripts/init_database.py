#!/usr/bin/env python3
"""Create ledger tables directly from the models (local and test setups)."""

import asyncio
import sys

from loguru import logger

from adledger.config.database import async_engine
from adledger.models import Base

logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all database tables."""
    async with async_engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    await async_engine.dispose()
    logger.success("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
