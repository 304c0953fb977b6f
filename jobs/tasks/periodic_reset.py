"""
Periodic reset task.

Resets per-period counters for every user whose last reset predates the
current period start. Safe to run on every scheduler tick: a second run in
the same period finds no due users.
"""

import dramatiq
import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError

from adledger.config.settings import settings
from adledger.services.tasks.periodic_reset import PeriodicResetRunner, ResetReport
from jobs.async_runner import async_actor, local_session_maker
from jobs.broker import broker  # noqa: F401

RESET_LOCK_KEY = "adledger:periodic_reset"
RESET_LOCK_TIMEOUT = 600


@dramatiq.actor(max_retries=3, time_limit=900_000)  # 15 min, longer than the lock
@async_actor
async def run_periodic_reset() -> None:
    """Run the periodic reset unless another worker already holds the lock."""
    redis_client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
    )
    lock = redis_client.lock(
        RESET_LOCK_KEY, timeout=RESET_LOCK_TIMEOUT, blocking_timeout=0
    )
    try:
        if not await lock.acquire():
            logger.info("Periodic reset already running elsewhere, skipping")
            return
        try:
            report = await _run_reset()
        finally:
            try:
                await lock.release()
            except RedisError as e:
                logger.warning(f"Failed to release periodic reset lock: {e}")
    finally:
        await redis_client.aclose()

    if report.failures:
        logger.warning(
            f"Periodic reset for {report.period_date} finished with "
            f"{report.failures} failed users (they are retried on the next tick)"
        )


async def _run_reset() -> ResetReport:
    async with local_session_maker() as session_maker:
        runner = PeriodicResetRunner(
            session_maker,
            reset_hour=settings.reset_hour_utc,
            batch_size=settings.reset_batch_size,
            retention_days=settings.task_retention_days,
        )
        return await runner.run()
