"""
Reset scheduler.

Enqueues the periodic reset actor every few minutes. The reset itself is
idempotent per period, so ticks that land mid-period are no-ops.

Usage:
    python -m jobs.scheduler
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from adledger.config.settings import settings
from adledger.utils.logging import setup_logging
from jobs.health import set_scheduler, start_health_server, stop_health_server
from jobs.tasks.periodic_reset import run_periodic_reset


def enqueue_periodic_reset() -> None:
    run_periodic_reset.send()
    logger.debug("Periodic reset enqueued")


def create_scheduler() -> AsyncIOScheduler:
    """Build the scheduler with the reset job registered."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        enqueue_periodic_reset,
        "interval",
        minutes=settings.reset_check_interval_minutes,
        id="periodic_reset",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def main() -> None:
    setup_logging("logs/scheduler.log")

    scheduler = create_scheduler()
    scheduler.start()
    set_scheduler(scheduler)
    # First check right away so a restart after the boundary does not wait a tick
    enqueue_periodic_reset()

    runner = await start_health_server(port=settings.health_check_port)
    logger.info(
        f"Scheduler started, reset check every "
        f"{settings.reset_check_interval_minutes} min at reset hour "
        f"{settings.reset_hour_utc:02d}:00 UTC"
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
