"""
Health check server for the reset scheduler.

Exposes /health (scheduler and job state) and /liveness over aiohttp.
"""

import asyncio

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

_scheduler: AsyncIOScheduler | None = None


def set_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Register the scheduler reported by /health."""
    global _scheduler
    _scheduler = scheduler


async def health_handler(request: web.Request) -> web.Response:
    """Report whether the scheduler is running and when each job fires next."""
    if _scheduler is None:
        return web.json_response(
            {"status": "unhealthy", "error": "Scheduler not initialized"},
            status=503,
        )

    jobs = [
        {
            "id": job.id,
            "next_run_time": (
                job.next_run_time.isoformat() if job.next_run_time else None
            ),
        }
        for job in _scheduler.get_jobs()
    ]
    running = _scheduler.running
    return web.json_response(
        {
            "status": "healthy" if running else "stopped",
            "scheduler_running": running,
            "jobs": jobs,
        },
        status=200 if running else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive"})


def create_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    host: str = "0.0.0.0",
    port: int = 8081,
) -> web.AppRunner:
    """
    Start the health check server.

    Args:
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner to pass to stop_health_server
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    await web.TCPSite(runner, host, port).start()
    logger.info(f"Health check server started on {host}:{port}")
    return runner


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """Stop the health check server, giving up after timeout seconds."""
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
