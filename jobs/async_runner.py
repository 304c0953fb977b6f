"""
Async runner for dramatiq actors.

Dramatiq actors are synchronous; each worker thread gets its own event loop
and a NullPool engine so asyncpg connections never cross loops.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Callable, Coroutine
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from adledger.config.database import create_engine, create_session_maker

T = TypeVar("T")

_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """Get or create the event loop bound to the current thread."""
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.loop = loop
        logger.debug(
            f"Created new event loop for thread {threading.current_thread().name}"
        )
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine on the thread's event loop.

    Args:
        coro: Coroutine to run

    Returns:
        Result of the coroutine
    """
    loop = get_event_loop()
    try:
        return loop.run_until_complete(coro)
    except Exception as e:
        logger.exception(f"Error running async coroutine: {e}")
        raise


def async_actor(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., T]:
    """
    Wrap an async function so dramatiq can call it synchronously.

    Usage:
        @dramatiq.actor
        @async_actor
        async def my_task():
            ...
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        return run_async(func(*args, **kwargs))

    return wrapper


@asynccontextmanager
async def local_session_maker() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Session maker bound to a throwaway engine for the current event loop.

    Yields:
        async_sessionmaker whose engine is disposed on exit
    """
    engine = create_engine(poolclass=NullPool)
    try:
        yield create_session_maker(engine)
    finally:
        await engine.dispose()
