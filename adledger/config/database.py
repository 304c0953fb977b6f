"""
Database configuration.

Async SQLAlchemy engine and session maker shared by the engine facade,
background jobs and scripts.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from adledger.config.settings import settings


def create_engine(database_url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine for the configured database."""
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        **kwargs,
    )


def create_session_maker(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create a session maker bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)
