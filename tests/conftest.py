"""Pytest configuration and shared fixtures for all tests."""

import asyncio
import itertools
import os
from decimal import Decimal
from unittest.mock import AsyncMock

# Minimal environment for Settings; tests never talk to a real server
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from adledger.config import setting_keys as keys
from adledger.config.app_settings import StaticConfigProvider
from adledger.config.database import create_session_maker
from adledger.models import Base, Earning, Referral, User, Withdrawal
from adledger.models.enums import Currency, EarningSource
from adledger.services.notification import core as notification_core
from adledger.services.notification.core import Notifier
from adledger.services.rewards_engine import RewardsEngine


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with SAVEPOINT support and all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return create_session_maker(db_engine)


@pytest_asyncio.fixture
async def serialized_session_maker(tmp_path):
    """
    File-backed SQLite with one connection per session.

    BEGIN IMMEDIATE makes each transaction wait for the previous writer,
    so concurrent operations see each other's committed state.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield create_session_maker(engine)
    await engine.dispose()


@pytest.fixture
def mock_bot():
    """Mock Telegram Bot."""
    bot = AsyncMock()
    bot.send_message = AsyncMock()
    return bot


@pytest.fixture
def default_config():
    """Settings used by engine tests unless a test overrides them."""
    return {
        keys.WITHDRAWAL_SECONDARY_REQUIREMENT_ENABLED: "false",
    }


@pytest.fixture
def make_engine(session_maker, mock_bot, default_config):
    """Factory for engines with per-test admin settings."""

    def factory(**overrides: str) -> RewardsEngine:
        values = {**default_config, **overrides}
        return RewardsEngine(
            session_maker,
            config_provider=StaticConfigProvider(values),
            notifier=Notifier(bot=mock_bot),
        )

    return factory


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def make_user(session_maker):
    """Factory creating committed users."""
    counter = itertools.count(1)

    async def factory(**overrides) -> User:
        n = next(counter)
        data = {
            "telegram_id": 700000000 + n,
            "username": f"user{n}",
            "first_name": f"User {n}",
            "referral_code": f"REF{n:05d}",
        }
        data.update(overrides)
        async with session_maker() as session:
            async with session.begin():
                user = User(**data)
                session.add(user)
        return user

    return factory


@pytest.fixture
def fetch(session_maker):
    """Load fresh rows outside the engine."""

    class Fetcher:
        async def user(self, user_id: int) -> User:
            async with session_maker() as session:
                return await session.get(User, user_id)

        async def withdrawal(self, withdrawal_id: int) -> Withdrawal:
            async with session_maker() as session:
                return await session.get(Withdrawal, withdrawal_id)

        async def referral(self, referee_id: int) -> Referral | None:
            async with session_maker() as session:
                result = await session.execute(
                    select(Referral).where(Referral.referee_id == referee_id)
                )
                return result.scalar_one_or_none()

        async def earnings(
            self, user_id: int, source: EarningSource | None = None
        ) -> list[Earning]:
            async with session_maker() as session:
                stmt = (
                    select(Earning)
                    .where(Earning.user_id == user_id)
                    .order_by(Earning.id)
                )
                if source is not None:
                    stmt = stmt.where(Earning.source == source.value)
                result = await session.execute(stmt)
                return list(result.scalars().all())

    return Fetcher()


@pytest.fixture
def fund(engine):
    """Credit a user through the ledger."""

    async def factory(
        user_id: int,
        amount: str,
        currency: Currency = Currency.USD,
    ) -> None:
        await engine.record_earning(
            user_id,
            Decimal(amount),
            EarningSource.PROMO_CODE,
            "Test funding",
            currency=currency,
        )

    return factory


@pytest.fixture
def drain_notifications():
    """Wait for notifications dispatched after commit."""

    async def drain() -> None:
        pending = list(notification_core._background_tasks)
        if pending:
            await asyncio.gather(*pending)

    return drain
