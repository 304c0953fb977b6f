"""
Integration tests for the periodic reset.

Covers:
- Counters zeroed and task rows seeded once per period
- Second run in the same period is a no-op
- Batching across many users
- Expired task rows removed
- A failing user does not abort the batch
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from adledger.models import DailyTask
from adledger.services.tasks.periodic_reset import (
    PeriodicResetRunner,
    PeriodicResetService,
)

NOW = datetime(2026, 3, 10, 12, tzinfo=UTC)


@pytest.fixture
def count_tasks(session_maker):
    async def counter(user_id: int, reset_date: str | None = None) -> int:
        async with session_maker() as session:
            stmt = select(func.count(DailyTask.id)).where(
                DailyTask.user_id == user_id
            )
            if reset_date is not None:
                stmt = stmt.where(DailyTask.reset_date == reset_date)
            return (await session.execute(stmt)).scalar()

    return counter


class TestPeriodicReset:
    """Once per period for every user."""

    @pytest.mark.asyncio
    async def test_reset_and_noop(self, engine, make_user, fetch, count_tasks):
        user = await make_user()

        report = await engine.run_periodic_reset(now=NOW)

        assert report.period_date == "2026-03-10"
        assert report.users_reset == 1
        assert report.failures == 0
        stored = await fetch.user(user.id)
        assert stored.last_reset_date == "2026-03-10"
        assert stored.last_reset_at is not None
        assert await count_tasks(user.id, "2026-03-10") == 9

        again = await engine.run_periodic_reset(now=NOW + timedelta(hours=3))
        assert again.is_noop

    @pytest.mark.asyncio
    async def test_next_period_zeroes_counters(
        self, engine, make_user, fetch, count_tasks
    ):
        referrer = await make_user()
        referee = await make_user()
        await engine.run_periodic_reset(now=NOW)
        await engine.bind_referral(referrer.id, referee.id)
        await engine.record_ad_watch(referrer.id, now=NOW)
        await engine.record_ad_watch(referrer.id, now=NOW)

        stored = await fetch.user(referrer.id)
        assert stored.ads_watched_today == 2
        assert stored.friend_invited is True

        tomorrow = NOW + timedelta(days=1)
        report = await engine.run_periodic_reset(now=tomorrow)

        assert report.users_reset == 2
        stored = await fetch.user(referrer.id)
        assert stored.ads_watched_today == 0
        assert stored.ads_watched == 2
        assert stored.friend_invited is False
        assert stored.friends_invited == 0
        assert stored.last_reset_date == "2026-03-11"
        assert await count_tasks(referrer.id, "2026-03-11") == 9
        # Previous period rows are kept within retention
        assert await count_tasks(referrer.id, "2026-03-10") == 9

    @pytest.mark.asyncio
    async def test_reset_hour(self, session_maker, make_user, fetch):
        user = await make_user()
        runner = PeriodicResetRunner(session_maker, reset_hour=5)

        report = await runner.run(datetime(2026, 3, 10, 3, tzinfo=UTC))

        assert report.period_date == "2026-03-09"
        assert (await fetch.user(user.id)).last_reset_date == "2026-03-09"

        later = await runner.run(datetime(2026, 3, 10, 5, tzinfo=UTC))
        assert later.users_reset == 1

    @pytest.mark.asyncio
    async def test_batches_cover_all_users(self, session_maker, make_user, fetch):
        users = [await make_user() for _ in range(5)]
        runner = PeriodicResetRunner(session_maker, batch_size=2)

        report = await runner.run(NOW)

        assert report.users_reset == 5
        for user in users:
            assert (await fetch.user(user.id)).last_reset_date == "2026-03-10"

    @pytest.mark.asyncio
    async def test_expired_tasks_deleted(self, engine, make_user, count_tasks):
        user = await make_user()
        await engine.run_periodic_reset(now=NOW)

        report = await engine.run_periodic_reset(now=NOW + timedelta(days=8))

        assert report.tasks_deleted == 9
        assert await count_tasks(user.id, "2026-03-10") == 0
        assert await count_tasks(user.id) == 9

    @pytest.mark.asyncio
    async def test_failing_user_skipped_and_retried(
        self, engine, make_user, fetch, monkeypatch
    ):
        broken = await make_user()
        healthy = await make_user()
        original = PeriodicResetService._reset_user
        failed = []

        async def flaky(self, user, current_period_start, period_key):
            if user.id == broken.id and not failed:
                failed.append(user.id)
                raise OperationalError("INSERT daily_tasks", {}, Exception("boom"))
            await original(self, user, current_period_start, period_key)

        monkeypatch.setattr(PeriodicResetService, "_reset_user", flaky)

        report = await engine.run_periodic_reset(now=NOW)

        assert (report.users_reset, report.failures) == (1, 1)
        assert (await fetch.user(broken.id)).last_reset_date is None
        assert (await fetch.user(healthy.id)).last_reset_date == "2026-03-10"

        retry = await engine.run_periodic_reset(now=NOW)
        assert (retry.users_reset, retry.failures) == (1, 0)
        assert (await fetch.user(broken.id)).last_reset_date == "2026-03-10"
