"""
Tests for the reset scheduler, its health endpoint and the reset actor.

Redis and the database are mocked; no worker or broker connection is used.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp.test_utils import make_mocked_request

from adledger.services.tasks.periodic_reset import ResetReport
from jobs import health
from jobs import scheduler as scheduler_module
from jobs.tasks import periodic_reset as reset_task


@pytest.fixture
def mock_redis():
    """Redis client whose lock is controlled by the test."""
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=True)
    lock.release = AsyncMock()
    client = MagicMock()
    client.lock.return_value = lock
    client.aclose = AsyncMock()
    with patch.object(reset_task.redis, "Redis", return_value=client):
        yield client


class TestScheduler:
    """Interval job registration."""

    def test_reset_job_registered(self):
        scheduler = scheduler_module.create_scheduler()

        job = scheduler.get_job("periodic_reset")

        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True

    def test_enqueue_sends_message(self):
        with patch.object(reset_task.run_periodic_reset, "send") as send:
            scheduler_module.enqueue_periodic_reset()

        send.assert_called_once_with()


class TestHealth:
    """Health endpoint reports scheduler state."""

    @pytest.mark.asyncio
    async def test_not_initialized(self):
        with patch.object(health, "_scheduler", None):
            response = await health.health_handler(
                make_mocked_request("GET", "/health")
            )

        assert response.status == 503

    @pytest.mark.asyncio
    async def test_running(self):
        job = MagicMock(id="periodic_reset", next_run_time=None)
        scheduler = MagicMock(running=True)
        scheduler.get_jobs.return_value = [job]

        with patch.object(health, "_scheduler", scheduler):
            response = await health.health_handler(
                make_mocked_request("GET", "/health")
            )

        assert response.status == 200
        body = json.loads(response.text)
        assert body["status"] == "healthy"
        assert body["jobs"] == [{"id": "periodic_reset", "next_run_time": None}]

    @pytest.mark.asyncio
    async def test_stopped(self):
        scheduler = MagicMock(running=False)
        scheduler.get_jobs.return_value = []

        with patch.object(health, "_scheduler", scheduler):
            response = await health.health_handler(
                make_mocked_request("GET", "/health")
            )

        assert response.status == 503
        assert json.loads(response.text)["status"] == "stopped"

    @pytest.mark.asyncio
    async def test_liveness(self):
        response = await health.liveness_handler(
            make_mocked_request("GET", "/liveness")
        )

        assert response.status == 200


class TestResetActor:
    """Only one worker runs the reset at a time."""

    @pytest.mark.asyncio
    async def test_runs_under_lock(self, mock_redis):
        report = ResetReport(period_date="2026-03-10", users_reset=3)
        run = AsyncMock(return_value=report)

        with patch.object(reset_task, "_run_reset", run):
            await reset_task.run_periodic_reset.fn.__wrapped__()

        run.assert_awaited_once()
        lock = mock_redis.lock.return_value
        lock.release.assert_awaited_once()
        mock_redis.aclose.assert_awaited_once()
        mock_redis.lock.assert_called_once_with(
            reset_task.RESET_LOCK_KEY,
            timeout=reset_task.RESET_LOCK_TIMEOUT,
            blocking_timeout=0,
        )

    @pytest.mark.asyncio
    async def test_skips_when_locked(self, mock_redis):
        mock_redis.lock.return_value.acquire.return_value = False
        run = AsyncMock()

        with patch.object(reset_task, "_run_reset", run):
            await reset_task.run_periodic_reset.fn.__wrapped__()

        run.assert_not_awaited()
        mock_redis.lock.return_value.release.assert_not_awaited()
        mock_redis.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lock_released_on_failure(self, mock_redis):
        run = AsyncMock(side_effect=RuntimeError("database down"))

        with patch.object(reset_task, "_run_reset", run):
            with pytest.raises(RuntimeError):
                await reset_task.run_periodic_reset.fn.__wrapped__()

        mock_redis.lock.return_value.release.assert_awaited_once()
        mock_redis.aclose.assert_awaited_once()
