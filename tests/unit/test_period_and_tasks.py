"""
Tests for reset period helpers and the daily task ladder.

Covers:
- Period start at and around the reset hour
- Task tier definitions
- Active tier selection
"""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from adledger.services.tasks.daily_task_service import (
    TASK_TIERS,
    find_active_task,
    task_rows_for_period,
)
from adledger.utils.datetime_utils import ensure_utc, period_date, period_start


class TestPeriodStart:
    """Latest reset boundary not after now."""

    def test_midnight_reset(self):
        now = datetime(2026, 3, 10, 15, 30, tzinfo=UTC)

        assert period_start(now) == datetime(2026, 3, 10, tzinfo=UTC)

    def test_exactly_on_boundary(self):
        now = datetime(2026, 3, 10, 5, 0, tzinfo=UTC)

        assert period_start(now, reset_hour=5) == now

    def test_before_reset_hour_belongs_to_previous_day(self):
        now = datetime(2026, 3, 10, 3, 0, tzinfo=UTC)

        assert period_start(now, reset_hour=5) == datetime(
            2026, 3, 9, 5, tzinfo=UTC
        )
        assert period_date(now, reset_hour=5) == "2026-03-09"

    def test_other_timezone_converted(self):
        kyiv = timezone(timedelta(hours=2))
        now = datetime(2026, 3, 10, 1, 0, tzinfo=kyiv)  # 23:00 UTC on the 9th

        assert period_date(now) == "2026-03-09"

    def test_naive_treated_as_utc(self):
        assert ensure_utc(datetime(2026, 1, 1, 12)) == datetime(
            2026, 1, 1, 12, tzinfo=UTC
        )


class TestTaskTiers:
    """Nine sequential tiers of twenty ads."""

    def test_tier_ladder(self):
        assert [t.level for t in TASK_TIERS] == list(range(1, 10))
        assert all(t.required == 20 for t in TASK_TIERS)
        assert all(t.reward == Decimal("0.00033") for t in TASK_TIERS)

    def test_rows_for_period(self):
        rows = task_rows_for_period(7, "2026-03-10")

        assert len(rows) == 9
        assert {r["reset_date"] for r in rows} == {"2026-03-10"}
        assert all(r["user_id"] == 7 and r["progress"] == 0 for r in rows)


def _task(level: int, claimed: bool = False) -> SimpleNamespace:
    return SimpleNamespace(task_level=level, claimed=claimed)


class TestFindActiveTask:
    """First unclaimed tier whose predecessors are claimed."""

    def test_first_tier_active_initially(self):
        tasks = [_task(1), _task(2), _task(3)]

        assert find_active_task(tasks).task_level == 1

    def test_next_tier_after_claims(self):
        tasks = [_task(1, True), _task(2, True), _task(3)]

        assert find_active_task(tasks).task_level == 3

    def test_all_claimed(self):
        tasks = [_task(1, True), _task(2, True)]

        assert find_active_task(tasks) is None

    def test_gap_blocks_later_tiers(self):
        tasks = [_task(1), _task(2, True)]

        assert find_active_task(tasks).task_level == 1
