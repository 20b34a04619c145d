"""
Unit tests for the background job scheduler.

WHAT: Tests for starting, inspecting and stopping the APScheduler instance.

WHY: The recompute job must only be scheduled when enabled, and shutdown
must leave no scheduler behind between application restarts.
"""

import pytest
import pytest_asyncio

from quotedesk.core.config import settings
from quotedesk.services import scheduler
from quotedesk.services.recompute_service import run_recompute


@pytest_asyncio.fixture
async def stopped_scheduler():
    """Make sure every test starts and ends without a scheduler."""
    await scheduler.shutdown_scheduler()
    yield
    await scheduler.shutdown_scheduler()


@pytest.mark.asyncio
class TestScheduler:
    """Tests for scheduler lifecycle."""

    async def test_status_before_start(self, stopped_scheduler):
        status = scheduler.get_scheduler_status()

        assert status["running"] is False
        assert status["jobs"] == []

    async def test_start_without_recompute_job(self, stopped_scheduler, monkeypatch):
        monkeypatch.setattr(settings, "RECOMPUTE_SCHEDULE_ENABLED", False)

        await scheduler.start_scheduler()

        status = scheduler.get_scheduler_status()
        assert status["running"] is True
        assert status["jobs"] == []

    async def test_start_registers_recompute_job(self, stopped_scheduler, monkeypatch):
        monkeypatch.setattr(settings, "RECOMPUTE_SCHEDULE_ENABLED", True)
        monkeypatch.setattr(settings, "RECOMPUTE_INTERVAL_SECONDS", 3600)

        await scheduler.start_scheduler()

        job = scheduler.get_scheduler().get_job(scheduler.RECOMPUTE_JOB_ID)
        assert job is not None
        assert job.func is run_recompute
        assert job.trigger.interval.total_seconds() == 3600
        assert [j["id"] for j in scheduler.get_scheduler_status()["jobs"]] == [scheduler.RECOMPUTE_JOB_ID]

    async def test_start_twice_keeps_one_scheduler(self, stopped_scheduler, monkeypatch):
        monkeypatch.setattr(settings, "RECOMPUTE_SCHEDULE_ENABLED", False)

        await scheduler.start_scheduler()
        first = scheduler.get_scheduler()
        await scheduler.start_scheduler()

        assert scheduler.get_scheduler() is first

    async def test_shutdown_clears_scheduler(self, stopped_scheduler, monkeypatch):
        monkeypatch.setattr(settings, "RECOMPUTE_SCHEDULE_ENABLED", False)
        await scheduler.start_scheduler()

        await scheduler.shutdown_scheduler()

        assert scheduler.get_scheduler() is None
        assert scheduler.get_scheduler_status()["message"] == "Scheduler not initialized"
