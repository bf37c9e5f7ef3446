"""
Tests for the scheduler manager and job run bookkeeping.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, Mock, patch

from rundown.models.report import DeliverySummary
from rundown.scheduler.jobs import (
    JobAlreadyRunning,
    JobRegistry,
    SchedulerManager,
    UnknownJob,
    USER_SYNC_JOB,
    WEEKLY_REPORT_JOB,
)


class TestJobRegistry:
    def test_mark_started_twice_raises(self):
        registry = JobRegistry()
        registry.mark_started(WEEKLY_REPORT_JOB)

        with pytest.raises(JobAlreadyRunning):
            registry.mark_started(WEEKLY_REPORT_JOB)

    def test_finish_records_error(self):
        registry = JobRegistry()
        registry.mark_started(USER_SYNC_JOB)
        registry.mark_finished(USER_SYNC_JOB, error="Slack API error")

        state = registry.get(USER_SYNC_JOB)
        assert state.running is False
        assert state.last_error == "Slack API error"
        assert state.last_finished_at >= state.last_started_at

    def test_jobs_are_independent(self):
        registry = JobRegistry()
        registry.mark_started(WEEKLY_REPORT_JOB)

        assert registry.is_running(USER_SYNC_JOB) is False


@pytest.fixture
def clients():
    slack = Mock(is_configured=True)
    linear = Mock(is_configured=True)
    with patch("rundown.scheduler.jobs.get_slack_client", return_value=slack), \
         patch("rundown.scheduler.jobs.get_linear_client", return_value=linear):
        yield slack, linear


class TestJobs:
    """Tests for the job bodies."""

    @pytest.mark.asyncio
    async def test_weekly_report_skipped_without_linear(self, clients):
        clients[1].is_configured = False

        assert await SchedulerManager().run_weekly_report() is None

    @pytest.mark.asyncio
    async def test_weekly_report_returns_summary(self, clients):
        delivery = AsyncMock()
        delivery.deliver_report_to_all.return_value = DeliverySummary(total_users=2, success_count=2)

        with patch("rundown.services.report_delivery.get_report_delivery_service", return_value=delivery):
            result = await SchedulerManager().run_weekly_report()

        assert result["total_users"] == 2
        assert result["success"] == 2

    @pytest.mark.asyncio
    async def test_user_sync_skipped_without_slack(self, clients):
        clients[0].is_configured = False

        assert await SchedulerManager().run_user_sync() is None

    @pytest.mark.asyncio
    async def test_user_sync_returns_counts(self, clients):
        mapping = AsyncMock()
        mapping.sync_slack_users.return_value = {"created": 1, "updated": 0, "deactivated": 0}

        with patch("rundown.services.user_mapping.get_user_mapping_service", return_value=mapping):
            result = await SchedulerManager().run_user_sync()

        assert result["created"] == 1


class TestManualRuns:
    """Tests for run_job_now and scheduled execution."""

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(UnknownJob):
            SchedulerManager().run_job_now("nightly")

    @pytest.mark.asyncio
    async def test_second_run_while_running_is_rejected(self):
        manager = SchedulerManager()
        release = asyncio.Event()

        async def slow_job():
            await release.wait()
            return {"created": 0}

        manager.jobs[USER_SYNC_JOB] = slow_job

        task = manager.run_job_now(USER_SYNC_JOB)
        with pytest.raises(JobAlreadyRunning):
            manager.run_job_now(USER_SYNC_JOB)

        release.set()
        await task

        assert manager.registry.is_running(USER_SYNC_JOB) is False

    @pytest.mark.asyncio
    async def test_failed_run_records_error(self):
        manager = SchedulerManager()
        manager.jobs[USER_SYNC_JOB] = AsyncMock(side_effect=RuntimeError("Slack API error"))

        await manager._execute(USER_SYNC_JOB)

        state = manager.registry.get(USER_SYNC_JOB)
        assert state.running is False
        assert state.last_error == "Slack API error"

    @pytest.mark.asyncio
    async def test_cancelled_run_is_marked_finished(self):
        manager = SchedulerManager()
        manager.jobs[USER_SYNC_JOB] = AsyncMock(side_effect=asyncio.CancelledError())
        manager.registry.mark_started(USER_SYNC_JOB)

        with pytest.raises(asyncio.CancelledError):
            await manager._run(USER_SYNC_JOB)

        state = manager.registry.get(USER_SYNC_JOB)
        assert state.running is False
        assert state.last_error == "cancelled"
        manager.registry.mark_started(USER_SYNC_JOB)

    @pytest.mark.asyncio
    async def test_scheduled_run_skips_when_running(self):
        manager = SchedulerManager()
        job = AsyncMock()
        manager.jobs[WEEKLY_REPORT_JOB] = job
        manager.registry.mark_started(WEEKLY_REPORT_JOB)

        await manager._execute(WEEKLY_REPORT_JOB)

        job.assert_not_called()


class TestJobStatus:
    def test_status_without_scheduler(self):
        status = SchedulerManager().get_job_status()

        assert set(status) == {WEEKLY_REPORT_JOB, USER_SYNC_JOB}
        assert status[WEEKLY_REPORT_JOB]["next_run"] is None
        assert status[WEEKLY_REPORT_JOB]["running"] is False

    def test_trigger_without_scheduler(self):
        assert SchedulerManager().trigger_job(WEEKLY_REPORT_JOB) is False

    @pytest.mark.asyncio
    async def test_started_scheduler_lists_jobs(self):
        manager = SchedulerManager()
        manager.start()
        try:
            status = manager.get_job_status()
            assert status[WEEKLY_REPORT_JOB]["name"] == "Weekly Report Delivery"
            assert status[WEEKLY_REPORT_JOB]["next_run"] is not None
            assert status[USER_SYNC_JOB]["trigger"].startswith("cron")
        finally:
            manager.stop()
