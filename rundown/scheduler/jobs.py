"""
Scheduler manager for automated jobs.

Handles the recurring work:
- Weekly report delivery (REPORT_SCHEDULE, default Monday 9 AM)
- Slack/Linear user sync (USER_SYNC_SCHEDULE, default daily 2 AM)

Both jobs can also be run on demand through the HTTP API. A job never runs
twice at the same time within this process.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any, Callable, Awaitable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import pytz

from config import settings
from ..integrations.linear import get_linear_client
from ..integrations.slack import get_slack_client
from ..utils.background_tasks import create_safe_task
from ..utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

WEEKLY_REPORT_JOB = "weekly-report"
USER_SYNC_JOB = "user-sync"


class JobAlreadyRunning(Exception):
    """A run was requested while the same job is still in progress."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} is already running")


class UnknownJob(KeyError):
    pass


@dataclass
class JobRunState:
    job_id: str
    running: bool = False
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "last_started_at": self.last_started_at.isoformat() if self.last_started_at else None,
            "last_finished_at": self.last_finished_at.isoformat() if self.last_finished_at else None,
            "last_error": self.last_error,
        }


class JobRegistry:
    """Process-local record of which jobs are running."""

    def __init__(self):
        self._states: Dict[str, JobRunState] = {}

    def get(self, job_id: str) -> JobRunState:
        if job_id not in self._states:
            self._states[job_id] = JobRunState(job_id=job_id)
        return self._states[job_id]

    def is_running(self, job_id: str) -> bool:
        return self.get(job_id).running

    def mark_started(self, job_id: str) -> None:
        """Raises JobAlreadyRunning if the job is in progress."""
        state = self.get(job_id)
        if state.running:
            raise JobAlreadyRunning(job_id)
        state.running = True
        state.last_started_at = utc_now()
        state.last_error = None

    def mark_finished(self, job_id: str, error: Optional[str] = None) -> None:
        state = self.get(job_id)
        state.running = False
        state.last_finished_at = utc_now()
        state.last_error = error


class SchedulerManager:
    """
    Manages all scheduled jobs for report delivery.
    """

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.timezone = pytz.timezone(settings.timezone)
        self.registry = JobRegistry()
        self.jobs: Dict[str, Callable[[], Awaitable[Any]]] = {
            WEEKLY_REPORT_JOB: self.run_weekly_report,
            USER_SYNC_JOB: self.run_user_sync,
        }

    def start(self) -> None:
        """Start the scheduler with all jobs."""
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

        self.scheduler.add_job(
            self._execute,
            CronTrigger.from_crontab(settings.report_schedule, timezone=self.timezone),
            args=[WEEKLY_REPORT_JOB],
            id=WEEKLY_REPORT_JOB,
            name="Weekly Report Delivery",
            replace_existing=True
        )

        self.scheduler.add_job(
            self._execute,
            CronTrigger.from_crontab(settings.user_sync_schedule, timezone=self.timezone),
            args=[USER_SYNC_JOB],
            id=USER_SYNC_JOB,
            name="Slack User Sync",
            replace_existing=True
        )

        self.scheduler.start()
        logger.info(
            f"Scheduler started: reports '{settings.report_schedule}', "
            f"user sync '{settings.user_sync_schedule}' ({settings.timezone})"
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler:
            self.scheduler.shutdown()
            self.scheduler = None
            logger.info("Scheduler stopped")

    async def run_weekly_report(self) -> Optional[Dict[str, Any]]:
        """Deliver reports to all recipients. Returns None when credentials are missing."""
        if not get_slack_client().is_configured or not get_linear_client().is_configured:
            logger.warning("Slack or Linear credentials missing, skipping weekly report")
            return None

        from ..services.report_delivery import get_report_delivery_service

        summary = await get_report_delivery_service().deliver_report_to_all()
        return summary.to_dict()

    async def run_user_sync(self) -> Optional[Dict[str, int]]:
        """Refresh users from Slack. Returns None when credentials are missing."""
        if not get_slack_client().is_configured:
            logger.warning("SLACK_BOT_TOKEN missing, skipping user sync")
            return None

        from ..services.user_mapping import get_user_mapping_service

        return await get_user_mapping_service().sync_slack_users()

    async def _run(self, job_id: str) -> Any:
        """Run a job the registry has already marked as started."""
        logger.info(f"Running job {job_id}")
        error = None
        try:
            result = await self.jobs[job_id]()
        except asyncio.CancelledError:
            error = "cancelled"
            raise
        except Exception as e:
            error = str(e)
            raise
        finally:
            self.registry.mark_finished(job_id, error=error)
        logger.info(f"Job {job_id} finished: {result}")
        return result

    async def _execute(self, job_id: str) -> None:
        """Entry point for scheduled runs. Failures are logged, never raised."""
        try:
            self.registry.mark_started(job_id)
        except JobAlreadyRunning:
            logger.warning(f"Skipping scheduled {job_id}: previous run still in progress")
            return

        try:
            await self._run(job_id)
        except Exception as e:
            logger.error(f"Error in {job_id} job: {e}", exc_info=True)

    def run_job_now(self, job_id: str) -> asyncio.Task:
        """
        Start a job in the background right away.

        Raises:
            UnknownJob: If job_id is not a known job
            JobAlreadyRunning: If the job is in progress
        """
        if job_id not in self.jobs:
            raise UnknownJob(job_id)

        self.registry.mark_started(job_id)
        return create_safe_task(self._run(job_id), f"{job_id}-manual")

    def trigger_job(self, job_id: str) -> bool:
        """Move a scheduled job's next run to now."""
        if not self.scheduler:
            return False

        job = self.scheduler.get_job(job_id)
        if job:
            job.modify(next_run_time=datetime.now(self.timezone))
            return True

        return False

    def get_job_status(self) -> dict:
        """Get status of all known jobs."""
        jobs = {}
        for job_id in self.jobs:
            scheduled = self.scheduler.get_job(job_id) if self.scheduler else None
            jobs[job_id] = {
                "name": scheduled.name if scheduled else job_id,
                "next_run": scheduled.next_run_time.isoformat() if scheduled and scheduled.next_run_time else None,
                "trigger": str(scheduled.trigger) if scheduled else None,
                **self.registry.get(job_id).to_dict(),
            }

        return jobs


# Singleton instance
scheduler_manager = SchedulerManager()


def get_scheduler_manager() -> SchedulerManager:
    """Get the scheduler manager instance."""
    return scheduler_manager
