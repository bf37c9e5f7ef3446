"""
Scheduled jobs.
"""

from .jobs import SchedulerManager, JobAlreadyRunning, get_scheduler_manager

__all__ = [
    "SchedulerManager",
    "JobAlreadyRunning",
    "get_scheduler_manager",
]
