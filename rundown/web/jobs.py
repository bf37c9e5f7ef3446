"""
Scheduled job endpoints.
"""

import logging

from fastapi import APIRouter, HTTPException

from ..scheduler.jobs import (
    get_scheduler_manager,
    JobAlreadyRunning,
    UnknownJob,
    WEEKLY_REPORT_JOB,
    USER_SYNC_JOB,
)
from .common import require_credentials

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.get("")
async def list_jobs():
    return {"jobs": get_scheduler_manager().get_job_status()}


@router.post("/{job_id}/run", status_code=202)
async def run_job(job_id: str):
    """Start a job in the background. Answers 409 while it is still running."""
    if job_id == WEEKLY_REPORT_JOB:
        require_credentials(slack=True, linear=True)
    elif job_id == USER_SYNC_JOB:
        require_credentials(slack=True)

    try:
        get_scheduler_manager().run_job_now(job_id)
    except UnknownJob:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    except JobAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"Job {job_id} started manually")
    return {"ok": True, "message": f"Job {job_id} started", "job_id": job_id}
