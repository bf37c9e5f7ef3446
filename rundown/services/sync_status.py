"""
Sync run tracking.

Wraps any data refresh (Linear issues, GitHub data, Slack users) so that
its start, success and failure are recorded on the sync type's status row.

Usage:
    result = await with_sync_tracking(SyncTypeEnum.LINEAR_ISSUES, fetch_issues)

    @tracked_sync(SyncTypeEnum.SLACK_USERS, lambda counts: counts)
    async def sync_users():
        ...
"""

import functools
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from ..database.models import SyncStatusDB, SyncTypeEnum
from ..database.repositories.sync_status import get_sync_status_repository
from ..utils.datetime_utils import naive_utc_now, to_aware_utc, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_sync_tracking(
    sync_type: SyncTypeEnum,
    sync_fn: Callable[[], Awaitable[T]],
    metadata_extractor: Optional[Callable[[T], Dict[str, Any]]] = None,
) -> T:
    """
    Run `sync_fn` and record the run on the status row for `sync_type`.

    Failures of `sync_fn` are recorded and re-raised. Failures writing the
    status row itself are logged and never mask the sync's own outcome.
    """
    repository = get_sync_status_repository()

    try:
        await repository.mark_started(sync_type, naive_utc_now())
    except Exception as e:
        logger.error(f"Could not record start of {sync_type.value} sync: {e}")

    logger.info(f"Started {sync_type.value} sync")
    started = time.monotonic()

    try:
        result = await sync_fn()
    except Exception as e:
        try:
            await repository.mark_failed(sync_type, naive_utc_now(), str(e) or type(e).__name__)
        except Exception as record_error:
            logger.error(f"Could not record failure of {sync_type.value} sync: {record_error}")
        logger.error(f"❌ {sync_type.value} sync failed: {e}")
        raise

    metadata: Dict[str, Any] = {"duration_ms": int((time.monotonic() - started) * 1000)}
    if metadata_extractor:
        try:
            metadata.update(metadata_extractor(result) or {})
        except Exception as e:
            logger.warning(f"Metadata extraction failed for {sync_type.value} sync: {e}")

    try:
        await repository.mark_succeeded(sync_type, naive_utc_now(), metadata)
    except Exception as e:
        logger.error(f"Could not record success of {sync_type.value} sync: {e}")

    logger.info(f"✅ Completed {sync_type.value} sync in {metadata['duration_ms']}ms")
    return result


def tracked_sync(
    sync_type: SyncTypeEnum,
    metadata_extractor: Optional[Callable[[Any], Dict[str, Any]]] = None,
):
    """Decorator form of with_sync_tracking for async functions."""
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await with_sync_tracking(
                sync_type,
                lambda: func(*args, **kwargs),
                metadata_extractor,
            )
        return wrapper
    return decorator


def time_since_sync(last_sync_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Human-readable age of a sync timestamp: "Never", "Just now", "3 hours ago"."""
    if last_sync_at is None:
        return "Never"

    now = to_aware_utc(now) if now else utc_now()
    minutes = int((now - to_aware_utc(last_sync_at)).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days} day{'' if days == 1 else 's'} ago"
    if hours > 0:
        return f"{hours} hour{'' if hours == 1 else 's'} ago"
    if minutes > 0:
        return f"{minutes} minute{'' if minutes == 1 else 's'} ago"
    return "Just now"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return to_aware_utc(value).isoformat() if value else None


def serialize_status(row: SyncStatusDB) -> Dict[str, Any]:
    return {
        "sync_type": row.sync_type,
        "status": row.status,
        "last_started_at": _iso(row.last_started_at),
        "last_completed_at": _iso(row.last_completed_at),
        "last_success_at": _iso(row.last_success_at),
        "last_failed_at": _iso(row.last_failed_at),
        "last_error": row.last_error,
        "total_runs": row.total_runs,
        "success_count": row.success_count,
        "failure_count": row.failure_count,
        "metadata": row.sync_metadata,
    }


def success_rate(row: SyncStatusDB) -> str:
    if not row.total_runs:
        return "N/A"
    return f"{round(row.success_count / row.total_runs * 100)}%"


async def get_status(sync_type: SyncTypeEnum) -> Optional[Dict[str, Any]]:
    row = await get_sync_status_repository().get(sync_type)
    return serialize_status(row) if row else None


async def get_formatted_statuses(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Every sync type's status formatted for display."""
    rows = await get_sync_status_repository().get_all()
    return [
        {
            "sync_type": row.sync_type,
            "status": row.status,
            "last_sync_time": time_since_sync(row.last_completed_at, now),
            "success_rate": success_rate(row),
            "last_error": row.last_error,
        }
        for row in rows
    ]


async def get_user_summary(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Last Linear / GitHub sync times and overall data freshness."""
    rows = {row.sync_type: row for row in await get_sync_status_repository().get_all()}
    linear = rows.get(SyncTypeEnum.LINEAR_ISSUES.value)
    github = rows.get(SyncTypeEnum.GITHUB_DATA.value)

    linear_at = linear.last_completed_at if linear else None
    github_at = github.last_completed_at if github else None
    latest = max((ts for ts in (linear_at, github_at) if ts), default=None)

    return {
        "linear_last_sync": _iso(linear_at),
        "linear_last_sync_formatted": time_since_sync(linear_at, now),
        "github_last_sync": _iso(github_at),
        "github_last_sync_formatted": time_since_sync(github_at, now),
        "data_freshness": time_since_sync(latest, now),
    }
