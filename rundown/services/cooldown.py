"""
Cooldown policy.

A cooldown is a rest period of whole weeks starting on `next_start_date`.
While it runs, a user's report is narrowed to maintenance work: items with
no project, or in a project whose name contains one of the configured
keywords ("misc", "dpe" by default).
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, List, Iterable, Sequence, Union

from config import settings
from ..database.models import CooldownScheduleDB
from ..database.repositories.cooldown import get_cooldown_repository
from ..models.report import CooldownStatus
from ..models.tracker import WorkItem
from ..utils.datetime_utils import utc_today

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def cooldown_end_date(schedule: CooldownScheduleDB) -> date:
    """First day after the cooldown (exclusive end)."""
    return schedule.next_start_date + timedelta(weeks=schedule.duration_weeks)


def is_cooldown_active(schedule: Optional[CooldownScheduleDB], on_date: DateLike) -> bool:
    """True iff start <= on_date < start + duration_weeks weeks."""
    if schedule is None:
        return False
    day = _as_date(on_date)
    return schedule.next_start_date <= day < cooldown_end_date(schedule)


def get_cooldown_status(schedule: Optional[CooldownScheduleDB], on_date: DateLike) -> CooldownStatus:
    if not is_cooldown_active(schedule, on_date):
        return CooldownStatus(is_in_cooldown=False)

    days_in = (_as_date(on_date) - schedule.next_start_date).days
    return CooldownStatus(
        is_in_cooldown=True,
        week_number=days_in // 7 + 1,
        total_weeks=schedule.duration_weeks,
        start_date=schedule.next_start_date,
        end_date=cooldown_end_date(schedule),
    )


def filter_for_cooldown(
    items: Iterable[WorkItem],
    keywords: Optional[Sequence[str]] = None,
) -> List[WorkItem]:
    """Keep items without a project or whose project name contains a keyword (case-insensitive)."""
    if keywords is None:
        keywords = settings.cooldown_keywords
    keywords = [k.lower() for k in keywords if k]

    kept = []
    for item in items:
        if not item.project:
            kept.append(item)
            continue
        project_name = (item.project.name or "").lower()
        if any(keyword in project_name for keyword in keywords):
            kept.append(item)
    return kept


class CooldownService:
    """Reads and writes cooldown schedules and evaluates them for users."""

    def __init__(self):
        self.repository = get_cooldown_repository()

    async def get_schedule(self, user_id: int) -> Optional[CooldownScheduleDB]:
        return await self.repository.get_by_user(user_id)

    async def get_status_for_user(self, user_id: int, on_date: Optional[DateLike] = None) -> CooldownStatus:
        """
        Cooldown status for a user on a date (today by default).

        A failure reading the schedule is logged and treated as "not in cooldown".
        """
        on_date = on_date or utc_today()
        try:
            schedule = await self.repository.get_by_user(user_id)
        except Exception as e:
            logger.error(f"Failed to read cooldown schedule for user {user_id}: {e}")
            return CooldownStatus(is_in_cooldown=False)

        return get_cooldown_status(schedule, on_date)

    async def set_schedule(self, user_id: int, next_start_date: date, duration_weeks: int) -> CooldownScheduleDB:
        if duration_weeks < 1:
            raise ValueError("duration_weeks must be at least 1")
        return await self.repository.upsert(user_id, next_start_date, duration_weeks)

    async def delete_schedule(self, user_id: int) -> bool:
        removed = await self.repository.delete(user_id)
        if removed:
            logger.info(f"Cooldown cleared for user {user_id}")
        return removed

    async def get_users_in_cooldown(self, on_date: Optional[DateLike] = None) -> List[int]:
        on_date = on_date or utc_today()
        try:
            schedules = await self.repository.get_all()
        except Exception as e:
            logger.error(f"Failed to list cooldown schedules: {e}")
            return []

        return [s.user_id for s in schedules if is_cooldown_active(s, on_date)]


# Singleton
_cooldown_service: Optional[CooldownService] = None


def get_cooldown_service() -> CooldownService:
    global _cooldown_service
    if _cooldown_service is None:
        _cooldown_service = CooldownService()
    return _cooldown_service
