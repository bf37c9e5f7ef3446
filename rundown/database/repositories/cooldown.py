"""
Cooldown schedule repository.

At most one schedule per user: writes replace the row wholesale and a
delete ends cooldown immediately.
"""

import logging
from datetime import date
from typing import Optional, List

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import CooldownScheduleDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError
from ...utils.datetime_utils import naive_utc_now

logger = logging.getLogger(__name__)


class CooldownRepository:
    """Repository for cooldown schedule operations."""

    def __init__(self):
        self.db = get_database()

    async def get_by_user(self, user_id: int) -> Optional[CooldownScheduleDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(CooldownScheduleDB).where(CooldownScheduleDB.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_all(self) -> List[CooldownScheduleDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(CooldownScheduleDB).order_by(CooldownScheduleDB.next_start_date)
            )
            return list(result.scalars().all())

    async def upsert(
        self,
        user_id: int,
        next_start_date: date,
        duration_weeks: int,
    ) -> CooldownScheduleDB:
        """Create or replace the user's cooldown schedule."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    select(CooldownScheduleDB).where(CooldownScheduleDB.user_id == user_id)
                )
                schedule = result.scalar_one_or_none()

                if schedule:
                    schedule.next_start_date = next_start_date
                    schedule.duration_weeks = duration_weeks
                    schedule.updated_at = naive_utc_now()
                    logger.info(f"Updated cooldown for user {user_id}: {next_start_date} for {duration_weeks} weeks")
                else:
                    schedule = CooldownScheduleDB(
                        user_id=user_id,
                        next_start_date=next_start_date,
                        duration_weeks=duration_weeks,
                    )
                    session.add(schedule)
                    logger.info(f"Created cooldown for user {user_id}: {next_start_date} for {duration_weeks} weeks")

                await session.flush()
                return schedule

            except IntegrityError as e:
                logger.error(f"Constraint violation saving cooldown for user {user_id}: {e}")
                raise DatabaseConstraintError(f"Cannot save cooldown for user {user_id}")

            except Exception as e:
                logger.error(f"Saving cooldown failed for user {user_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to save cooldown for user {user_id}: {e}")

    async def delete(self, user_id: int) -> bool:
        """Remove the user's schedule. Returns False if there was none."""
        async with self.db.session() as session:
            result = await session.execute(
                delete(CooldownScheduleDB).where(CooldownScheduleDB.user_id == user_id)
            )
            removed = (result.rowcount or 0) > 0
            if removed:
                logger.info(f"Deleted cooldown for user {user_id}")
            return removed


# Singleton
_cooldown_repository: Optional[CooldownRepository] = None


def get_cooldown_repository() -> CooldownRepository:
    """Get the cooldown repository singleton."""
    global _cooldown_repository
    if _cooldown_repository is None:
        _cooldown_repository = CooldownRepository()
    return _cooldown_repository
