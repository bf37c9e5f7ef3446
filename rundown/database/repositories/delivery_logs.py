"""
Report delivery log repository.

Append-only record of every send attempt, including the rendered report.
"""

import logging
from datetime import date
from typing import Optional, List

from sqlalchemy import select, func

from ..connection import get_database
from ..models import DeliveryLogDB, DeliveryStatusEnum
from ..exceptions import DatabaseOperationError

logger = logging.getLogger(__name__)


class DeliveryLogRepository:
    """Repository for report delivery logs."""

    def __init__(self):
        self.db = get_database()

    async def create(
        self,
        user_id: int,
        status: DeliveryStatusEnum,
        error_message: Optional[str] = None,
        message_content: Optional[str] = None,
        report_period_start: Optional[date] = None,
        report_period_end: Optional[date] = None,
        issues_count: Optional[int] = None,
        in_cooldown: bool = False,
    ) -> DeliveryLogDB:
        async with self.db.session() as session:
            try:
                log = DeliveryLogDB(
                    user_id=user_id,
                    status=status.value,
                    error_message=error_message,
                    message_content=message_content,
                    report_period_start=report_period_start,
                    report_period_end=report_period_end,
                    issues_count=issues_count,
                    in_cooldown=in_cooldown,
                )
                session.add(log)
                await session.flush()
                return log

            except Exception as e:
                logger.error(f"Failed to write delivery log for user {user_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to write delivery log for user {user_id}: {e}")

    async def get_by_id(self, log_id: int) -> Optional[DeliveryLogDB]:
        async with self.db.session() as session:
            result = await session.execute(select(DeliveryLogDB).where(DeliveryLogDB.id == log_id))
            return result.scalar_one_or_none()

    async def get_recent(
        self,
        user_id: Optional[int] = None,
        status: Optional[DeliveryStatusEnum] = None,
        limit: int = 50,
    ) -> List[DeliveryLogDB]:
        async with self.db.session() as session:
            query = select(DeliveryLogDB)
            if user_id is not None:
                query = query.where(DeliveryLogDB.user_id == user_id)
            if status is not None:
                query = query.where(DeliveryLogDB.status == status.value)

            query = query.order_by(DeliveryLogDB.sent_at.desc(), DeliveryLogDB.id.desc()).limit(limit)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def count_by_status(self) -> dict:
        async with self.db.session() as session:
            result = await session.execute(
                select(DeliveryLogDB.status, func.count(DeliveryLogDB.id)).group_by(DeliveryLogDB.status)
            )
            return {status: count for status, count in result.all()}


# Singleton
_delivery_log_repository: Optional[DeliveryLogRepository] = None


def get_delivery_log_repository() -> DeliveryLogRepository:
    """Get the delivery log repository singleton."""
    global _delivery_log_repository
    if _delivery_log_repository is None:
        _delivery_log_repository = DeliveryLogRepository()
    return _delivery_log_repository
