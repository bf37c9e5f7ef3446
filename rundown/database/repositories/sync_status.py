"""
Sync status repository.

One row per sync type. Counters are incremented in SQL (`col = col + 1`)
so overlapping runs never lose an update.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..connection import get_database
from ..models import SyncStatusDB, SyncTypeEnum, SyncStatusEnum
from ..exceptions import DatabaseOperationError

logger = logging.getLogger(__name__)


class SyncStatusRepository:
    """Repository for sync run status."""

    def __init__(self):
        self.db = get_database()

    async def _ensure_row(self, sync_type: SyncTypeEnum) -> None:
        """Create the singleton row for a sync type if it does not exist yet."""
        async with self.db.session() as session:
            result = await session.execute(
                select(SyncStatusDB.id).where(SyncStatusDB.sync_type == sync_type.value)
            )
            if result.scalar_one_or_none() is not None:
                return

            session.add(SyncStatusDB(
                sync_type=sync_type.value,
                status=SyncStatusEnum.SUCCESS.value,
                total_runs=0,
                success_count=0,
                failure_count=0,
            ))
            try:
                await session.flush()
            except IntegrityError:
                # Created concurrently; the row exists either way
                await session.rollback()

    async def _apply(self, session: AsyncSession, sync_type: SyncTypeEnum, values: Dict[Any, Any]) -> None:
        await session.execute(
            update(SyncStatusDB)
            .where(SyncStatusDB.sync_type == sync_type.value)
            .values(values)
        )

    async def mark_started(self, sync_type: SyncTypeEnum, started_at: datetime) -> None:
        await self._ensure_row(sync_type)
        try:
            async with self.db.session() as session:
                await self._apply(session, sync_type, {
                    SyncStatusDB.status: SyncStatusEnum.IN_PROGRESS.value,
                    SyncStatusDB.last_started_at: started_at,
                    SyncStatusDB.total_runs: SyncStatusDB.total_runs + 1,
                })
        except Exception as e:
            logger.error(f"Failed to mark {sync_type.value} sync started: {e}")
            raise DatabaseOperationError(f"Failed to mark {sync_type.value} started: {e}")

    async def mark_succeeded(
        self,
        sync_type: SyncTypeEnum,
        completed_at: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._ensure_row(sync_type)
        try:
            async with self.db.session() as session:
                await self._apply(session, sync_type, {
                    SyncStatusDB.status: SyncStatusEnum.SUCCESS.value,
                    SyncStatusDB.last_completed_at: completed_at,
                    SyncStatusDB.last_success_at: completed_at,
                    SyncStatusDB.last_error: None,
                    SyncStatusDB.success_count: SyncStatusDB.success_count + 1,
                    SyncStatusDB.sync_metadata: metadata,
                })
        except Exception as e:
            logger.error(f"Failed to mark {sync_type.value} sync succeeded: {e}")
            raise DatabaseOperationError(f"Failed to mark {sync_type.value} succeeded: {e}")

    async def mark_failed(
        self,
        sync_type: SyncTypeEnum,
        failed_at: datetime,
        error_message: str,
    ) -> None:
        await self._ensure_row(sync_type)
        try:
            async with self.db.session() as session:
                await self._apply(session, sync_type, {
                    SyncStatusDB.status: SyncStatusEnum.FAILED.value,
                    SyncStatusDB.last_completed_at: failed_at,
                    SyncStatusDB.last_failed_at: failed_at,
                    SyncStatusDB.last_error: error_message,
                    SyncStatusDB.failure_count: SyncStatusDB.failure_count + 1,
                })
        except Exception as e:
            logger.error(f"Failed to mark {sync_type.value} sync failed: {e}")
            raise DatabaseOperationError(f"Failed to mark {sync_type.value} failed: {e}")

    async def get(self, sync_type: SyncTypeEnum) -> Optional[SyncStatusDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(SyncStatusDB).where(SyncStatusDB.sync_type == sync_type.value)
            )
            return result.scalar_one_or_none()

    async def get_all(self) -> List[SyncStatusDB]:
        async with self.db.session() as session:
            result = await session.execute(select(SyncStatusDB).order_by(SyncStatusDB.sync_type))
            return list(result.scalars().all())


# Singleton
_sync_status_repository: Optional[SyncStatusRepository] = None


def get_sync_status_repository() -> SyncStatusRepository:
    """Get the sync status repository singleton."""
    global _sync_status_repository
    if _sync_status_repository is None:
        _sync_status_repository = SyncStatusRepository()
    return _sync_status_repository
