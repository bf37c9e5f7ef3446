"""
Work item repository.

Canonical Linear issues, upserted by their Linear id on every report run.
"""

import logging
from typing import Optional, List, Dict, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..connection import get_database
from ..models import WorkItemDB
from ..exceptions import DatabaseOperationError
from ...models.tracker import WorkItem
from ...utils.datetime_utils import naive_utc_now, to_naive_utc

logger = logging.getLogger(__name__)


def _work_item_columns(item: WorkItem) -> dict:
    return {
        "identifier": item.identifier,
        "title": item.title,
        "description": item.description,
        "priority": item.priority,
        "estimate": item.estimate,
        "state_id": item.state.id,
        "state_name": item.state.name,
        "state_type": item.state.type,
        "project_id": item.project.id if item.project else None,
        "project_name": item.project.name if item.project else None,
        "team_id": item.team.id if item.team else None,
        "team_name": item.team.name if item.team else None,
        "team_key": item.team.key if item.team else None,
        "created_at": to_naive_utc(item.created_at),
        "updated_at": to_naive_utc(item.updated_at),
        "started_at": to_naive_utc(item.started_at),
        "completed_at": to_naive_utc(item.completed_at),
        "canceled_at": to_naive_utc(item.canceled_at),
    }


class WorkItemRepository:
    """Repository for Linear work item operations."""

    def __init__(self):
        self.db = get_database()

    async def _upsert(self, session: AsyncSession, item: WorkItem) -> WorkItemDB:
        result = await session.execute(
            select(WorkItemDB).where(WorkItemDB.external_id == item.id)
        )
        row = result.scalar_one_or_none()
        now = naive_utc_now()

        if row:
            for column, value in _work_item_columns(item).items():
                setattr(row, column, value)
            row.last_synced_at = now
        else:
            row = WorkItemDB(
                external_id=item.id,
                first_synced_at=now,
                last_synced_at=now,
                **_work_item_columns(item),
            )
            session.add(row)

        await session.flush()
        return row

    async def upsert(self, item: WorkItem) -> WorkItemDB:
        """Insert or update a single work item."""
        async with self.db.session() as session:
            try:
                return await self._upsert(session, item)
            except Exception as e:
                logger.error(f"Work item upsert failed for {item.identifier}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert work item {item.identifier}: {e}")

    async def upsert_many(self, items: Iterable[WorkItem]) -> Dict[str, int]:
        """
        Upsert a batch of work items in one transaction.

        Returns:
            Linear id -> internal id
        """
        ids: Dict[str, int] = {}
        async with self.db.session() as session:
            try:
                for item in items:
                    row = await self._upsert(session, item)
                    ids[item.id] = row.id
            except Exception as e:
                logger.error(f"Work item batch upsert failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert work items: {e}")
        return ids

    async def get_by_id(self, work_item_id: int) -> Optional[WorkItemDB]:
        async with self.db.session() as session:
            result = await session.execute(select(WorkItemDB).where(WorkItemDB.id == work_item_id))
            return result.scalar_one_or_none()

    async def get_by_external_id(self, external_id: str) -> Optional[WorkItemDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkItemDB).where(WorkItemDB.external_id == external_id)
            )
            return result.scalar_one_or_none()

    async def get_by_identifiers(self, identifiers: Iterable[str]) -> Dict[str, WorkItemDB]:
        """Look up work items by human identifier (ENG-123). Unknown identifiers are absent."""
        identifiers = list(set(identifiers))
        if not identifiers:
            return {}

        async with self.db.session() as session:
            result = await session.execute(
                select(WorkItemDB).where(WorkItemDB.identifier.in_(identifiers))
            )
            return {row.identifier: row for row in result.scalars().all()}

    async def get_all(self, limit: int = 500) -> List[WorkItemDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(WorkItemDB).order_by(WorkItemDB.updated_at.desc()).limit(limit)
            )
            return list(result.scalars().all())


# Singleton
_work_item_repository: Optional[WorkItemRepository] = None


def get_work_item_repository() -> WorkItemRepository:
    """Get the work item repository singleton."""
    global _work_item_repository
    if _work_item_repository is None:
        _work_item_repository = WorkItemRepository()
    return _work_item_repository
