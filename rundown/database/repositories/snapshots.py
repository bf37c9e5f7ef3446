"""
Snapshot repository.

Snapshots are append-only. Every read resolves one maximum snapshot_date for
the user (over the entity kinds being read) inside the same statement, so a
result never mixes rows from two report runs.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable, Sequence

from sqlalchemy import select, func, and_, or_
from sqlalchemy.orm import aliased

from ..connection import get_database
from ..models import (
    SnapshotDB,
    WorkItemDB,
    PullRequestDB,
    RepoIssueDB,
    CodeReviewDB,
    EntityKindEnum,
    SnapshotCategoryEnum,
    GITHUB_ENTITY_KINDS,
)
from ..exceptions import DatabaseOperationError

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def _contains_pattern(search: str) -> str:
    """ILIKE pattern matching `search` literally anywhere in the column."""
    escaped = (
        search.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _latest_date_subquery(user_id: int, entity_kinds: Sequence[EntityKindEnum]):
    latest = aliased(SnapshotDB)
    return (
        select(func.max(latest.snapshot_date))
        .where(
            latest.user_id == user_id,
            latest.entity_kind.in_([kind.value for kind in entity_kinds]),
        )
        .scalar_subquery()
    )


class SnapshotRepository:
    """Repository for user snapshot operations."""

    def __init__(self):
        self.db = get_database()

    async def add_many(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Insert snapshot rows. Each dict maps SnapshotDB column names to values."""
        count = 0
        async with self.db.session() as session:
            try:
                for row in rows:
                    session.add(SnapshotDB(**row))
                    count += 1
                await session.flush()
            except Exception as e:
                logger.error(f"Snapshot insert failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to insert snapshots: {e}")
        return count

    async def get_latest_snapshot_date(
        self,
        user_id: int,
        entity_kinds: Sequence[EntityKindEnum] = (EntityKindEnum.WORK_ITEM,),
    ) -> Optional[datetime]:
        async with self.db.session() as session:
            result = await session.execute(
                select(func.max(SnapshotDB.snapshot_date)).where(
                    SnapshotDB.user_id == user_id,
                    SnapshotDB.entity_kind.in_([kind.value for kind in entity_kinds]),
                )
            )
            return result.scalar_one_or_none()

    # ==================== WORK ITEMS ====================

    async def get_work_items(
        self,
        user_id: int,
        category: SnapshotCategoryEnum,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[WorkItemDB]:
        """
        Work items in `category` at the user's latest snapshot.

        Filters: project_id, team_id, priority, state_type, search
        (case-insensitive over title, description and identifier).
        """
        filters = filters or {}
        latest = _latest_date_subquery(user_id, (EntityKindEnum.WORK_ITEM,))

        stmt = (
            select(WorkItemDB)
            .join(
                SnapshotDB,
                and_(
                    SnapshotDB.entity_id == WorkItemDB.id,
                    SnapshotDB.entity_kind == EntityKindEnum.WORK_ITEM.value,
                ),
            )
            .where(
                SnapshotDB.user_id == user_id,
                SnapshotDB.snapshot_date == latest,
                SnapshotDB.category == category.value,
            )
        )

        if filters.get("project_id"):
            stmt = stmt.where(WorkItemDB.project_id == filters["project_id"])
        if filters.get("team_id"):
            stmt = stmt.where(WorkItemDB.team_id == filters["team_id"])
        if filters.get("priority") is not None:
            stmt = stmt.where(WorkItemDB.priority == filters["priority"])
        if filters.get("state_type"):
            stmt = stmt.where(WorkItemDB.state_type == filters["state_type"])
        if filters.get("search"):
            pattern = _contains_pattern(filters["search"])
            stmt = stmt.where(
                or_(
                    WorkItemDB.title.ilike(pattern, escape=LIKE_ESCAPE),
                    WorkItemDB.description.ilike(pattern, escape=LIKE_ESCAPE),
                    WorkItemDB.identifier.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )

        stmt = stmt.order_by(WorkItemDB.updated_at.desc(), WorkItemDB.id)

        async with self.db.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_filter_options(self, user_id: int) -> Dict[str, List[Dict[str, Any]]]:
        """Distinct projects and teams among the user's latest work item snapshot."""
        latest = _latest_date_subquery(user_id, (EntityKindEnum.WORK_ITEM,))
        in_latest = and_(
            SnapshotDB.user_id == user_id,
            SnapshotDB.snapshot_date == latest,
            SnapshotDB.entity_kind == EntityKindEnum.WORK_ITEM.value,
        )

        async with self.db.session() as session:
            projects = await session.execute(
                select(WorkItemDB.project_id, WorkItemDB.project_name)
                .join(SnapshotDB, SnapshotDB.entity_id == WorkItemDB.id)
                .where(in_latest, WorkItemDB.project_id.is_not(None))
                .distinct()
                .order_by(WorkItemDB.project_name)
            )
            teams = await session.execute(
                select(WorkItemDB.team_id, WorkItemDB.team_name, WorkItemDB.team_key)
                .join(SnapshotDB, SnapshotDB.entity_id == WorkItemDB.id)
                .where(in_latest, WorkItemDB.team_id.is_not(None))
                .distinct()
                .order_by(WorkItemDB.team_name)
            )

            return {
                "projects": [{"id": pid, "name": name} for pid, name in projects.all()],
                "teams": [{"id": tid, "name": name, "key": key} for tid, name, key in teams.all()],
            }

    async def get_category_counts(self, user_id: int) -> Dict[str, int]:
        """Per-category counts at the latest snapshot of each entity family."""
        counts: Dict[str, int] = {}
        families = ((EntityKindEnum.WORK_ITEM,), GITHUB_ENTITY_KINDS)

        async with self.db.session() as session:
            for kinds in families:
                latest = _latest_date_subquery(user_id, kinds)
                result = await session.execute(
                    select(SnapshotDB.category, func.count(SnapshotDB.id))
                    .where(
                        SnapshotDB.user_id == user_id,
                        SnapshotDB.snapshot_date == latest,
                        SnapshotDB.entity_kind.in_([kind.value for kind in kinds]),
                    )
                    .group_by(SnapshotDB.category)
                )
                counts.update({category: count for category, count in result.all()})

        return counts

    # ==================== GITHUB ====================

    async def get_pull_requests(
        self,
        user_id: int,
        category: SnapshotCategoryEnum,
        repository_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[PullRequestDB]:
        latest = _latest_date_subquery(user_id, GITHUB_ENTITY_KINDS)
        stmt = (
            select(PullRequestDB)
            .join(
                SnapshotDB,
                and_(
                    SnapshotDB.entity_id == PullRequestDB.id,
                    SnapshotDB.entity_kind == EntityKindEnum.PULL_REQUEST.value,
                ),
            )
            .where(
                SnapshotDB.user_id == user_id,
                SnapshotDB.snapshot_date == latest,
                SnapshotDB.category == category.value,
            )
        )
        if repository_id:
            stmt = stmt.where(PullRequestDB.repository_id == repository_id)
        if search:
            pattern = _contains_pattern(search)
            stmt = stmt.where(or_(
                PullRequestDB.title.ilike(pattern, escape=LIKE_ESCAPE),
                PullRequestDB.body.ilike(pattern, escape=LIKE_ESCAPE),
            ))

        stmt = stmt.order_by(PullRequestDB.updated_at.desc(), PullRequestDB.id)

        async with self.db.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_repo_issues(
        self,
        user_id: int,
        category: SnapshotCategoryEnum,
        repository_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[RepoIssueDB]:
        latest = _latest_date_subquery(user_id, GITHUB_ENTITY_KINDS)
        stmt = (
            select(RepoIssueDB)
            .join(
                SnapshotDB,
                and_(
                    SnapshotDB.entity_id == RepoIssueDB.id,
                    SnapshotDB.entity_kind == EntityKindEnum.REPO_ISSUE.value,
                ),
            )
            .where(
                SnapshotDB.user_id == user_id,
                SnapshotDB.snapshot_date == latest,
                SnapshotDB.category == category.value,
            )
        )
        if repository_id:
            stmt = stmt.where(RepoIssueDB.repository_id == repository_id)
        if search:
            pattern = _contains_pattern(search)
            stmt = stmt.where(or_(
                RepoIssueDB.title.ilike(pattern, escape=LIKE_ESCAPE),
                RepoIssueDB.body.ilike(pattern, escape=LIKE_ESCAPE),
            ))

        stmt = stmt.order_by(RepoIssueDB.updated_at.desc(), RepoIssueDB.id)

        async with self.db.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_reviews(self, user_id: int) -> List[CodeReviewDB]:
        latest = _latest_date_subquery(user_id, GITHUB_ENTITY_KINDS)
        stmt = (
            select(CodeReviewDB)
            .join(
                SnapshotDB,
                and_(
                    SnapshotDB.entity_id == CodeReviewDB.id,
                    SnapshotDB.entity_kind == EntityKindEnum.CODE_REVIEW.value,
                ),
            )
            .where(
                SnapshotDB.user_id == user_id,
                SnapshotDB.snapshot_date == latest,
                SnapshotDB.category == SnapshotCategoryEnum.REVIEW_GIVEN.value,
            )
            .order_by(CodeReviewDB.submitted_at.desc())
        )

        async with self.db.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())


# Singleton
_snapshot_repository: Optional[SnapshotRepository] = None


def get_snapshot_repository() -> SnapshotRepository:
    """Get the snapshot repository singleton."""
    global _snapshot_repository
    if _snapshot_repository is None:
        _snapshot_repository = SnapshotRepository()
    return _snapshot_repository
