"""
Snapshot store.

Writes: upsert the canonical Linear / GitHub rows, then append one snapshot
row per entity for this report run. Reads: the user's latest snapshot view.
"""

import logging
from datetime import date, datetime
from typing import Optional, List, Dict, Any

from ..database.models import (
    EntityKindEnum,
    SnapshotCategoryEnum,
    GITHUB_ENTITY_KINDS,
    WorkItemDB,
    PullRequestDB,
    RepoIssueDB,
    CodeReviewDB,
)
from ..database.repositories.artifacts import get_artifact_repository
from ..database.repositories.snapshots import get_snapshot_repository
from ..database.repositories.work_items import get_work_item_repository
from ..models.report import CategorizedWorkItems
from ..models.source_control import GitHubActivity
from ..utils.datetime_utils import naive_utc_now, to_naive_utc

logger = logging.getLogger(__name__)


_WORK_ITEM_BUCKETS = (
    ("completed", SnapshotCategoryEnum.COMPLETED),
    ("started", SnapshotCategoryEnum.STARTED),
    ("updated", SnapshotCategoryEnum.UPDATED),
    ("other_open", SnapshotCategoryEnum.OPEN),
)


class SnapshotStore:
    """Persists per-run snapshots and answers latest-view queries."""

    def __init__(self):
        self.work_items = get_work_item_repository()
        self.artifacts = get_artifact_repository()
        self.snapshots = get_snapshot_repository()

    # ==================== WRITE ====================

    async def sync_work_items(
        self,
        user_id: int,
        categorized: CategorizedWorkItems,
        period_start: date,
        period_end: date,
        snapshot_date: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """
        Upsert every categorized work item and snapshot it under its bucket.

        Returns:
            Linear id -> internal work item id
        """
        snapshot_date = to_naive_utc(snapshot_date) or naive_utc_now()

        all_items = [item for attr, _ in _WORK_ITEM_BUCKETS for item in getattr(categorized, attr)]
        ids = await self.work_items.upsert_many(all_items)

        rows = []
        for attr, category in _WORK_ITEM_BUCKETS:
            for item in getattr(categorized, attr):
                rows.append({
                    "user_id": user_id,
                    "entity_kind": EntityKindEnum.WORK_ITEM.value,
                    "entity_id": ids[item.id],
                    "snapshot_date": snapshot_date,
                    "period_start": period_start,
                    "period_end": period_end,
                    "category": category.value,
                    "state_snapshot": item.state.type,
                    "priority_snapshot": item.priority,
                })

        await self.snapshots.add_many(rows)
        logger.info(f"Snapshotted {len(rows)} work items for user {user_id}: {categorized.counts()}")
        return ids

    async def sync_github_activity(
        self,
        user_id: int,
        activity: GitHubActivity,
        period_start: date,
        period_end: date,
        snapshot_date: Optional[datetime] = None,
    ) -> Dict[str, Dict[str, int]]:
        """
        Upsert repositories, pull requests, issues and reviews, then snapshot them.

        Synced pull requests and issues get their `internal_id` set so they
        can be correlated without another lookup.

        Returns:
            {"pull_requests": {github id: id}, "repo_issues": {...}, "reviews": {...}}
        """
        snapshot_date = to_naive_utc(snapshot_date) or naive_utc_now()
        base = {
            "user_id": user_id,
            "snapshot_date": snapshot_date,
            "period_start": period_start,
            "period_end": period_end,
        }

        await self.artifacts.upsert_repositories(activity.repositories)

        pr_ids = await self.artifacts.upsert_pull_requests(activity.merged_prs + activity.active_prs)
        issue_ids = await self.artifacts.upsert_repo_issues(activity.closed_issues + activity.active_issues)

        rows: List[Dict[str, Any]] = []
        for prs, category in (
            (activity.merged_prs, SnapshotCategoryEnum.COMPLETED_PR),
            (activity.active_prs, SnapshotCategoryEnum.ACTIVE_PR),
        ):
            for pr in prs:
                pr.internal_id = pr_ids[str(pr.id)]
                rows.append({
                    **base,
                    "entity_kind": EntityKindEnum.PULL_REQUEST.value,
                    "entity_id": pr.internal_id,
                    "category": category.value,
                    "state_snapshot": pr.state,
                    "is_merged_snapshot": pr.merged or pr.merged_at is not None,
                    "additions_snapshot": pr.additions,
                    "deletions_snapshot": pr.deletions,
                })

        for issues, category in (
            (activity.closed_issues, SnapshotCategoryEnum.COMPLETED_ISSUE),
            (activity.active_issues, SnapshotCategoryEnum.ACTIVE_ISSUE),
        ):
            for issue in issues:
                issue.internal_id = issue_ids[str(issue.id)]
                rows.append({
                    **base,
                    "entity_kind": EntityKindEnum.REPO_ISSUE.value,
                    "entity_id": issue.internal_id,
                    "category": category.value,
                    "state_snapshot": issue.state,
                })

        review_ids: Dict[str, int] = {}
        for review in activity.reviews:
            coordinates = review.pull_request_coordinates()
            pr_id = await self.artifacts.find_pull_request(*coordinates) if coordinates else None
            if pr_id is None:
                logger.warning(f"Could not find PR for review {review.id} ({review.pull_request_url})")
                continue

            review_id = await self.artifacts.upsert_review(review, pr_id)
            review_ids[str(review.id)] = review_id
            rows.append({
                **base,
                "entity_kind": EntityKindEnum.CODE_REVIEW.value,
                "entity_id": review_id,
                "category": SnapshotCategoryEnum.REVIEW_GIVEN.value,
                "state_snapshot": review.state,
            })

        await self.snapshots.add_many(rows)
        logger.info(
            f"Snapshotted GitHub activity for user {user_id}: "
            f"{len(pr_ids)} PRs, {len(issue_ids)} issues, {len(review_ids)} reviews"
        )

        return {"pull_requests": pr_ids, "repo_issues": issue_ids, "reviews": review_ids}

    # ==================== READ ====================

    async def get_latest_snapshot_date(self, user_id: int, github: bool = False) -> Optional[datetime]:
        kinds = GITHUB_ENTITY_KINDS if github else (EntityKindEnum.WORK_ITEM,)
        return await self.snapshots.get_latest_snapshot_date(user_id, kinds)

    async def get_work_items_by_category(
        self,
        user_id: int,
        category: SnapshotCategoryEnum,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[WorkItemDB]:
        return await self.snapshots.get_work_items(user_id, category, filters)

    async def get_filter_options(self, user_id: int) -> Dict[str, List[Dict[str, Any]]]:
        return await self.snapshots.get_filter_options(user_id)

    async def get_category_counts(self, user_id: int) -> Dict[str, int]:
        return await self.snapshots.get_category_counts(user_id)

    async def get_pull_requests_by_category(
        self,
        user_id: int,
        category: SnapshotCategoryEnum,
        repository_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[PullRequestDB]:
        return await self.snapshots.get_pull_requests(user_id, category, repository_id, search)

    async def get_repo_issues_by_category(
        self,
        user_id: int,
        category: SnapshotCategoryEnum,
        repository_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[RepoIssueDB]:
        return await self.snapshots.get_repo_issues(user_id, category, repository_id, search)

    async def get_reviews(self, user_id: int) -> List[CodeReviewDB]:
        return await self.snapshots.get_reviews(user_id)


# Singleton
_snapshot_store: Optional[SnapshotStore] = None


def get_snapshot_store() -> SnapshotStore:
    global _snapshot_store
    if _snapshot_store is None:
        _snapshot_store = SnapshotStore()
    return _snapshot_store
