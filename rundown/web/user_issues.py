"""
Per-user views over the latest snapshot: Linear issues by report category
and GitHub activity by category.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from ..database.models import SnapshotCategoryEnum, WORK_ITEM_CATEGORIES
from ..models.api_validation import WorkItemFilter, ArtifactFilter
from ..services.snapshots import get_snapshot_store
from .common import get_user_or_404
from .serializers import (
    work_item_to_dict,
    pull_request_to_dict,
    repo_issue_to_dict,
    review_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["user-issues"])

PULL_REQUEST_CATEGORIES = (SnapshotCategoryEnum.COMPLETED_PR, SnapshotCategoryEnum.ACTIVE_PR)
REPO_ISSUE_CATEGORIES = (SnapshotCategoryEnum.COMPLETED_ISSUE, SnapshotCategoryEnum.ACTIVE_ISSUE)
GITHUB_CATEGORIES = PULL_REQUEST_CATEGORIES + REPO_ISSUE_CATEGORIES + (SnapshotCategoryEnum.REVIEW_GIVEN,)


def _parse_category(category: str, allowed) -> SnapshotCategoryEnum:
    values = [c.value for c in allowed]
    if category not in values:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid category. Must be one of: {', '.join(values)}"
        )
    return SnapshotCategoryEnum(category)


@router.get("/{user_id}/issues/{category}")
async def get_user_issues(
    user_id: int,
    category: str,
    project_id: Optional[str] = Query(None, max_length=100),
    team_id: Optional[str] = Query(None, max_length=100),
    priority: Optional[int] = Query(None, ge=0, le=4),
    state_type: Optional[str] = Query(None, max_length=50),
    search: Optional[str] = Query(None, max_length=200),
):
    """Work items in a report category at the user's latest snapshot."""
    kind = _parse_category(category, WORK_ITEM_CATEGORIES)
    await get_user_or_404(user_id)

    filters = WorkItemFilter(
        project_id=project_id,
        team_id=team_id,
        priority=priority,
        state_type=state_type,
        search=search,
    ).model_dump(exclude_none=True)

    store = get_snapshot_store()
    items = await store.get_work_items_by_category(user_id, kind, filters)
    snapshot_date = await store.get_latest_snapshot_date(user_id)

    logger.debug(f"User {user_id} {category} issues: {len(items)} (filters={filters})")
    return {
        "issues": [work_item_to_dict(item) for item in items],
        "count": len(items),
        "category": category,
        "filters": filters,
        "snapshot_date": snapshot_date.isoformat() if snapshot_date else None,
    }


@router.get("/{user_id}/filter-options")
async def get_filter_options(user_id: int):
    """Projects and teams present in the latest snapshot, with category counts."""
    await get_user_or_404(user_id)
    store = get_snapshot_store()

    options = await store.get_filter_options(user_id)
    return {**options, "counts": await store.get_category_counts(user_id)}


@router.get("/{user_id}/github/{category}")
async def get_user_github(
    user_id: int,
    category: str,
    repository_id: Optional[int] = Query(None, gt=0),
    search: Optional[str] = Query(None, max_length=200),
):
    """Pull requests, repository issues or reviews at the latest GitHub snapshot."""
    kind = _parse_category(category, GITHUB_CATEGORIES)
    await get_user_or_404(user_id)

    filters = ArtifactFilter(repository_id=repository_id, search=search)
    store = get_snapshot_store()

    if kind in PULL_REQUEST_CATEGORIES:
        rows = await store.get_pull_requests_by_category(user_id, kind, filters.repository_id, filters.search)
        items = [pull_request_to_dict(pr) for pr in rows]
    elif kind in REPO_ISSUE_CATEGORIES:
        rows = await store.get_repo_issues_by_category(user_id, kind, filters.repository_id, filters.search)
        items = [repo_issue_to_dict(issue) for issue in rows]
    else:
        items = [review_to_dict(review) for review in await store.get_reviews(user_id)]

    snapshot_date = await store.get_latest_snapshot_date(user_id, github=True)
    return {
        "items": items,
        "count": len(items),
        "category": category,
        "snapshot_date": snapshot_date.isoformat() if snapshot_date else None,
    }
