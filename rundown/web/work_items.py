"""
Work item endpoints.
"""

from fastapi import APIRouter, HTTPException

from ..database.repositories.work_items import get_work_item_repository
from ..services.correlation import get_correlation_service
from .serializers import work_item_to_dict, pull_request_to_dict, repo_issue_to_dict

router = APIRouter(prefix="/api/work-items", tags=["work-items"])


@router.get("/{work_item_id}/github")
async def get_work_item_github(work_item_id: int):
    """Pull requests and GitHub issues correlated with a work item."""
    item = await get_work_item_repository().get_by_id(work_item_id)
    if not item:
        raise HTTPException(status_code=404, detail=f"Work item {work_item_id} not found")

    work = await get_correlation_service().get_correlated_work(work_item_id)
    return {
        "work_item": work_item_to_dict(item),
        "pull_requests": [pull_request_to_dict(pr) for pr in work.pull_requests],
        "repo_issues": [repo_issue_to_dict(issue) for issue in work.repo_issues],
    }
