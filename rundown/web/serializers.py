"""
JSON shapes for rows returned by the HTTP API.
"""

from datetime import date, datetime
from typing import Optional, Union, Dict, Any

from ..database.models import (
    WorkItemDB,
    PullRequestDB,
    RepoIssueDB,
    CodeReviewDB,
    DeliveryLogDB,
    CooldownScheduleDB,
)
from ..services.cooldown import cooldown_end_date


def _iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value else None


def work_item_to_dict(item: WorkItemDB) -> Dict[str, Any]:
    return {
        "id": item.id,
        "external_id": item.external_id,
        "identifier": item.identifier,
        "title": item.title,
        "description": item.description,
        "priority": item.priority,
        "estimate": item.estimate,
        "state": {"id": item.state_id, "name": item.state_name, "type": item.state_type},
        "project": {"id": item.project_id, "name": item.project_name} if item.project_id else None,
        "team": {"id": item.team_id, "name": item.team_name, "key": item.team_key} if item.team_id else None,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
        "started_at": _iso(item.started_at),
        "completed_at": _iso(item.completed_at),
    }


def _repository_name(row: Union[PullRequestDB, RepoIssueDB]) -> Optional[str]:
    return row.repository.full_name if row.repository else None


def pull_request_to_dict(pr: PullRequestDB) -> Dict[str, Any]:
    return {
        "id": pr.id,
        "repository": _repository_name(pr),
        "number": pr.number,
        "title": pr.title,
        "url": pr.url,
        "state": pr.state,
        "is_draft": pr.is_draft,
        "is_merged": pr.is_merged,
        "author": pr.author_login,
        "head_ref": pr.head_ref,
        "additions": pr.additions,
        "deletions": pr.deletions,
        "created_at": _iso(pr.created_at),
        "merged_at": _iso(pr.merged_at),
        "closed_at": _iso(pr.closed_at),
    }


def repo_issue_to_dict(issue: RepoIssueDB) -> Dict[str, Any]:
    return {
        "id": issue.id,
        "repository": _repository_name(issue),
        "number": issue.number,
        "title": issue.title,
        "url": issue.url,
        "state": issue.state,
        "labels": issue.labels or [],
        "author": issue.author_login,
        "assignee": issue.assignee_login,
        "created_at": _iso(issue.created_at),
        "closed_at": _iso(issue.closed_at),
    }


def review_to_dict(review: CodeReviewDB) -> Dict[str, Any]:
    return {
        "id": review.id,
        "pull_request_id": review.pull_request_id,
        "reviewer": review.reviewer_login,
        "state": review.state,
        "submitted_at": _iso(review.submitted_at),
    }


def delivery_log_to_dict(log: DeliveryLogDB) -> Dict[str, Any]:
    return {
        "id": log.id,
        "user_id": log.user_id,
        "sent_at": _iso(log.sent_at),
        "status": log.status,
        "error_message": log.error_message,
        "report_period_start": _iso(log.report_period_start),
        "report_period_end": _iso(log.report_period_end),
        "issues_count": log.issues_count,
        "in_cooldown": log.in_cooldown,
    }


def cooldown_schedule_to_dict(schedule: CooldownScheduleDB) -> Dict[str, Any]:
    return {
        "user_id": schedule.user_id,
        "next_start_date": schedule.next_start_date.isoformat(),
        "duration_weeks": schedule.duration_weeks,
        "end_date": cooldown_end_date(schedule).isoformat(),
    }
