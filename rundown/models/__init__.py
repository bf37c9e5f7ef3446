"""Data models for the Weekly Rundown service."""

from .tracker import (
    WorkItem,
    WorkflowState,
    WorkflowStateType,
    ProjectRef,
    TeamRef,
    TrackerUser,
    TrackerOrganization,
    parse_timestamp,
)
from .source_control import (
    PullRequest,
    RepoIssue,
    Review,
    RepositoryRef,
    GitHubUser,
    GitHubActivity,
)
from .report import (
    CategorizedWorkItems,
    CooldownStatus,
    ReportResult,
    DeliveryResult,
    DeliverySummary,
)

__all__ = [
    "WorkItem",
    "WorkflowState",
    "WorkflowStateType",
    "ProjectRef",
    "TeamRef",
    "TrackerUser",
    "TrackerOrganization",
    "parse_timestamp",
    "PullRequest",
    "RepoIssue",
    "Review",
    "RepositoryRef",
    "GitHubUser",
    "GitHubActivity",
    "CategorizedWorkItems",
    "CooldownStatus",
    "ReportResult",
    "DeliveryResult",
    "DeliverySummary",
]
