"""
PostgreSQL database module for Weekly Rundown.

Handles:
- Users and their Slack / Linear / GitHub identities
- Canonical work items and GitHub artifacts
- Correlation links and append-only snapshots
- Cooldown schedules, sync status and delivery logs
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    UserDB,
    WorkItemDB,
    RepositoryDB,
    PullRequestDB,
    RepoIssueDB,
    CodeReviewDB,
    CorrelationLinkDB,
    SnapshotDB,
    CooldownScheduleDB,
    SyncStatusDB,
    DeliveryLogDB,
    ConfidenceEnum,
    LinkTypeEnum,
    ArtifactKindEnum,
    EntityKindEnum,
    SnapshotCategoryEnum,
    SyncTypeEnum,
    SyncStatusEnum,
    DeliveryStatusEnum,
)
from .exceptions import (
    DatabaseError,
    DatabaseConnectionError,
    DatabaseConstraintError,
    DatabaseOperationError,
    EntityNotFoundError,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "UserDB",
    "WorkItemDB",
    "RepositoryDB",
    "PullRequestDB",
    "RepoIssueDB",
    "CodeReviewDB",
    "CorrelationLinkDB",
    "SnapshotDB",
    "CooldownScheduleDB",
    "SyncStatusDB",
    "DeliveryLogDB",
    "ConfidenceEnum",
    "LinkTypeEnum",
    "ArtifactKindEnum",
    "EntityKindEnum",
    "SnapshotCategoryEnum",
    "SyncTypeEnum",
    "SyncStatusEnum",
    "DeliveryStatusEnum",
    "DatabaseError",
    "DatabaseConnectionError",
    "DatabaseConstraintError",
    "DatabaseOperationError",
    "EntityNotFoundError",
]
