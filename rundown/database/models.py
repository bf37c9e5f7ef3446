"""
SQLAlchemy models for the PostgreSQL database.

Schema includes:
- Users with Slack, Linear and GitHub identities
- Canonical Linear work items and GitHub artifacts (repos, PRs, issues, reviews)
- Correlation links between work items and GitHub artifacts
- Append-only per-user snapshots taken at report time
- Cooldown schedules, sync run status and report delivery logs

All timestamps are stored as naive UTC.
"""

from datetime import datetime, date
from typing import Optional
from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Date,
    Float,
    ForeignKey,
    JSON,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
import enum

from ..utils.datetime_utils import naive_utc_now as utc_now


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ==================== ENUMS ====================

class ConfidenceEnum(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    ConfidenceEnum.HIGH: 3,
    ConfidenceEnum.MEDIUM: 2,
    ConfidenceEnum.LOW: 1,
}


class LinkTypeEnum(str, enum.Enum):
    BRANCH_NAME = "branch_name"
    PR_TITLE = "pr_title"
    PR_BODY = "pr_body"
    TRACKER_ATTACHMENT = "tracker_attachment"
    MANUAL = "manual"


class ArtifactKindEnum(str, enum.Enum):
    PULL_REQUEST = "pull_request"
    EXTERNAL_ISSUE = "external_issue"


class EntityKindEnum(str, enum.Enum):
    WORK_ITEM = "work_item"
    PULL_REQUEST = "pull_request"
    REPO_ISSUE = "repo_issue"
    CODE_REVIEW = "code_review"


class SnapshotCategoryEnum(str, enum.Enum):
    # Linear work items
    COMPLETED = "completed"
    STARTED = "started"
    UPDATED = "updated"
    OPEN = "open"
    # GitHub artifacts
    COMPLETED_PR = "completed_pr"
    ACTIVE_PR = "active_pr"
    COMPLETED_ISSUE = "completed_issue"
    ACTIVE_ISSUE = "active_issue"
    REVIEW_GIVEN = "review_given"


WORK_ITEM_CATEGORIES = (
    SnapshotCategoryEnum.COMPLETED,
    SnapshotCategoryEnum.STARTED,
    SnapshotCategoryEnum.UPDATED,
    SnapshotCategoryEnum.OPEN,
)

GITHUB_ENTITY_KINDS = (
    EntityKindEnum.PULL_REQUEST,
    EntityKindEnum.REPO_ISSUE,
    EntityKindEnum.CODE_REVIEW,
)


class SyncTypeEnum(str, enum.Enum):
    LINEAR_ISSUES = "linear_issues"
    GITHUB_DATA = "github_data"
    SLACK_USERS = "slack_users"


class SyncStatusEnum(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


class DeliveryStatusEnum(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


# ==================== USERS ====================

class UserDB(Base):
    """Report recipient with identities in Slack, Linear and GitHub."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # Slack identity
    slack_user_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    slack_real_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Linear identity
    linear_user_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    linear_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # GitHub identity (token is Fernet encrypted)
    github_username: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    github_user_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    github_access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    github_connected_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    receive_reports: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    @property
    def display_name(self) -> str:
        return self.slack_real_name or self.linear_name or self.email

    __table_args__ = (
        Index("idx_users_slack_id", "slack_user_id"),
        Index("idx_users_linear_id", "linear_user_id"),
        Index("idx_users_active_reports", "is_active", "receive_reports"),
    )


# ==================== LINEAR WORK ITEMS ====================

class WorkItemDB(Base):
    """Canonical Linear issue, upserted by its Linear id."""
    __tablename__ = "work_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    identifier: Mapped[str] = mapped_column(String(50), nullable=False)  # ENG-123

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=0)  # 0 none, 1 urgent .. 4 low
    estimate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    state_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    project_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    project_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    team_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    team_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    team_key: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Linear timestamps
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    first_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    __table_args__ = (
        Index("idx_work_items_identifier", "identifier"),
        Index("idx_work_items_project", "project_id"),
        Index("idx_work_items_team", "team_id"),
        Index("idx_work_items_state_type", "state_type"),
    )


# ==================== GITHUB ARTIFACTS ====================

class RepositoryDB(Base):
    """GitHub repository."""
    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    owner: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    is_fork: Mapped[bool] = mapped_column(Boolean, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    default_branch: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    first_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    __table_args__ = (
        Index("idx_repositories_full_name", "full_name"),
    )


class PullRequestDB(Base):
    """GitHub pull request."""
    __tablename__ = "pull_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    repository_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    state: Mapped[str] = mapped_column(String(20), default="open")  # open, closed
    is_draft: Mapped[bool] = mapped_column(Boolean, default=False)
    is_merged: Mapped[bool] = mapped_column(Boolean, default=False)

    author_login: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    author_external_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    head_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    base_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    additions: Mapped[int] = mapped_column(Integer, default=0)
    deletions: Mapped[int] = mapped_column(Integer, default=0)
    changed_files: Mapped[int] = mapped_column(Integer, default=0)
    review_state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    merged_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    first_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    repository: Mapped["RepositoryDB"] = relationship("RepositoryDB", lazy="joined")

    __table_args__ = (
        Index("idx_pull_requests_repo_number", "repository_id", "number"),
        Index("idx_pull_requests_author", "author_login"),
    )


class RepoIssueDB(Base):
    """GitHub issue (an external issue as opposed to a Linear work item)."""
    __tablename__ = "repo_issues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    repository_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    state: Mapped[str] = mapped_column(String(20), default="open")
    state_reason: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    author_login: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    assignee_login: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    labels: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    first_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    repository: Mapped["RepositoryDB"] = relationship("RepositoryDB", lazy="joined")

    __table_args__ = (
        Index("idx_repo_issues_repo_number", "repository_id", "number"),
    )


class CodeReviewDB(Base):
    """Review submitted on a GitHub pull request."""
    __tablename__ = "code_reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    pull_request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("pull_requests.id", ondelete="CASCADE"), nullable=False
    )
    reviewer_login: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[str] = mapped_column(String(50), nullable=False)  # APPROVED, CHANGES_REQUESTED, ...
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    first_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    __table_args__ = (
        Index("idx_code_reviews_pr", "pull_request_id"),
    )


# ==================== CORRELATION ====================

class CorrelationLinkDB(Base):
    """
    Heuristic link between a Linear work item and a GitHub artifact.

    One row per (work item, artifact kind, artifact). Confidence only ever
    moves up.
    """
    __tablename__ = "correlation_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    work_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("work_items.id", ondelete="CASCADE"), nullable=False
    )
    artifact_kind: Mapped[str] = mapped_column(String(30), nullable=False)
    artifact_id: Mapped[int] = mapped_column(Integer, nullable=False)

    link_type: Mapped[str] = mapped_column(String(30), nullable=False)
    confidence: Mapped[str] = mapped_column(String(10), nullable=False)
    detection_pattern: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    detected_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("work_item_id", "artifact_kind", "artifact_id", name="uq_correlation_link"),
        Index("idx_correlation_artifact", "artifact_kind", "artifact_id"),
    )


# ==================== SNAPSHOTS ====================

class SnapshotDB(Base):
    """
    Append-only record of a user's view of one entity at report time.

    Volatile fields are denormalised so history survives later upserts of the
    canonical row.
    """
    __tablename__ = "snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    entity_kind: Mapped[str] = mapped_column(String(30), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)

    snapshot_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)

    state_snapshot: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    priority_snapshot: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_merged_snapshot: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    additions_snapshot: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deletions_snapshot: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    __table_args__ = (
        Index("idx_snapshots_user_date", "user_id", "snapshot_date"),
        Index("idx_snapshots_user_category", "user_id", "category"),
        Index("idx_snapshots_entity", "entity_kind", "entity_id"),
    )


# ==================== COOLDOWN ====================

class CooldownScheduleDB(Base):
    """Per-user cooldown window. At most one row per user."""
    __tablename__ = "cooldown_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    next_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)


# ==================== SYNC STATUS ====================

class SyncStatusDB(Base):
    """Singleton status row per sync type."""
    __tablename__ = "sync_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sync_type: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(20), default=SyncStatusEnum.SUCCESS.value)

    last_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_success_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_failed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    total_runs: Mapped[int] = mapped_column(Integer, default=0)
    success_count: Mapped[int] = mapped_column(Integer, default=0)
    failure_count: Mapped[int] = mapped_column(Integer, default=0)

    # "metadata" is reserved on declarative classes
    sync_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)


# ==================== DELIVERY LOGS ====================

class DeliveryLogDB(Base):
    """One row per report send attempt."""
    __tablename__ = "report_delivery_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sent_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    message_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    report_period_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    report_period_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    issues_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    in_cooldown: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("idx_delivery_logs_user", "user_id"),
        Index("idx_delivery_logs_status", "status"),
        Index("idx_delivery_logs_sent_at", "sent_at"),
    )
