"""Linear work item models as returned by the GraphQL API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkflowStateType(str, Enum):
    """Linear workflow state categories."""
    BACKLOG = "backlog"
    TRIAGE = "triage"
    UNSTARTED = "unstarted"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELED = "canceled"


CLOSED_STATE_TYPES = frozenset({WorkflowStateType.COMPLETED.value, WorkflowStateType.CANCELED.value})


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an API timestamp into an aware UTC datetime.

    Returns None for missing or malformed input instead of raising.
    Naive values are read as UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class WorkflowState(BaseModel):
    """Workflow state of an issue."""
    id: Optional[str] = None
    name: str = ""
    type: str = WorkflowStateType.UNSTARTED.value


class ProjectRef(BaseModel):
    id: str
    name: str


class TeamRef(BaseModel):
    id: str
    name: str
    key: Optional[str] = None


class WorkItem(BaseModel):
    """An issue assigned to a user in Linear."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    identifier: str
    title: str
    description: Optional[str] = None
    priority: int = 0  # 0 none, 1 urgent, 2 high, 3 medium, 4 low
    estimate: Optional[float] = None

    state: WorkflowState = Field(default_factory=WorkflowState)
    project: Optional[ProjectRef] = None
    team: Optional[TeamRef] = None

    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    canceled_at: Optional[datetime] = Field(default=None, alias="canceledAt")

    @field_validator("created_at", "updated_at", "started_at", "completed_at", "canceled_at", mode="before")
    @classmethod
    def lenient_timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator("priority", mode="before")
    @classmethod
    def default_priority(cls, v):
        return 0 if v is None else v

    @property
    def is_open(self) -> bool:
        return self.state.type not in CLOSED_STATE_TYPES

    @property
    def project_name(self) -> Optional[str]:
        return self.project.name if self.project else None


class TrackerOrganization(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    url_key: Optional[str] = Field(default=None, alias="urlKey")


class TrackerUser(BaseModel):
    """A Linear user (the API viewer or a workspace member)."""
    id: str
    name: str = ""
    email: Optional[str] = None
    active: bool = True
    organization: Optional[TrackerOrganization] = None
