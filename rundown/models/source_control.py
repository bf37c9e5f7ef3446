"""GitHub models as returned by the REST API."""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from .tracker import parse_timestamp


class GitHubUser(BaseModel):
    login: str = ""
    id: int = 0


class BranchRef(BaseModel):
    ref: str = ""


class RepositoryRef(BaseModel):
    id: int
    name: str
    full_name: str
    owner: GitHubUser = Field(default_factory=GitHubUser)
    html_url: Optional[str] = None
    private: bool = False
    fork: bool = False
    archived: bool = False
    default_branch: Optional[str] = None

    @property
    def url(self) -> str:
        return self.html_url or f"https://github.com/{self.full_name}"


class Label(BaseModel):
    name: str


class PullRequest(BaseModel):
    """A pull request with code stats."""
    id: int
    number: int
    title: str
    body: Optional[str] = None
    state: str = "open"  # open, closed
    draft: bool = False
    merged: bool = False
    html_url: Optional[str] = None
    user: GitHubUser = Field(default_factory=GitHubUser)
    head: BranchRef = Field(default_factory=BranchRef)
    base: BranchRef = Field(default_factory=BranchRef)
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    repository: Optional[RepositoryRef] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    # Set once the PR has a row in the database
    internal_id: Optional[int] = None

    @field_validator("created_at", "updated_at", "merged_at", "closed_at", mode="before")
    @classmethod
    def lenient_timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator("additions", "deletions", "changed_files", mode="before")
    @classmethod
    def zero_if_missing(cls, v):
        return v or 0

    @property
    def branch_name(self) -> str:
        return self.head.ref


class RepoIssue(BaseModel):
    """A GitHub issue."""
    id: int
    number: int
    title: str
    body: Optional[str] = None
    state: str = "open"
    state_reason: Optional[str] = None
    html_url: Optional[str] = None
    user: GitHubUser = Field(default_factory=GitHubUser)
    assignee: Optional[GitHubUser] = None
    labels: List[Label] = Field(default_factory=list)
    repository: Optional[RepositoryRef] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    internal_id: Optional[int] = None

    @field_validator("created_at", "updated_at", "closed_at", mode="before")
    @classmethod
    def lenient_timestamp(cls, v):
        return parse_timestamp(v)


class Review(BaseModel):
    """A review submitted on a pull request."""
    id: int
    user: GitHubUser = Field(default_factory=GitHubUser)
    body: Optional[str] = None
    state: str
    html_url: Optional[str] = None
    pull_request_url: str = ""
    submitted_at: Optional[datetime] = None

    @field_validator("submitted_at", mode="before")
    @classmethod
    def lenient_timestamp(cls, v):
        return parse_timestamp(v)

    def pull_request_coordinates(self) -> Optional[tuple]:
        """(owner, repo, number) parsed from the API pull request URL."""
        parts = self.pull_request_url.rstrip("/").split("/")
        if len(parts) < 4 or not parts[-1].isdigit():
            return None
        return parts[-4], parts[-3], int(parts[-1])


class GitHubActivity(BaseModel):
    """A user's categorized GitHub activity for a period."""
    username: str
    since: datetime
    until: datetime
    merged_prs: List[PullRequest] = Field(default_factory=list)
    active_prs: List[PullRequest] = Field(default_factory=list)
    closed_issues: List[RepoIssue] = Field(default_factory=list)
    active_issues: List[RepoIssue] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)
    repositories: List[RepositoryRef] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.merged_prs or self.active_prs or self.closed_issues
            or self.active_issues or self.reviews
        )
