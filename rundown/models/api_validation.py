"""
Pydantic models for API endpoint input validation.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, field_validator


# ============================================
# REPORTS
# ============================================

class TriggerReportRequest(BaseModel):
    """Send the weekly report to one user, or to every recipient when omitted."""
    user_id: Optional[int] = Field(None, gt=0)


class PreviewReportRequest(BaseModel):
    user_id: int = Field(..., gt=0)


class RetryDeliveryRequest(BaseModel):
    max_attempts: int = Field(3, ge=1, le=10)
    base_delay: float = Field(1.0, ge=0, le=60)


# ============================================
# COOLDOWN
# ============================================

class CooldownScheduleRequest(BaseModel):
    """Input validation for creating or replacing a cooldown schedule."""
    user_id: int = Field(..., gt=0)
    next_start_date: date
    duration_weeks: int = Field(2, ge=1, le=52)


# ============================================
# ISSUE QUERIES
# ============================================

class WorkItemFilter(BaseModel):
    """Filters for the latest-snapshot work item view."""
    project_id: Optional[str] = Field(None, max_length=100)
    team_id: Optional[str] = Field(None, max_length=100)
    priority: Optional[int] = Field(None, ge=0, le=4)
    state_type: Optional[str] = Field(None, max_length=50)
    search: Optional[str] = Field(None, max_length=200)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v):
        if v is None:
            return v
        stripped = v.strip()
        return stripped or None


class ArtifactFilter(BaseModel):
    repository_id: Optional[int] = Field(None, gt=0)
    search: Optional[str] = Field(None, max_length=200)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v):
        if v is None:
            return v
        stripped = v.strip()
        return stripped or None


# ============================================
# USERS
# ============================================

class GitHubAccountRequest(BaseModel):
    """Link a user to a GitHub account, optionally with a personal access token."""
    github_username: str = Field(
        ..., min_length=1, max_length=39, pattern=r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$"
    )
    access_token: Optional[str] = Field(None, min_length=1, max_length=255)
    github_user_id: Optional[str] = Field(None, max_length=50)
