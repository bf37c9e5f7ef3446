"""
GitHub artifact repository.

Repositories, pull requests, issues and reviews, each upserted by its
GitHub id. Pull requests and issues create their repository on first sight.
"""

import logging
from typing import Optional, List, Dict, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..connection import get_database
from ..models import RepositoryDB, PullRequestDB, RepoIssueDB, CodeReviewDB
from ..exceptions import DatabaseOperationError
from ...models.source_control import PullRequest, RepoIssue, Review, RepositoryRef
from ...utils.datetime_utils import naive_utc_now, to_naive_utc

logger = logging.getLogger(__name__)


class ArtifactRepository:
    """Repository for GitHub artifact operations."""

    def __init__(self):
        self.db = get_database()

    # ==================== UPSERTS ====================

    async def _upsert_repository(self, session: AsyncSession, repo: RepositoryRef) -> RepositoryDB:
        result = await session.execute(
            select(RepositoryDB).where(RepositoryDB.external_id == str(repo.id))
        )
        row = result.scalar_one_or_none()
        now = naive_utc_now()
        columns = {
            "owner": repo.owner.login or repo.full_name.split("/")[0],
            "name": repo.name,
            "full_name": repo.full_name,
            "url": repo.url,
            "is_private": repo.private,
            "is_fork": repo.fork,
            "is_archived": repo.archived,
            "default_branch": repo.default_branch,
        }

        if row:
            for column, value in columns.items():
                setattr(row, column, value)
            row.last_synced_at = now
        else:
            row = RepositoryDB(external_id=str(repo.id), first_synced_at=now, last_synced_at=now, **columns)
            session.add(row)

        await session.flush()
        return row

    async def _upsert_pull_request(self, session: AsyncSession, pr: PullRequest) -> PullRequestDB:
        if pr.repository is None:
            raise ValueError(f"Pull request #{pr.number} missing repository information")

        repository = await self._upsert_repository(session, pr.repository)
        result = await session.execute(
            select(PullRequestDB).where(PullRequestDB.external_id == str(pr.id))
        )
        row = result.scalar_one_or_none()
        now = naive_utc_now()
        columns = {
            "repository_id": repository.id,
            "number": pr.number,
            "title": pr.title,
            "body": pr.body,
            "url": pr.html_url,
            "state": pr.state,
            "is_draft": pr.draft,
            "is_merged": pr.merged or pr.merged_at is not None,
            "author_login": pr.user.login,
            "author_external_id": str(pr.user.id) if pr.user.id else None,
            "head_ref": pr.head.ref,
            "base_ref": pr.base.ref,
            "additions": pr.additions,
            "deletions": pr.deletions,
            "changed_files": pr.changed_files,
            "created_at": to_naive_utc(pr.created_at),
            "updated_at": to_naive_utc(pr.updated_at),
            "merged_at": to_naive_utc(pr.merged_at),
            "closed_at": to_naive_utc(pr.closed_at),
        }

        if row:
            for column, value in columns.items():
                setattr(row, column, value)
            row.last_synced_at = now
        else:
            row = PullRequestDB(external_id=str(pr.id), first_synced_at=now, last_synced_at=now, **columns)
            session.add(row)

        await session.flush()
        return row

    async def _upsert_repo_issue(self, session: AsyncSession, issue: RepoIssue) -> RepoIssueDB:
        if issue.repository is None:
            raise ValueError(f"Issue #{issue.number} missing repository information")

        repository = await self._upsert_repository(session, issue.repository)
        result = await session.execute(
            select(RepoIssueDB).where(RepoIssueDB.external_id == str(issue.id))
        )
        row = result.scalar_one_or_none()
        now = naive_utc_now()
        columns = {
            "repository_id": repository.id,
            "number": issue.number,
            "title": issue.title,
            "body": issue.body,
            "url": issue.html_url,
            "state": issue.state,
            "state_reason": issue.state_reason,
            "author_login": issue.user.login,
            "assignee_login": issue.assignee.login if issue.assignee else None,
            "labels": [label.name for label in issue.labels],
            "created_at": to_naive_utc(issue.created_at),
            "updated_at": to_naive_utc(issue.updated_at),
            "closed_at": to_naive_utc(issue.closed_at),
        }

        if row:
            for column, value in columns.items():
                setattr(row, column, value)
            row.last_synced_at = now
        else:
            row = RepoIssueDB(external_id=str(issue.id), first_synced_at=now, last_synced_at=now, **columns)
            session.add(row)

        await session.flush()
        return row

    async def upsert_repositories(self, repos: Iterable[RepositoryRef]) -> Dict[str, int]:
        ids: Dict[str, int] = {}
        async with self.db.session() as session:
            try:
                for repo in repos:
                    row = await self._upsert_repository(session, repo)
                    ids[str(repo.id)] = row.id
            except Exception as e:
                logger.error(f"Repository upsert failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert repositories: {e}")
        return ids

    async def upsert_pull_requests(self, prs: Iterable[PullRequest]) -> Dict[str, int]:
        """Upsert pull requests. Returns GitHub id -> internal id."""
        ids: Dict[str, int] = {}
        async with self.db.session() as session:
            try:
                for pr in prs:
                    row = await self._upsert_pull_request(session, pr)
                    ids[str(pr.id)] = row.id
            except Exception as e:
                logger.error(f"Pull request upsert failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert pull requests: {e}")
        return ids

    async def upsert_repo_issues(self, issues: Iterable[RepoIssue]) -> Dict[str, int]:
        """Upsert GitHub issues. Returns GitHub id -> internal id."""
        ids: Dict[str, int] = {}
        async with self.db.session() as session:
            try:
                for issue in issues:
                    row = await self._upsert_repo_issue(session, issue)
                    ids[str(issue.id)] = row.id
            except Exception as e:
                logger.error(f"Repo issue upsert failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert repo issues: {e}")
        return ids

    async def upsert_review(self, review: Review, pull_request_id: int) -> int:
        async with self.db.session() as session:
            result = await session.execute(
                select(CodeReviewDB).where(CodeReviewDB.external_id == str(review.id))
            )
            row = result.scalar_one_or_none()
            now = naive_utc_now()

            if row:
                row.state = review.state
                row.body = review.body
                row.submitted_at = to_naive_utc(review.submitted_at)
                row.last_synced_at = now
            else:
                row = CodeReviewDB(
                    external_id=str(review.id),
                    pull_request_id=pull_request_id,
                    reviewer_login=review.user.login,
                    state=review.state,
                    body=review.body,
                    submitted_at=to_naive_utc(review.submitted_at),
                    first_synced_at=now,
                    last_synced_at=now,
                )
                session.add(row)

            await session.flush()
            return row.id

    # ==================== LOOKUPS ====================

    async def find_pull_request(self, owner: str, repo: str, number: int) -> Optional[int]:
        """Internal id of the PR `owner/repo#number`, if it has been synced."""
        async with self.db.session() as session:
            result = await session.execute(
                select(PullRequestDB.id)
                .join(RepositoryDB, RepositoryDB.id == PullRequestDB.repository_id)
                .where(
                    RepositoryDB.owner == owner,
                    RepositoryDB.name == repo,
                    PullRequestDB.number == number,
                )
            )
            return result.scalar_one_or_none()

    async def get_pull_request_by_external_id(self, external_id: str) -> Optional[PullRequestDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(PullRequestDB).where(PullRequestDB.external_id == external_id)
            )
            return result.scalar_one_or_none()

    async def get_repo_issue_by_external_id(self, external_id: str) -> Optional[RepoIssueDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(RepoIssueDB).where(RepoIssueDB.external_id == external_id)
            )
            return result.scalar_one_or_none()

    async def get_pull_requests_by_ids(self, ids: Iterable[int]) -> List[PullRequestDB]:
        ids = list(ids)
        if not ids:
            return []
        async with self.db.session() as session:
            result = await session.execute(
                select(PullRequestDB).where(PullRequestDB.id.in_(ids)).order_by(PullRequestDB.updated_at.desc())
            )
            return list(result.scalars().all())

    async def get_repo_issues_by_ids(self, ids: Iterable[int]) -> List[RepoIssueDB]:
        ids = list(ids)
        if not ids:
            return []
        async with self.db.session() as session:
            result = await session.execute(
                select(RepoIssueDB).where(RepoIssueDB.id.in_(ids)).order_by(RepoIssueDB.updated_at.desc())
            )
            return list(result.scalars().all())


# Singleton
_artifact_repository: Optional[ArtifactRepository] = None


def get_artifact_repository() -> ArtifactRepository:
    """Get the artifact repository singleton."""
    global _artifact_repository
    if _artifact_repository is None:
        _artifact_repository = ArtifactRepository()
    return _artifact_repository
