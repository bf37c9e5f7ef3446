"""
GitHub REST API client.

Collects a user's pull requests, issues, reviews and repositories for a
period and categorizes them into a GitHubActivity.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Tuple

import aiohttp

from config import settings
from ..models.source_control import (
    GitHubActivity,
    PullRequest,
    RepoIssue,
    RepositoryRef,
    Review,
)
from ..utils.datetime_utils import utc_now, to_aware_utc, format_date
from ..utils.retry import with_retry, GITHUB_RETRY, TransientAPIError, RETRYABLE_STATUSES, RetryExhausted

logger = logging.getLogger(__name__)

PER_PAGE = 100
# The search API never returns more than 1000 results
MAX_SEARCH_PAGES = 10


class GitHubAPIError(Exception):
    """GitHub returned an error or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


def _within(value: Optional[datetime], since: datetime, until: datetime) -> bool:
    return value is not None and since <= value <= until


class GitHubClient:
    """Async client for the GitHub REST API, authenticated with a user's token."""

    def __init__(self, token: Optional[str] = None, api_url: Optional[str] = None):
        self.token = token if token is not None else settings.github_token
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=30)
        self._repo_cache: Dict[Tuple[str, str], RepositoryRef] = {}

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    @with_retry(**GITHUB_RETRY)
    async def _get_raw(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        url = path if path.startswith("http") else f"{self.api_url}{path}"

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(url, params=params, headers=headers) as response:
                if response.status in RETRYABLE_STATUSES:
                    raise TransientAPIError("GitHub", response.status, await response.text())
                if response.status == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
                    raise TransientAPIError("GitHub", response.status, "rate limit exceeded")
                if response.status != 200:
                    error = await response.text()
                    logger.error(f"GitHub API error: {response.status} - {error}")
                    raise GitHubAPIError(f"GitHub API returned {response.status} for {path}", response.status)
                return await response.json()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self.is_configured:
            raise GitHubAPIError("No GitHub token available")
        try:
            return await self._get_raw(path, params)
        except RetryExhausted as e:
            raise GitHubAPIError(str(e)) from e

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """All items of an issues/PR search, newest update first."""
        items: List[Dict[str, Any]] = []
        for page in range(1, MAX_SEARCH_PAGES + 1):
            data = await self.get(
                "/search/issues",
                {"q": query, "sort": "updated", "per_page": PER_PAGE, "page": page},
            )
            batch = data.get("items") or []
            items.extend(batch)
            if len(batch) < PER_PAGE or len(items) >= data.get("total_count", 0):
                break
        return items

    # ==================== DETAILS ====================

    async def get_current_user(self) -> Dict[str, Any]:
        return await self.get("/user")

    async def get_repository(self, owner: str, repo: str) -> RepositoryRef:
        key = (owner, repo)
        if key not in self._repo_cache:
            self._repo_cache[key] = RepositoryRef.model_validate(await self.get(f"/repos/{owner}/{repo}"))
        return self._repo_cache[key]

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequest:
        data = await self.get(f"/repos/{owner}/{repo}/pulls/{number}")
        pr = PullRequest.model_validate(data)
        base_repo = (data.get("base") or {}).get("repo")
        if base_repo:
            pr.repository = RepositoryRef.model_validate(base_repo)
            self._repo_cache.setdefault((owner, repo), pr.repository)
        else:
            pr.repository = await self.get_repository(owner, repo)
        return pr

    async def get_issue(self, owner: str, repo: str, number: int) -> RepoIssue:
        data = await self.get(f"/repos/{owner}/{repo}/issues/{number}")
        issue = RepoIssue.model_validate(data)
        issue.repository = await self.get_repository(owner, repo)
        return issue

    async def get_pull_request_reviews(self, owner: str, repo: str, number: int) -> List[Review]:
        data = await self.get(f"/repos/{owner}/{repo}/pulls/{number}/reviews", {"per_page": PER_PAGE})
        return [Review.model_validate(r) for r in data]

    @staticmethod
    def _coordinates(item: Dict[str, Any]) -> Tuple[str, str]:
        owner, repo = item["repository_url"].rstrip("/").split("/")[-2:]
        return owner, repo

    # ==================== USER ACTIVITY ====================

    async def get_user_pull_requests(self, username: str, since: datetime) -> List[PullRequest]:
        items = await self.search(f"author:{username} is:pr created:>={format_date(since)}")
        prs = []
        for item in items:
            if "pull_request" not in item:
                continue
            owner, repo = self._coordinates(item)
            prs.append(await self.get_pull_request(owner, repo, item["number"]))
        return prs

    async def get_user_issues(self, username: str, since: datetime) -> List[RepoIssue]:
        items = await self.search(f"involves:{username} is:issue created:>={format_date(since)}")
        issues = []
        for item in items:
            if "pull_request" in item:
                continue
            owner, repo = self._coordinates(item)
            issues.append(await self.get_issue(owner, repo, item["number"]))
        return issues

    async def get_user_reviews(self, username: str, since: datetime) -> List[Review]:
        items = await self.search(f"reviewed-by:{username} is:pr created:>={format_date(since)}")
        reviews = []
        for item in items:
            owner, repo = self._coordinates(item)
            for review in await self.get_pull_request_reviews(owner, repo, item["number"]):
                if review.user.login.lower() != username.lower():
                    continue
                if review.submitted_at is None or review.submitted_at < since:
                    continue
                reviews.append(review)
        return reviews

    async def get_user_activity(
        self,
        username: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> GitHubActivity:
        """
        A user's GitHub activity between `since` and `until`.

        merged PRs: merged inside the window; active PRs: still open;
        closed issues: closed inside the window; active issues: still open.
        """
        until = to_aware_utc(until) or utc_now()
        since = to_aware_utc(since) or (until - timedelta(days=settings.report_window_days))

        prs = await self.get_user_pull_requests(username, since)
        issues = await self.get_user_issues(username, since)
        reviews = await self.get_user_reviews(username, since)

        repositories: Dict[int, RepositoryRef] = {}
        for artifact in [*prs, *issues]:
            if artifact.repository:
                repositories.setdefault(artifact.repository.id, artifact.repository)

        activity = GitHubActivity(
            username=username,
            since=since,
            until=until,
            merged_prs=[pr for pr in prs if _within(pr.merged_at, since, until)],
            active_prs=[pr for pr in prs if pr.state == "open"],
            closed_issues=[i for i in issues if _within(i.closed_at, since, until)],
            active_issues=[i for i in issues if i.state == "open"],
            reviews=reviews,
            repositories=list(repositories.values()),
        )

        logger.info(
            f"GitHub activity for {username}: {len(activity.merged_prs)} merged PRs, "
            f"{len(activity.active_prs)} open PRs, {len(activity.closed_issues)} closed issues, "
            f"{len(activity.active_issues)} open issues, {len(activity.reviews)} reviews"
        )
        return activity
