"""
Linear GraphQL API client.

Fetches the viewer (for the organization URL key), workspace users and the
issues assigned to a user. Transient failures are retried with backoff.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

import aiohttp

from config import settings
from ..models.tracker import WorkItem, TrackerUser
from ..utils.datetime_utils import utc_now, to_aware_utc
from ..utils.retry import with_retry, LINEAR_RETRY, TransientAPIError, RETRYABLE_STATUSES, RetryExhausted

logger = logging.getLogger(__name__)


VIEWER_QUERY = """
query Me {
  viewer {
    id
    name
    email
    organization {
      id
      name
      urlKey
    }
  }
}
"""

ISSUE_FIELDS = """
      id
      identifier
      title
      description
      priority
      estimate
      createdAt
      updatedAt
      completedAt
      startedAt
      canceledAt
      state { id name type }
      project { id name }
      team { id name key }
"""

ISSUES_FOR_USER_QUERY = """
query IssuesForUser($userId: ID!, $after: String) {
  issues(
    filter: { assignee: { id: { eq: $userId } } }
    orderBy: updatedAt
    first: 100
    after: $after
  ) {
    nodes {%s    }
    pageInfo { hasNextPage endCursor }
  }
}
""" % ISSUE_FIELDS

USERS_QUERY = """
query AllUsers($after: String) {
  users(first: 100, after: $after) {
    nodes { id name email active }
    pageInfo { hasNextPage endCursor }
  }
}
"""


class LinearAPIError(Exception):
    """Linear returned an error or could not be reached."""
    pass


class LinearClient:
    """Thin async client over the Linear GraphQL API."""

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.linear_api_key
        self.api_url = api_url or settings.linear_api_url
        self.timeout = aiohttp.ClientTimeout(total=30)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @with_retry(**LINEAR_RETRY)
    async def _post(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {"Authorization": self.api_key, "Content-Type": "application/json"}
        payload = {"query": query, "variables": variables or {}}

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(self.api_url, json=payload, headers=headers) as response:
                if response.status in RETRYABLE_STATUSES:
                    raise TransientAPIError("Linear", response.status, await response.text())
                if response.status != 200:
                    error = await response.text()
                    logger.error(f"Linear API error: {response.status} - {error}")
                    raise LinearAPIError(f"Linear API returned {response.status}: {error}")

                body = await response.json()

        if body.get("errors"):
            messages = "; ".join(e.get("message", "unknown error") for e in body["errors"])
            raise LinearAPIError(f"Linear GraphQL error: {messages}")

        return body.get("data") or {}

    async def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a GraphQL query, converting exhausted retries into LinearAPIError."""
        if not self.is_configured:
            raise LinearAPIError("LINEAR_API_KEY is not configured")
        try:
            return await self._post(query, variables)
        except RetryExhausted as e:
            raise LinearAPIError(str(e)) from e

    async def _paginate(self, query: str, root: str, variables: Dict[str, Any]) -> List[Dict[str, Any]]:
        nodes: List[Dict[str, Any]] = []
        after = None
        while True:
            data = await self.query(query, {**variables, "after": after})
            connection = data.get(root) or {}
            nodes.extend(connection.get("nodes") or [])

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                return nodes
            after = page_info.get("endCursor")

    async def get_viewer(self) -> TrackerUser:
        data = await self.query(VIEWER_QUERY)
        viewer = data.get("viewer")
        if not viewer:
            raise LinearAPIError("Linear returned no viewer")
        return TrackerUser.model_validate(viewer)

    async def get_organization_key(self) -> Optional[str]:
        """Workspace URL key used to build issue links; None when unavailable."""
        try:
            viewer = await self.get_viewer()
        except LinearAPIError as e:
            logger.warning(f"Could not fetch Linear organization: {e}")
            return None
        return viewer.organization.url_key if viewer.organization else None

    async def get_users(self) -> List[TrackerUser]:
        """Active workspace users."""
        nodes = await self._paginate(USERS_QUERY, "users", {})
        return [TrackerUser.model_validate(n) for n in nodes if n.get("active") is not False]

    async def get_issues_for_user(
        self,
        linear_user_id: str,
        recently_closed_since: Optional[datetime] = None,
    ) -> List[WorkItem]:
        """
        Issues assigned to a user that are open or were updated since
        `recently_closed_since` (default: FETCH_WINDOW_DAYS ago).
        """
        since = to_aware_utc(recently_closed_since) or (utc_now() - timedelta(days=settings.fetch_window_days))
        nodes = await self._paginate(ISSUES_FOR_USER_QUERY, "issues", {"userId": linear_user_id})

        items = []
        for node in nodes:
            item = WorkItem.model_validate(node)
            if item.is_open or (item.updated_at is not None and item.updated_at >= since):
                items.append(item)

        logger.info(f"Fetched {len(items)} of {len(nodes)} Linear issues for {linear_user_id}")
        return items


# Singleton
_linear_client: Optional[LinearClient] = None


def get_linear_client() -> LinearClient:
    global _linear_client
    if _linear_client is None:
        _linear_client = LinearClient()
    return _linear_client
