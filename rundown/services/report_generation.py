"""
Report generation.

For one user: fetch Linear issues, narrow them during cooldown, classify,
snapshot, enrich with GitHub activity (best effort) and render the text.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from config import settings
from ..database.models import SyncTypeEnum, UserDB
from ..integrations.github import GitHubClient
from ..integrations.linear import LinearClient, get_linear_client
from ..models.report import ReportResult
from ..models.source_control import GitHubActivity
from ..utils.datetime_utils import utc_now
from .classifier import categorize_work_items
from .cooldown import CooldownService, filter_for_cooldown, get_cooldown_service
from .correlation import CorrelationService, get_correlation_service
from .exceptions import DataSourceUnavailable, UserMappingError
from .github_tokens import get_user_github_token
from .report_formatter import ReportContent, format_weekly_report
from .snapshots import SnapshotStore, get_snapshot_store
from .sync_status import with_sync_tracking

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Builds a user's weekly report."""

    def __init__(
        self,
        linear: Optional[LinearClient] = None,
        cooldown: Optional[CooldownService] = None,
        snapshots: Optional[SnapshotStore] = None,
        correlation: Optional[CorrelationService] = None,
    ):
        self.linear = linear or get_linear_client()
        self.cooldown = cooldown or get_cooldown_service()
        self.snapshots = snapshots or get_snapshot_store()
        self.correlation = correlation or get_correlation_service()

    def github_client_for(self, token: str) -> GitHubClient:
        return GitHubClient(token=token)

    async def generate_report_for_user(self, user: UserDB, now: Optional[datetime] = None) -> ReportResult:
        """
        Generate a user's report.

        Raises:
            UserMappingError: If the user has no Linear account
            DataSourceUnavailable: If LINEAR_API_KEY is not configured
            LinearAPIError: If Linear cannot be fetched
        """
        if not user.linear_user_id:
            raise UserMappingError(user.id, "Linear")
        if not self.linear.is_configured:
            raise DataSourceUnavailable("Linear")

        now = now or utc_now()
        period_start = now - timedelta(days=settings.report_window_days)
        fetch_since = now - timedelta(days=settings.fetch_window_days)

        logger.info(f"Generating report for user {user.id} ({user.email})")

        org_key = await self.linear.get_organization_key()
        items = await with_sync_tracking(
            SyncTypeEnum.LINEAR_ISSUES,
            lambda: self.linear.get_issues_for_user(user.linear_user_id, fetch_since),
            lambda fetched: {"items_processed": len(fetched), "user_id": user.id},
        )

        cooldown = await self.cooldown.get_status_for_user(user.id, now.date())
        if cooldown.is_in_cooldown:
            filtered = filter_for_cooldown(items)
            logger.info(f"Applied cooldown filtering for user {user.id}: {len(items)} -> {len(filtered)} issues")
            items = filtered

        categorized = categorize_work_items(items, period_start)

        try:
            await self.snapshots.sync_work_items(
                user.id, categorized, period_start.date(), now.date(), snapshot_date=now
            )
        except Exception as e:
            logger.error(f"Failed to snapshot work items for user {user.id}: {e}")

        github = await self._sync_github(user, period_start, now)

        report_text = format_weekly_report(ReportContent(
            user_name=user.display_name,
            period_start=period_start,
            period_end=now,
            work_items=categorized,
            linear_org_key=org_key,
            linear_user_id=user.linear_user_id,
            github=github,
            cooldown=cooldown,
        ))

        logger.info(f"Generated report for user {user.id}: {categorized.total} issues")
        return ReportResult(
            report_text=report_text,
            issues_count=categorized.total,
            in_cooldown=cooldown.is_in_cooldown,
            period_start=period_start,
            period_end=now,
        )

    async def _sync_github(self, user: UserDB, period_start: datetime, now: datetime) -> Optional[GitHubActivity]:
        """Fetch, snapshot and correlate GitHub activity. Returns None when skipped or failed."""
        if not user.github_username:
            return None

        token = get_user_github_token(user)
        if not token:
            logger.info(f"No GitHub token for user {user.id}, skipping GitHub enrichment")
            return None

        client = self.github_client_for(token)

        async def fetch_and_sync() -> GitHubActivity:
            activity = await client.get_user_activity(user.github_username, period_start, now)
            await self.snapshots.sync_github_activity(
                user.id, activity, period_start.date(), now.date(), snapshot_date=now
            )
            summary = await self.correlation.correlate_batch(
                activity.merged_prs + activity.active_prs,
                activity.closed_issues + activity.active_issues,
            )
            logger.info(f"Correlated GitHub activity for user {user.id}: {summary.to_dict()}")
            return activity

        try:
            return await with_sync_tracking(
                SyncTypeEnum.GITHUB_DATA,
                fetch_and_sync,
                lambda a: {
                    "user_id": user.id,
                    "pull_requests": len(a.merged_prs) + len(a.active_prs),
                    "issues": len(a.closed_issues) + len(a.active_issues),
                    "reviews": len(a.reviews),
                },
            )
        except Exception as e:
            logger.error(f"GitHub sync failed for user {user.id}: {e}")
            return None


# Singleton
_report_generator: Optional[ReportGenerator] = None


def get_report_generator() -> ReportGenerator:
    global _report_generator
    if _report_generator is None:
        _report_generator = ReportGenerator()
    return _report_generator
