"""
User identity mapping.

Slack is the source of truth for who gets a report. Each Slack member is
matched to a Linear account by email; members that left Slack are
deactivated.
"""

import logging
from typing import Optional, Dict

from ..database.models import SyncTypeEnum
from ..database.repositories.users import get_user_repository
from ..integrations.linear import LinearClient, get_linear_client
from ..integrations.slack import SlackClient, get_slack_client
from .exceptions import DataSourceUnavailable
from .sync_status import tracked_sync

logger = logging.getLogger(__name__)


class UserMappingService:
    def __init__(
        self,
        slack: Optional[SlackClient] = None,
        linear: Optional[LinearClient] = None,
    ):
        self.slack = slack or get_slack_client()
        self.linear = linear or get_linear_client()
        self.users = get_user_repository()

    async def _linear_users_by_email(self) -> Dict[str, Dict[str, str]]:
        if not self.linear.is_configured:
            logger.warning("LINEAR_API_KEY not configured - syncing users without Linear mapping")
            return {}

        try:
            linear_users = await self.linear.get_users()
        except Exception as e:
            logger.warning(f"Failed to fetch Linear users, continuing without Linear mapping: {e}")
            return {}

        mapped = {
            u.email.lower(): {"id": u.id, "name": u.name}
            for u in linear_users
            if u.email
        }
        logger.info(f"Mapped {len(mapped)} Linear users by email")
        return mapped

    async def sync_slack_users(self) -> Dict[str, int]:
        """
        Refresh users from Slack and match them to Linear accounts.

        Returns:
            Counts of created, updated and deactivated users

        Raises:
            DataSourceUnavailable: If SLACK_BOT_TOKEN is not configured
        """
        if not self.slack.is_configured:
            raise DataSourceUnavailable("Slack")
        return await self._sync_slack_users()

    @tracked_sync(SyncTypeEnum.SLACK_USERS, lambda counts: dict(counts))
    async def _sync_slack_users(self) -> Dict[str, int]:
        logger.info("Starting Slack user sync...")
        slack_users = await self.slack.get_users()
        linear_by_email = await self._linear_users_by_email()

        return await self.users.apply_slack_sync(slack_users, linear_by_email)


# Singleton
_user_mapping_service: Optional[UserMappingService] = None


def get_user_mapping_service() -> UserMappingService:
    global _user_mapping_service
    if _user_mapping_service is None:
        _user_mapping_service = UserMappingService()
    return _user_mapping_service
