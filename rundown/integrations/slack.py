"""
Slack Web API client.

Lists workspace members (for user sync) and sends direct messages.
Sending never raises: the outcome is returned as a SlackSendResult.
"""

import logging
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

import aiohttp

from config import settings
from ..utils.retry import with_retry, SLACK_RETRY, TransientAPIError, RETRYABLE_STATUSES, RetryExhausted

logger = logging.getLogger(__name__)


# Slack error codes -> readable reasons for delivery logs
SLACK_ERROR_MESSAGES = {
    "user_not_found": "User not found in Slack workspace",
    "channel_not_found": "Channel not found or inaccessible",
    "not_in_channel": "Bot is not in the channel",
    "rate_limited": "Rate limit exceeded - please retry later",
    "ratelimited": "Rate limit exceeded - please retry later",
    "invalid_auth": "Invalid or revoked authentication token",
    "token_revoked": "Invalid or revoked authentication token",
    "account_inactive": "Slack account is inactive",
    "is_archived": "Channel is archived",
}


class SlackAPIError(Exception):
    """Slack answered with ok=false or an HTTP error."""

    def __init__(self, error_code: str):
        self.error_code = error_code
        super().__init__(error_code)


def describe_slack_error(error: str) -> str:
    for code, message in SLACK_ERROR_MESSAGES.items():
        if code in error:
            return message
    return f"Slack API error: {error}"


@dataclass
class SlackSendResult:
    success: bool
    error: Optional[str] = None
    channel_id: Optional[str] = None
    timestamp: Optional[str] = None


class SlackClient:
    """Async client for the handful of Slack Web API methods we use."""

    def __init__(self, bot_token: Optional[str] = None, api_url: Optional[str] = None):
        self.bot_token = bot_token if bot_token is not None else settings.slack_bot_token
        self.api_url = (api_url or settings.slack_api_url).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=30)

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token)

    @with_retry(**SLACK_RETRY)
    async def _call(self, method: str, http_method: str = "POST", **params) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.bot_token}"}
        url = f"{self.api_url}/{method}"

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            if http_method == "GET":
                request = session.get(url, params=params, headers=headers)
            else:
                request = session.post(url, json=params, headers=headers)

            async with request as response:
                if response.status in RETRYABLE_STATUSES:
                    raise TransientAPIError("Slack", response.status, await response.text())
                if response.status != 200:
                    raise SlackAPIError(f"http_{response.status}")
                body = await response.json()

        if not body.get("ok"):
            error = body.get("error", "unknown_error")
            if error in ("rate_limited", "ratelimited"):
                raise TransientAPIError("Slack", 429, error)
            raise SlackAPIError(error)
        return body

    async def call(self, method: str, http_method: str = "POST", **params) -> Dict[str, Any]:
        if not self.is_configured:
            raise SlackAPIError("not_configured")
        try:
            return await self._call(method, http_method, **params)
        except RetryExhausted as e:
            raise SlackAPIError(str(e)) from e

    async def get_users(self) -> List[Dict[str, str]]:
        """
        Human workspace members with an email.

        Returns:
            dicts with id, email and real_name
        """
        users: List[Dict[str, str]] = []
        cursor = None
        while True:
            params = {"limit": 200}
            if cursor:
                params["cursor"] = cursor
            body = await self.call("users.list", http_method="GET", **params)

            for member in body.get("members", []):
                profile = member.get("profile") or {}
                if member.get("is_bot") or member.get("deleted") or not profile.get("email"):
                    continue
                users.append({
                    "id": member["id"],
                    "email": profile["email"],
                    "real_name": member.get("real_name") or profile.get("real_name") or member.get("name", ""),
                })

            cursor = (body.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break

        logger.info(f"Fetched {len(users)} Slack users")
        return users

    async def send_direct_message(self, slack_user_id: str, text: str) -> SlackSendResult:
        """Open a DM with the user and post `text` into it."""
        try:
            conversation = await self.call("conversations.open", users=slack_user_id)
            channel_id = (conversation.get("channel") or {}).get("id")
            if not channel_id:
                return SlackSendResult(success=False, error="Failed to open conversation: no channel returned")

            message = await self.call(
                "chat.postMessage",
                channel=channel_id,
                text=text,
                unfurl_links=False,
                unfurl_media=False,
            )
            return SlackSendResult(success=True, channel_id=channel_id, timestamp=message.get("ts"))

        except SlackAPIError as e:
            logger.error(f"Slack DM to {slack_user_id} failed: {e.error_code}")
            return SlackSendResult(success=False, error=describe_slack_error(e.error_code))
        except Exception as e:
            logger.error(f"Slack DM to {slack_user_id} failed: {e}")
            return SlackSendResult(success=False, error=f"Slack API error: {e}")


# Singleton
_slack_client: Optional[SlackClient] = None


def get_slack_client() -> SlackClient:
    global _slack_client
    if _slack_client is None:
        _slack_client = SlackClient()
    return _slack_client
