"""Async clients for Linear, GitHub and Slack."""

from .linear import LinearClient, LinearAPIError, get_linear_client
from .github import GitHubClient, GitHubAPIError
from .slack import SlackClient, SlackSendResult, get_slack_client

__all__ = [
    "LinearClient",
    "LinearAPIError",
    "get_linear_client",
    "GitHubClient",
    "GitHubAPIError",
    "SlackClient",
    "SlackSendResult",
    "get_slack_client",
]
