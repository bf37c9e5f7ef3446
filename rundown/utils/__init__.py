"""Shared utilities: datetime handling, retries, background tasks, encryption."""

from .datetime_utils import (
    utc_now,
    naive_utc_now,
    utc_today,
    to_naive_utc,
    to_aware_utc,
    days_ago,
    format_date,
)
from .retry import retry_with_backoff, with_retry, RetryExhausted, TransientAPIError
from .background_tasks import create_safe_task, safe_background_task
from .encryption import TokenEncryption, get_token_encryption

__all__ = [
    "utc_now",
    "naive_utc_now",
    "utc_today",
    "to_naive_utc",
    "to_aware_utc",
    "days_ago",
    "format_date",
    "retry_with_backoff",
    "with_retry",
    "RetryExhausted",
    "TransientAPIError",
    "create_safe_task",
    "safe_background_task",
    "TokenEncryption",
    "get_token_encryption",
]
