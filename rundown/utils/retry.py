"""
Retry logic with exponential backoff.

Makes the Linear, GitHub and Slack API calls resilient to transient
failures (connection errors, timeouts, rate limits, 5xx responses).
"""

import asyncio
import functools
import inspect
import logging
import random
from typing import Callable, Type, Tuple, Any

import aiohttp

logger = logging.getLogger(__name__)


class RetryExhausted(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


class TransientAPIError(Exception):
    """An HTTP response worth retrying (429 or 5xx)."""

    def __init__(self, service: str, status: int, message: str = ""):
        self.service = service
        self.status = status
        super().__init__(f"{service} API returned {status}: {message}".rstrip(": "))


RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


async def retry_with_backoff(
    func: Callable,
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    skip_on: Tuple[Type[Exception], ...] = (),
    **kwargs
) -> Any:
    """
    Execute a function with exponential backoff retry logic.

    Args:
        func: Async (or sync) function to execute
        *args: Positional arguments for func
        max_retries: Retries after the first attempt (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential calculation (default: 2.0)
        jitter: Randomize delays to spread out concurrent retries (default: True)
        retry_on: Exception types to retry on (default: all exceptions)
        skip_on: Exception types to never retry (raised immediately)
        **kwargs: Keyword arguments for func

    Returns:
        Result of func execution

    Raises:
        RetryExhausted: If all retries are exhausted
        Exception: If exception is in skip_on or not in retry_on
    """
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            if inspect.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = func(*args, **kwargs)

            if attempt > 0:
                logger.info(
                    f"✅ Retry successful on attempt {attempt + 1}/{max_retries + 1} "
                    f"for {func.__name__}"
                )

            return result

        except skip_on as e:
            logger.warning(f"❌ Skipping retry for {func.__name__}: {type(e).__name__}: {e}")
            raise

        except retry_on as e:
            last_exception = e

            if attempt == max_retries:
                logger.error(
                    f"❌ All {max_retries + 1} retry attempts exhausted for {func.__name__}"
                )
                raise RetryExhausted(
                    f"Failed after {max_retries + 1} attempts: {type(e).__name__}: {e}"
                ) from e

            delay = min(base_delay * (exponential_base ** attempt), max_delay)
            if jitter:
                delay = delay * (0.5 + random.random())

            logger.warning(
                f"⚠️  Retry attempt {attempt + 1}/{max_retries + 1} for {func.__name__} "
                f"after {type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
            )

            await asyncio.sleep(delay)

    raise RetryExhausted(f"Failed after {max_retries + 1} attempts") from last_exception


def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    skip_on: Tuple[Type[Exception], ...] = ()
):
    """
    Decorator to add retry logic with exponential backoff to async functions.

    Usage:
        @with_retry(**GITHUB_RETRY)
        async def get_pull_request(self, owner, repo, number):
            ...
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await retry_with_backoff(
                func,
                *args,
                max_retries=max_retries,
                base_delay=base_delay,
                max_delay=max_delay,
                exponential_base=exponential_base,
                jitter=jitter,
                retry_on=retry_on,
                skip_on=skip_on,
                **kwargs
            )
        return wrapper
    return decorator


_TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError, TransientAPIError)

# Common retry configurations for each external service
LINEAR_RETRY = {
    "max_retries": 3,
    "base_delay": 1.0,
    "max_delay": 30.0,
    "retry_on": _TRANSIENT_ERRORS,
}

GITHUB_RETRY = {
    "max_retries": 3,
    "base_delay": 1.0,
    "max_delay": 60.0,
    "retry_on": _TRANSIENT_ERRORS,
}

SLACK_RETRY = {
    "max_retries": 2,
    "base_delay": 1.0,
    "max_delay": 30.0,
    "retry_on": _TRANSIENT_ERRORS,
}
