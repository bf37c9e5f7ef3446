"""
Pre-rendered report cache.

A preview stores the rendered report so the next delivery can send exactly
what was previewed. A successful send invalidates the entry.
"""

import logging
from typing import Optional

from config import settings
from ..cache.redis_client import CacheClient, cache
from ..models.report import ReportResult

logger = logging.getLogger(__name__)


class ReportCache:
    """Redis-backed cache of rendered reports, keyed by user id."""

    def __init__(self, client: Optional[CacheClient] = None, ttl: Optional[int] = None):
        self.client = client or cache
        self.ttl = ttl or settings.report_cache_ttl_seconds

    @staticmethod
    def _key(user_id: int) -> str:
        return f"report:{user_id}"

    async def get(self, user_id: int) -> Optional[ReportResult]:
        data = await self.client.get(self._key(user_id))
        if not data:
            return None
        try:
            return ReportResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed cached report for user {user_id}: {e}")
            await self.client.delete(self._key(user_id))
            return None

    async def set(self, user_id: int, report: ReportResult) -> bool:
        stored = await self.client.set(self._key(user_id), report.to_dict(), ttl=self.ttl)
        if stored:
            logger.debug(f"Cached report for user {user_id} (ttl={self.ttl}s)")
        return stored

    async def invalidate(self, user_id: int) -> bool:
        return await self.client.delete(self._key(user_id))


# Singleton
_report_cache: Optional[ReportCache] = None


def get_report_cache() -> ReportCache:
    global _report_cache
    if _report_cache is None:
        _report_cache = ReportCache()
    return _report_cache
