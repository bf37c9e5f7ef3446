"""
Unit tests for the rendered report cache.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from rundown.models.report import ReportResult
from rundown.services.report_cache import ReportCache


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def report():
    return ReportResult(
        report_text="Hi Ada!",
        issues_count=2,
        in_cooldown=True,
        period_start=datetime(2026, 3, 9, 9, 0, tzinfo=timezone.utc),
        period_end=datetime(2026, 3, 16, 9, 0, tzinfo=timezone.utc),
    )


class TestReportCache:
    @pytest.mark.asyncio
    async def test_set_uses_user_key_and_ttl(self, client, report):
        client.set.return_value = True

        assert await ReportCache(client, ttl=600).set(1, report) is True

        client.set.assert_awaited_once_with("report:1", report.to_dict(), ttl=600)

    @pytest.mark.asyncio
    async def test_get_restores_report(self, client, report):
        client.get.return_value = report.to_dict()

        cached = await ReportCache(client, ttl=600).get(1)

        assert cached == report

    @pytest.mark.asyncio
    async def test_miss(self, client):
        client.get.return_value = None

        assert await ReportCache(client, ttl=600).get(1) is None

    @pytest.mark.asyncio
    async def test_malformed_entry_is_dropped(self, client):
        client.get.return_value = {"report_text": "Hi"}

        assert await ReportCache(client, ttl=600).get(1) is None
        client.delete.assert_awaited_once_with("report:1")

    @pytest.mark.asyncio
    async def test_invalidate(self, client):
        client.delete.return_value = True

        assert await ReportCache(client, ttl=600).invalidate(7) is True
        client.delete.assert_awaited_once_with("report:7")
