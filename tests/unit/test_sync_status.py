"""
Unit tests for sync run tracking and status formatting.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from rundown.database.models import SyncStatusDB, SyncTypeEnum
from rundown.services import sync_status
from rundown.services.sync_status import (
    success_rate,
    time_since_sync,
    tracked_sync,
    with_sync_tracking,
)

NOW = datetime(2026, 3, 16, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_repo():
    repo = AsyncMock()
    with patch("rundown.services.sync_status.get_sync_status_repository", return_value=repo):
        yield repo


class TestWithSyncTracking:
    """Tests for with_sync_tracking."""

    @pytest.mark.asyncio
    async def test_success_records_metadata(self, mock_repo):
        async def fetch():
            return [1, 2, 3]

        result = await with_sync_tracking(
            SyncTypeEnum.LINEAR_ISSUES, fetch, lambda items: {"items_processed": len(items)}
        )

        assert result == [1, 2, 3]
        mock_repo.mark_started.assert_awaited_once()
        sync_type, _, metadata = mock_repo.mark_succeeded.await_args.args
        assert sync_type == SyncTypeEnum.LINEAR_ISSUES
        assert metadata["items_processed"] == 3
        assert metadata["duration_ms"] >= 0
        mock_repo.mark_failed.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_reraised(self, mock_repo):
        async def fetch():
            raise RuntimeError("Linear is down")

        with pytest.raises(RuntimeError, match="Linear is down"):
            await with_sync_tracking(SyncTypeEnum.LINEAR_ISSUES, fetch)

        sync_type, _, message = mock_repo.mark_failed.await_args.args
        assert sync_type == SyncTypeEnum.LINEAR_ISSUES
        assert message == "Linear is down"
        mock_repo.mark_succeeded.assert_not_called()

    @pytest.mark.asyncio
    async def test_bookkeeping_failure_does_not_mask_result(self, mock_repo):
        mock_repo.mark_started.side_effect = Exception("db down")
        mock_repo.mark_succeeded.side_effect = Exception("db down")

        async def fetch():
            return "ok"

        assert await with_sync_tracking(SyncTypeEnum.GITHUB_DATA, fetch) == "ok"

    @pytest.mark.asyncio
    async def test_bookkeeping_failure_does_not_mask_sync_error(self, mock_repo):
        mock_repo.mark_failed.side_effect = Exception("db down")

        async def fetch():
            raise ValueError("bad payload")

        with pytest.raises(ValueError):
            await with_sync_tracking(SyncTypeEnum.GITHUB_DATA, fetch)

    @pytest.mark.asyncio
    async def test_broken_extractor_still_records_success(self, mock_repo):
        async def fetch():
            return None

        await with_sync_tracking(SyncTypeEnum.SLACK_USERS, fetch, lambda r: r["missing"])

        metadata = mock_repo.mark_succeeded.await_args.args[2]
        assert set(metadata) == {"duration_ms"}

    @pytest.mark.asyncio
    async def test_decorator(self, mock_repo):
        @tracked_sync(SyncTypeEnum.SLACK_USERS, lambda counts: dict(counts))
        async def sync_users(n):
            return {"created": n}

        assert await sync_users(2) == {"created": 2}
        assert mock_repo.mark_succeeded.await_args.args[2]["created"] == 2


class TestTimeSinceSync:
    """Tests for time_since_sync."""

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "Just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=45), "45 minutes ago"),
        (timedelta(hours=1, minutes=5), "1 hour ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=1, hours=2), "1 day ago"),
        (timedelta(days=9), "9 days ago"),
    ])
    def test_relative_times(self, delta, expected):
        assert time_since_sync(NOW - delta, NOW) == expected

    def test_never(self):
        assert time_since_sync(None, NOW) == "Never"

    def test_naive_timestamps_are_utc(self):
        naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)

        assert time_since_sync(naive, NOW) == "2 hours ago"


class TestStatusFormatting:
    """Tests for formatted status views."""

    def test_success_rate(self):
        row = SyncStatusDB(sync_type="linear_issues", total_runs=3, success_count=2, failure_count=1)

        assert success_rate(row) == "67%"

    def test_success_rate_without_runs(self):
        assert success_rate(SyncStatusDB(sync_type="github_data", total_runs=0)) == "N/A"

    @pytest.mark.asyncio
    async def test_formatted_statuses(self, mock_repo):
        mock_repo.get_all.return_value = [
            SyncStatusDB(
                sync_type="linear_issues", status="failed", total_runs=2, success_count=1,
                failure_count=1, last_completed_at=(NOW - timedelta(minutes=5)).replace(tzinfo=None),
                last_error="timeout",
            ),
        ]

        statuses = await sync_status.get_formatted_statuses(NOW)

        assert statuses == [{
            "sync_type": "linear_issues",
            "status": "failed",
            "last_sync_time": "5 minutes ago",
            "success_rate": "50%",
            "last_error": "timeout",
        }]

    @pytest.mark.asyncio
    async def test_user_summary_uses_freshest_sync(self, mock_repo):
        mock_repo.get_all.return_value = [
            SyncStatusDB(sync_type="linear_issues",
                         last_completed_at=(NOW - timedelta(hours=5)).replace(tzinfo=None)),
            SyncStatusDB(sync_type="github_data",
                         last_completed_at=(NOW - timedelta(hours=1)).replace(tzinfo=None)),
        ]

        summary = await sync_status.get_user_summary(NOW)

        assert summary["linear_last_sync_formatted"] == "5 hours ago"
        assert summary["github_last_sync_formatted"] == "1 hour ago"
        assert summary["data_freshness"] == "1 hour ago"
        assert summary["github_last_sync"].endswith("+00:00")

    @pytest.mark.asyncio
    async def test_user_summary_without_syncs(self, mock_repo):
        mock_repo.get_all.return_value = []

        summary = await sync_status.get_user_summary(NOW)

        assert summary["data_freshness"] == "Never"
        assert summary["linear_last_sync"] is None
