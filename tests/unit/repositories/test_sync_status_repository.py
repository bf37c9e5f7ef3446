"""
Unit tests for SyncStatusRepository against an in-memory database.
"""

import pytest
from datetime import datetime

from rundown.database.models import SyncTypeEnum
from rundown.database.repositories.sync_status import SyncStatusRepository


@pytest.fixture
def repo(test_db):
    repository = SyncStatusRepository()
    repository.db = test_db
    return repository


class TestSyncStatusRepository:
    @pytest.mark.asyncio
    async def test_no_row_before_first_run(self, repo):
        assert await repo.get(SyncTypeEnum.GITHUB_DATA) is None

    @pytest.mark.asyncio
    async def test_counters_accumulate(self, repo):
        t = datetime(2026, 3, 16, 9, 0)

        await repo.mark_started(SyncTypeEnum.LINEAR_ISSUES, t)
        await repo.mark_succeeded(SyncTypeEnum.LINEAR_ISSUES, t, {"items_processed": 12})
        await repo.mark_started(SyncTypeEnum.LINEAR_ISSUES, t)
        await repo.mark_failed(SyncTypeEnum.LINEAR_ISSUES, t, "Linear API error")

        row = await repo.get(SyncTypeEnum.LINEAR_ISSUES)
        assert row.total_runs == 2
        assert row.success_count == 1
        assert row.failure_count == 1
        assert row.status == "failed"
        assert row.last_error == "Linear API error"
        assert row.last_success_at == t

    @pytest.mark.asyncio
    async def test_success_clears_error(self, repo):
        t = datetime(2026, 3, 16, 9, 0)

        await repo.mark_failed(SyncTypeEnum.SLACK_USERS, t, "boom")
        await repo.mark_succeeded(SyncTypeEnum.SLACK_USERS, t, {"created": 1})

        row = await repo.get(SyncTypeEnum.SLACK_USERS)
        assert row.last_error is None
        assert row.sync_metadata == {"created": 1}

    @pytest.mark.asyncio
    async def test_one_row_per_type(self, repo):
        t = datetime(2026, 3, 16, 9, 0)
        await repo.mark_started(SyncTypeEnum.GITHUB_DATA, t)
        await repo.mark_started(SyncTypeEnum.GITHUB_DATA, t)
        await repo.mark_started(SyncTypeEnum.SLACK_USERS, t)

        assert len(await repo.get_all()) == 2
