"""
Unit tests for UserMappingService.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from rundown.models.tracker import TrackerUser
from rundown.services.exceptions import DataSourceUnavailable
from rundown.services.user_mapping import UserMappingService


@pytest.fixture(autouse=True)
def sync_repo():
    with patch("rundown.services.sync_status.get_sync_status_repository") as getter:
        getter.return_value = AsyncMock()
        yield getter.return_value


@pytest.fixture
def service(sample_slack_users):
    slack = AsyncMock()
    slack.is_configured = True
    slack.get_users.return_value = sample_slack_users

    linear = AsyncMock()
    linear.is_configured = True
    linear.get_users.return_value = [
        TrackerUser(id="lin-1", name="Ada L.", email="ADA@example.com"),
        TrackerUser(id="lin-2", name="Bot", email=None),
    ]

    service = UserMappingService(slack=slack, linear=linear)
    service.users = AsyncMock()
    service.users.apply_slack_sync.return_value = {"created": 2, "updated": 0, "deactivated": 0}
    return service


class TestSyncSlackUsers:
    @pytest.mark.asyncio
    async def test_matches_linear_by_lowercased_email(self, service, sample_slack_users):
        counts = await service.sync_slack_users()

        assert counts["created"] == 2
        service.users.apply_slack_sync.assert_awaited_once_with(
            sample_slack_users,
            {"ada@example.com": {"id": "lin-1", "name": "Ada L."}},
        )

    @pytest.mark.asyncio
    async def test_linear_failure_syncs_without_mapping(self, service, sample_slack_users):
        service.linear.get_users.side_effect = RuntimeError("Linear API returned 500")

        await service.sync_slack_users()

        service.users.apply_slack_sync.assert_awaited_once_with(sample_slack_users, {})

    @pytest.mark.asyncio
    async def test_linear_not_configured(self, service):
        service.linear.is_configured = False

        await service.sync_slack_users()

        service.linear.get_users.assert_not_called()

    @pytest.mark.asyncio
    async def test_slack_not_configured(self, service):
        service.slack.is_configured = False

        with pytest.raises(DataSourceUnavailable):
            await service.sync_slack_users()

    @pytest.mark.asyncio
    async def test_run_is_tracked_with_counts(self, service, sync_repo):
        await service.sync_slack_users()

        metadata = sync_repo.mark_succeeded.await_args.args[2]
        assert metadata["created"] == 2
        assert "duration_ms" in metadata

    @pytest.mark.asyncio
    async def test_slack_failure_is_recorded(self, service, sync_repo):
        service.slack.get_users.side_effect = RuntimeError("invalid_auth")

        with pytest.raises(RuntimeError):
            await service.sync_slack_users()

        sync_repo.mark_failed.assert_awaited_once()
