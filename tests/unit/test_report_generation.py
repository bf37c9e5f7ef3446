"""
Unit tests for ReportGenerator.
"""

import pytest
from datetime import date, timedelta
from unittest.mock import AsyncMock, Mock, patch

from rundown.database.models import UserDB
from rundown.models.report import CooldownStatus
from rundown.models.source_control import GitHubActivity
from rundown.services.exceptions import DataSourceUnavailable, UserMappingError
from rundown.services.report_generation import ReportGenerator


@pytest.fixture(autouse=True)
def sync_repo():
    """Keep sync tracking off the database."""
    with patch("rundown.services.sync_status.get_sync_status_repository") as getter:
        getter.return_value = AsyncMock()
        yield getter.return_value


@pytest.fixture
def user():
    return UserDB(
        id=1,
        email="ada@example.com",
        slack_user_id="U001",
        slack_real_name="Ada Lovelace",
        linear_user_id="lin-1",
    )


@pytest.fixture
def generator():
    linear = AsyncMock()
    linear.is_configured = True
    linear.get_organization_key.return_value = "acme"
    linear.get_issues_for_user.return_value = []

    cooldown = AsyncMock()
    cooldown.get_status_for_user.return_value = CooldownStatus(is_in_cooldown=False)

    return ReportGenerator(
        linear=linear,
        cooldown=cooldown,
        snapshots=AsyncMock(),
        correlation=AsyncMock(),
    )


class TestPreconditions:
    """Tests for checks made before fetching anything."""

    @pytest.mark.asyncio
    async def test_user_without_linear_account(self, generator, user):
        user.linear_user_id = None

        with pytest.raises(UserMappingError):
            await generator.generate_report_for_user(user)

        generator.linear.get_issues_for_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_linear_not_configured(self, generator, user):
        generator.linear.is_configured = False

        with pytest.raises(DataSourceUnavailable):
            await generator.generate_report_for_user(user)


class TestGenerateReport:
    """Tests for the generated report."""

    @pytest.mark.asyncio
    async def test_report_counts_and_period(self, generator, user, now, make_work_item):
        generator.linear.get_issues_for_user.return_value = [
            make_work_item(state_type="started", started_at=now - timedelta(days=1)),
            make_work_item(state_type="completed", completed_at=now - timedelta(days=2)),
        ]

        with patch("rundown.services.report_generation.get_user_github_token", return_value=None):
            report = await generator.generate_report_for_user(user, now=now)

        assert report.issues_count == 2
        assert report.in_cooldown is False
        assert report.period_end == now
        assert report.period_start < now
        assert "Hi Ada Lovelace!" in report.report_text
        generator.snapshots.sync_work_items.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_linear_fetch_is_tracked(self, generator, user, now, sync_repo):
        with patch("rundown.services.report_generation.get_user_github_token", return_value=None):
            await generator.generate_report_for_user(user, now=now)

        sync_repo.mark_started.assert_awaited_once()
        sync_repo.mark_succeeded.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cooldown_hides_unrelated_projects(self, generator, user, now, make_work_item):
        generator.cooldown.get_status_for_user.return_value = CooldownStatus(
            is_in_cooldown=True,
            week_number=2,
            total_weeks=2,
            start_date=date(2026, 3, 9),
            end_date=date(2026, 3, 23),
        )
        generator.linear.get_issues_for_user.return_value = [
            make_work_item(project="Misc Tasks", started_at=now - timedelta(days=1)),
            make_work_item(project="Platform", started_at=now - timedelta(days=1)),
            make_work_item(started_at=now - timedelta(days=1)),
        ]

        with patch("rundown.services.report_generation.get_user_github_token", return_value=None):
            report = await generator.generate_report_for_user(user, now=now)

        assert report.in_cooldown is True
        assert report.issues_count == 2

    @pytest.mark.asyncio
    async def test_snapshot_failure_does_not_block_report(self, generator, user, now):
        generator.snapshots.sync_work_items.side_effect = RuntimeError("db down")

        with patch("rundown.services.report_generation.get_user_github_token", return_value=None):
            report = await generator.generate_report_for_user(user, now=now)

        assert report.report_text


class TestGitHubEnrichment:
    """Tests for the optional GitHub step."""

    @pytest.mark.asyncio
    async def test_skipped_without_username(self, generator, user, now):
        generator.github_client_for = Mock()

        await generator.generate_report_for_user(user, now=now)

        generator.github_client_for.assert_not_called()

    @pytest.mark.asyncio
    async def test_skipped_without_token(self, generator, user, now):
        user.github_username = "ada"
        generator.github_client_for = Mock()

        with patch("rundown.services.report_generation.get_user_github_token", return_value=None):
            await generator.generate_report_for_user(user, now=now)

        generator.github_client_for.assert_not_called()

    @pytest.mark.asyncio
    async def test_activity_is_snapshotted_and_correlated(self, generator, user, now):
        user.github_username = "ada"
        client = AsyncMock()
        client.get_user_activity.return_value = GitHubActivity(
            username="ada", since=now - timedelta(days=7), until=now
        )
        generator.github_client_for = Mock(return_value=client)

        with patch("rundown.services.report_generation.get_user_github_token", return_value="tok"):
            await generator.generate_report_for_user(user, now=now)

        generator.github_client_for.assert_called_once_with("tok")
        generator.snapshots.sync_github_activity.assert_awaited_once()
        generator.correlation.correlate_batch.assert_awaited_once_with([], [])

    @pytest.mark.asyncio
    async def test_github_failure_still_produces_report(self, generator, user, now, sync_repo):
        user.github_username = "ada"
        client = AsyncMock()
        client.get_user_activity.side_effect = RuntimeError("GitHub API error (502)")
        generator.github_client_for = Mock(return_value=client)

        with patch("rundown.services.report_generation.get_user_github_token", return_value="tok"):
            report = await generator.generate_report_for_user(user, now=now)

        assert report.report_text
        sync_repo.mark_failed.assert_awaited_once()
