"""
Unit tests for UserRepository against an in-memory database.
"""

import pytest

from rundown.database.exceptions import DatabaseConstraintError, EntityNotFoundError
from rundown.database.repositories.users import UserRepository


@pytest.fixture
def repo(test_db):
    repository = UserRepository()
    repository.db = test_db
    return repository


@pytest.fixture
def linear_by_email():
    return {"ada@example.com": {"id": "lin-1", "name": "Ada L."}}


class TestSlackSync:
    """Tests for apply_slack_sync."""

    @pytest.mark.asyncio
    async def test_creates_users(self, repo, sample_slack_users, linear_by_email):
        counts = await repo.apply_slack_sync(sample_slack_users, linear_by_email)

        assert counts == {"created": 2, "updated": 0, "deactivated": 0}

        ada = await repo.get_by_slack_id("U001")
        assert ada.linear_user_id == "lin-1"
        assert ada.receive_reports is True

        grace = await repo.get_by_slack_id("U002")
        assert grace.linear_user_id is None
        assert grace.receive_reports is False

    @pytest.mark.asyncio
    async def test_second_sync_updates_and_keeps_preference(self, repo, sample_slack_users, linear_by_email):
        await repo.apply_slack_sync(sample_slack_users, linear_by_email)
        ada = await repo.get_by_slack_id("U001")
        await repo.set_receive_reports(ada.id, False)

        counts = await repo.apply_slack_sync(sample_slack_users, linear_by_email)

        assert counts == {"created": 0, "updated": 2, "deactivated": 0}
        assert (await repo.get_by_id(ada.id)).receive_reports is False

    @pytest.mark.asyncio
    async def test_users_who_left_slack_are_deactivated(self, repo, sample_slack_users, linear_by_email):
        await repo.apply_slack_sync(sample_slack_users, linear_by_email)
        manual = await repo.create("contractor@example.com")

        counts = await repo.apply_slack_sync(sample_slack_users[:1], linear_by_email)

        assert counts["deactivated"] == 1
        assert (await repo.get_by_slack_id("U002")).is_active is False
        assert (await repo.get_by_id(manual.id)).is_active is True


class TestRecipients:
    @pytest.mark.asyncio
    async def test_only_active_opted_in_users(self, repo):
        await repo.create("b@example.com", receive_reports=True)
        await repo.create("a@example.com", receive_reports=True)
        await repo.create("c@example.com", receive_reports=False)
        await repo.create("d@example.com", receive_reports=True, is_active=False)

        recipients = await repo.get_report_recipients()

        assert [u.email for u in recipients] == ["a@example.com", "b@example.com"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, repo):
        await repo.create("a@example.com")

        with pytest.raises(DatabaseConstraintError):
            await repo.create("a@example.com")


class TestGitHubIdentity:
    @pytest.mark.asyncio
    async def test_token_sets_connected_at(self, repo):
        user = await repo.create("a@example.com")

        updated = await repo.set_github_identity(user.id, "ada", encrypted_token="gAAAA")

        assert updated.github_username == "ada"
        assert updated.github_connected_at is not None

    @pytest.mark.asyncio
    async def test_unknown_user(self, repo):
        with pytest.raises(EntityNotFoundError):
            await repo.set_github_identity(99, "ada")
