"""
Unit tests for DeliveryLogRepository against an in-memory database.
"""

import pytest
import pytest_asyncio
from datetime import date

from rundown.database.models import DeliveryStatusEnum
from rundown.database.repositories.delivery_logs import DeliveryLogRepository
from rundown.database.repositories.users import UserRepository


@pytest.fixture
def repo(test_db):
    repository = DeliveryLogRepository()
    repository.db = test_db
    return repository


@pytest_asyncio.fixture
async def users(test_db):
    repository = UserRepository()
    repository.db = test_db
    return [
        await repository.create("a@example.com"),
        await repository.create("b@example.com"),
    ]


class TestDeliveryLogRepository:
    @pytest.mark.asyncio
    async def test_create_and_get(self, repo, users):
        log = await repo.create(
            users[0].id,
            DeliveryStatusEnum.SUCCESS,
            message_content="Hi!",
            report_period_start=date(2026, 3, 9),
            report_period_end=date(2026, 3, 16),
            issues_count=3,
        )

        stored = await repo.get_by_id(log.id)
        assert stored.status == "success"
        assert stored.sent_at is not None
        assert stored.issues_count == 3

    @pytest.mark.asyncio
    async def test_recent_filters(self, repo, users):
        await repo.create(users[0].id, DeliveryStatusEnum.SUCCESS)
        await repo.create(users[0].id, DeliveryStatusEnum.FAILED, error_message="boom")
        await repo.create(users[1].id, DeliveryStatusEnum.SKIPPED)

        assert len(await repo.get_recent()) == 3
        assert len(await repo.get_recent(user_id=users[0].id)) == 2

        failed = await repo.get_recent(status=DeliveryStatusEnum.FAILED)
        assert [log.error_message for log in failed] == ["boom"]

        newest = await repo.get_recent(limit=1)
        assert newest[0].status == "skipped"

    @pytest.mark.asyncio
    async def test_count_by_status(self, repo, users):
        await repo.create(users[0].id, DeliveryStatusEnum.SUCCESS)
        await repo.create(users[1].id, DeliveryStatusEnum.SUCCESS)

        assert await repo.count_by_status() == {"success": 2}
