"""
Unit tests for CooldownRepository against an in-memory database.
"""

import pytest
import pytest_asyncio
from datetime import date

from rundown.database.repositories.cooldown import CooldownRepository
from rundown.database.repositories.users import UserRepository


@pytest.fixture
def repo(test_db):
    repository = CooldownRepository()
    repository.db = test_db
    return repository


@pytest_asyncio.fixture
async def user(test_db):
    users = UserRepository()
    users.db = test_db
    return await users.create("ada@example.com")


class TestCooldownRepository:
    @pytest.mark.asyncio
    async def test_upsert_replaces_schedule(self, repo, user):
        await repo.upsert(user.id, date(2026, 3, 9), 2)
        await repo.upsert(user.id, date(2026, 6, 1), 3)

        schedules = await repo.get_all()
        assert len(schedules) == 1
        assert schedules[0].next_start_date == date(2026, 6, 1)
        assert schedules[0].duration_weeks == 3

    @pytest.mark.asyncio
    async def test_delete(self, repo, user):
        await repo.upsert(user.id, date(2026, 3, 9), 2)

        assert await repo.delete(user.id) is True
        assert await repo.get_by_user(user.id) is None
        assert await repo.delete(user.id) is False
