"""
Unit tests for cooldown policy and CooldownService.
"""

import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock, Mock, patch

from rundown.database.models import CooldownScheduleDB
from rundown.services.cooldown import (
    CooldownService,
    cooldown_end_date,
    filter_for_cooldown,
    get_cooldown_status,
    is_cooldown_active,
)


@pytest.fixture
def schedule():
    """Two-week cooldown starting Monday 2026-03-02."""
    return CooldownScheduleDB(user_id=1, next_start_date=date(2026, 3, 2), duration_weeks=2)


class TestCooldownWindow:
    """Tests for the cooldown date arithmetic."""

    def test_end_date_is_exclusive(self, schedule):
        assert cooldown_end_date(schedule) == date(2026, 3, 16)

    def test_active_on_start_date(self, schedule):
        assert is_cooldown_active(schedule, date(2026, 3, 2)) is True

    def test_active_on_last_day(self, schedule):
        assert is_cooldown_active(schedule, date(2026, 3, 15)) is True

    def test_inactive_on_end_date(self, schedule):
        assert is_cooldown_active(schedule, date(2026, 3, 16)) is False

    def test_inactive_before_start(self, schedule):
        assert is_cooldown_active(schedule, date(2026, 3, 1)) is False

    def test_no_schedule_is_inactive(self):
        assert is_cooldown_active(None, date(2026, 3, 5)) is False

    def test_accepts_datetimes(self, schedule):
        assert is_cooldown_active(schedule, datetime(2026, 3, 10, 23, 59)) is True


class TestCooldownStatus:
    """Tests for get_cooldown_status."""

    def test_first_week(self, schedule):
        status = get_cooldown_status(schedule, date(2026, 3, 8))

        assert status.is_in_cooldown is True
        assert status.week_number == 1
        assert status.total_weeks == 2
        assert status.end_date == date(2026, 3, 16)

    def test_second_week(self, schedule):
        status = get_cooldown_status(schedule, date(2026, 3, 9))

        assert status.week_number == 2

    def test_outside_window(self, schedule):
        status = get_cooldown_status(schedule, date(2026, 4, 1))

        assert status.is_in_cooldown is False
        assert status.week_number is None
        assert status.to_dict()["start_date"] is None


class TestFilterForCooldown:
    """Tests for filter_for_cooldown."""

    def test_keeps_items_without_project(self, make_work_item):
        item = make_work_item()

        assert filter_for_cooldown([item], ["misc"]) == [item]

    def test_keyword_match_is_case_insensitive(self, make_work_item):
        misc = make_work_item(project="MISC Tasks")
        dpe = make_work_item(project="Platform DPE")
        roadmap = make_work_item(project="Roadmap")

        kept = filter_for_cooldown([misc, dpe, roadmap], ["misc", "dpe"])

        assert kept == [misc, dpe]

    def test_uses_configured_keywords_by_default(self, make_work_item):
        roadmap = make_work_item(project="Roadmap")
        with patch("rundown.services.cooldown.settings") as mock_settings:
            mock_settings.cooldown_keywords = ["road"]
            assert filter_for_cooldown([roadmap]) == [roadmap]

    def test_empty_input(self):
        assert filter_for_cooldown([], ["misc"]) == []


class TestCooldownService:
    """Tests for CooldownService with a mocked repository."""

    @pytest.fixture
    def service(self):
        with patch("rundown.services.cooldown.get_cooldown_repository") as mock_get_repo:
            mock_get_repo.return_value = Mock()
            service = CooldownService()
        service.repository = AsyncMock()
        return service

    @pytest.mark.asyncio
    async def test_status_for_user_in_cooldown(self, service, schedule):
        service.repository.get_by_user.return_value = schedule

        status = await service.get_status_for_user(1, date(2026, 3, 3))

        assert status.is_in_cooldown is True
        service.repository.get_by_user.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_status_read_failure_means_not_in_cooldown(self, service):
        service.repository.get_by_user.side_effect = Exception("db down")

        status = await service.get_status_for_user(1, date(2026, 3, 3))

        assert status.is_in_cooldown is False

    @pytest.mark.asyncio
    async def test_set_schedule_rejects_zero_weeks(self, service):
        with pytest.raises(ValueError):
            await service.set_schedule(1, date(2026, 3, 2), 0)

        service.repository.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_users_in_cooldown(self, service, schedule):
        other = CooldownScheduleDB(user_id=2, next_start_date=date(2026, 5, 1), duration_weeks=1)
        service.repository.get_all.return_value = [schedule, other]

        assert await service.get_users_in_cooldown(date(2026, 3, 10)) == [1]
