"""
Pytest configuration and shared fixtures.
"""

import pytest
import pytest_asyncio
import asyncio
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from rundown.database.connection import Database
from rundown.database.models import Base
from rundown.models.tracker import WorkItem, WorkflowState, ProjectRef, TeamRef

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest.fixture(scope="session")
def event_loop():
    """Create event loop for async tests."""
    policy = asyncio.get_event_loop_policy()
    loop = policy.new_event_loop()
    yield loop
    loop.close()


@pytest_asyncio.fixture
async def test_db():
    """In-memory SQLite database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db = Database()
    db.engine = engine
    db.session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    db._initialized = True

    yield db

    await engine.dispose()


@pytest.fixture
def now():
    """Fixed report time: Monday 2026-03-16 09:00 UTC."""
    return datetime(2026, 3, 16, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_work_item():
    """Factory for Linear work items with sensible defaults."""
    counter = {"n": 0}

    def _make(
        identifier=None,
        state_type="started",
        project=None,
        priority=3,
        estimate=None,
        **fields,
    ) -> WorkItem:
        counter["n"] += 1
        n = counter["n"]
        return WorkItem(
            id=fields.pop("id", f"issue-{n}"),
            identifier=identifier or f"ENG-{n}",
            title=fields.pop("title", f"Issue {n}"),
            priority=priority,
            estimate=estimate,
            state=WorkflowState(id=f"state-{state_type}", name=state_type.title(), type=state_type),
            project=ProjectRef(id=f"proj-{project.lower()}", name=project) if project else None,
            team=TeamRef(id="team-eng", name="Engineering", key="ENG"),
            **fields,
        )

    return _make


@pytest.fixture
def sample_slack_users():
    """Slack members as returned by SlackClient.get_users()."""
    return [
        {"id": "U001", "email": "ada@example.com", "real_name": "Ada Lovelace"},
        {"id": "U002", "email": "Grace@Example.com", "real_name": "Grace Hopper"},
    ]
