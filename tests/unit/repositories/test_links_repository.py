"""
Unit tests for LinkRepository against an in-memory database.
"""

import pytest
import pytest_asyncio

from rundown.database.models import ArtifactKindEnum, ConfidenceEnum, LinkTypeEnum
from rundown.database.repositories.artifacts import ArtifactRepository
from rundown.database.repositories.links import LinkRepository
from rundown.database.repositories.work_items import WorkItemRepository
from rundown.models.source_control import BranchRef, PullRequest, RepositoryRef
from rundown.services.correlation import CorrelationService


@pytest.fixture
def repo(test_db):
    repository = LinkRepository()
    repository.db = test_db
    return repository


@pytest_asyncio.fixture
async def work_item_id(test_db, make_work_item):
    work_items = WorkItemRepository()
    work_items.db = test_db
    row = await work_items.upsert(make_work_item(identifier="ENG-42"))
    return row.id


class TestUpsertLink:
    @pytest.mark.asyncio
    async def test_creates_link(self, repo, work_item_id):
        link, created = await repo.upsert_link(
            work_item_id, ArtifactKindEnum.PULL_REQUEST, 7,
            LinkTypeEnum.PR_BODY, ConfidenceEnum.MEDIUM, "ENG-42",
        )

        assert created is True
        assert link.confidence == "medium"
        assert await repo.count() == 1

    @pytest.mark.asyncio
    async def test_higher_confidence_upgrades(self, repo, work_item_id):
        await repo.upsert_link(
            work_item_id, ArtifactKindEnum.PULL_REQUEST, 7, LinkTypeEnum.PR_BODY, ConfidenceEnum.MEDIUM,
        )

        link, created = await repo.upsert_link(
            work_item_id, ArtifactKindEnum.PULL_REQUEST, 7, LinkTypeEnum.BRANCH_NAME, ConfidenceEnum.HIGH,
        )

        assert created is False
        assert link.confidence == "high"
        assert link.link_type == "branch_name"
        assert await repo.count() == 1

    @pytest.mark.asyncio
    async def test_lower_confidence_is_ignored(self, repo, work_item_id):
        await repo.upsert_link(
            work_item_id, ArtifactKindEnum.PULL_REQUEST, 7, LinkTypeEnum.BRANCH_NAME, ConfidenceEnum.HIGH,
        )

        link, created = await repo.upsert_link(
            work_item_id, ArtifactKindEnum.PULL_REQUEST, 7, LinkTypeEnum.PR_BODY, ConfidenceEnum.MEDIUM,
        )

        assert created is False
        assert link.confidence == "high"
        assert link.link_type == "branch_name"

    @pytest.mark.asyncio
    async def test_artifact_kinds_are_separate(self, repo, work_item_id):
        await repo.upsert_link(
            work_item_id, ArtifactKindEnum.PULL_REQUEST, 7, LinkTypeEnum.PR_TITLE, ConfidenceEnum.HIGH,
        )
        await repo.upsert_link(
            work_item_id, ArtifactKindEnum.EXTERNAL_ISSUE, 7, LinkTypeEnum.PR_TITLE, ConfidenceEnum.HIGH,
        )

        links = await repo.get_for_work_item(work_item_id)
        assert {link.artifact_kind for link in links} == {"pull_request", "external_issue"}
        assert len(await repo.get_for_artifact(ArtifactKindEnum.EXTERNAL_ISSUE, 7)) == 1


@pytest.fixture
def correlation(test_db, repo):
    service = CorrelationService()
    service.work_items = WorkItemRepository()
    service.artifacts = ArtifactRepository()
    service.links = repo
    service.work_items.db = test_db
    service.artifacts.db = test_db
    return service


class TestCorrelationRerun:
    """correlate_batch against stored work items, pull requests and links."""

    @pytest.mark.asyncio
    async def test_rerun_creates_nothing_and_keeps_strongest_link(self, correlation, make_work_item):
        await correlation.work_items.upsert(make_work_item(identifier="ENG-123"))
        pr = PullRequest(
            id=5001,
            number=12,
            title="Fix foo",
            head=BranchRef(ref="eng-123-fix-foo"),
            repository=RepositoryRef(id=1, name="api", full_name="acme/api"),
        )
        ids = await correlation.artifacts.upsert_pull_requests([pr])

        first = await correlation.correlate_batch([pr])
        second = await correlation.correlate_batch([pr])
        title_only = pr.model_copy(update={"title": "ENG-123 fix foo", "head": BranchRef(ref="main")})
        third = await correlation.correlate_batch([title_only])

        assert [first.created_links, second.created_links, third.created_links] == [1, 0, 0]
        assert third.total_matches == 1

        links = await correlation.links.get_for_artifact(ArtifactKindEnum.PULL_REQUEST, ids["5001"])
        assert len(links) == 1
        assert links[0].confidence == "high"
        assert links[0].link_type == "branch_name"
