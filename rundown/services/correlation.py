"""
Linear <-> GitHub correlation.

Detects references to Linear issues in pull requests and GitHub issues and
stores them as links with a confidence level:

- branch name (`eng-123-fix`, `eng/123`, `feature/eng-123`) -> high
- title (`ENG-123`, `[ENG-123]`, `#ENG-123`, `ENG-123:` or a Linear URL) -> medium
- body (same forms as the title) -> medium

Detection is pure; persistence goes through the link repository, which only
ever upgrades an existing link's confidence.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Iterable

from ..database.models import (
    ArtifactKindEnum,
    ConfidenceEnum,
    LinkTypeEnum,
    PullRequestDB,
    RepoIssueDB,
)
from ..database.repositories.artifacts import get_artifact_repository
from ..database.repositories.links import get_link_repository
from ..database.repositories.work_items import get_work_item_repository
from ..models.source_control import PullRequest, RepoIssue

logger = logging.getLogger(__name__)


# Canonical KEY-123 and its decorated forms
IDENTIFIER_PATTERNS = [
    re.compile(r"\b([A-Z]{2,10})-(\d{1,6})\b"),
    re.compile(r"\[([A-Z]{2,10})-(\d{1,6})\]"),
    re.compile(r"#([A-Z]{2,10})-(\d{1,6})\b"),
    re.compile(r"\b([A-Z]{2,10})-(\d{1,6}):"),
]

LINEAR_URL_PATTERN = re.compile(r"https?://linear\.app/[^/\s]+/issue/([A-Z]{2,10}-\d{1,6})")

BRANCH_PATTERNS = [
    # eng-123-feature, eng/123-description
    re.compile(r"^([a-z]{2,10})[-/](\d{1,6})", re.IGNORECASE),
    # feature/eng-123
    re.compile(r"/([a-z]{2,10})-(\d{1,6})", re.IGNORECASE),
]


def extract_identifiers(text: Optional[str]) -> List[str]:
    """Linear identifiers mentioned in free text, in order of first appearance."""
    if not text:
        return []

    found: Dict[str, None] = {}
    for pattern in IDENTIFIER_PATTERNS:
        for match in pattern.finditer(text):
            found.setdefault(f"{match.group(1)}-{match.group(2)}", None)
    return list(found)


def extract_identifiers_from_urls(text: Optional[str]) -> List[str]:
    """Identifiers from https://linear.app/<workspace>/issue/KEY-123 links."""
    if not text:
        return []

    found: Dict[str, None] = {}
    for match in LINEAR_URL_PATTERN.finditer(text):
        found.setdefault(match.group(1), None)
    return list(found)


def extract_identifier_from_branch(branch_name: Optional[str]) -> Optional[str]:
    """Identifier encoded in a branch name, upper-cased, or None."""
    if not branch_name:
        return None

    for pattern in BRANCH_PATTERNS:
        match = pattern.search(branch_name)
        if match:
            return f"{match.group(1).upper()}-{match.group(2)}"
    return None


def _text_references(text: Optional[str]) -> List[str]:
    ids: Dict[str, None] = {}
    for identifier in extract_identifiers(text) + extract_identifiers_from_urls(text):
        ids.setdefault(identifier, None)
    return list(ids)


@dataclass(frozen=True)
class DetectedReference:
    """A Linear identifier found on an artifact, with how it was found."""
    identifier: str
    link_type: LinkTypeEnum
    confidence: ConfidenceEnum
    detection_pattern: str


def _detect(
    branch_name: Optional[str],
    title: Optional[str],
    body: Optional[str],
) -> List[DetectedReference]:
    detected: Dict[str, DetectedReference] = {}

    branch_id = extract_identifier_from_branch(branch_name)
    if branch_id:
        detected[branch_id] = DetectedReference(
            branch_id, LinkTypeEnum.BRANCH_NAME, ConfidenceEnum.HIGH, branch_name
        )

    for identifier in _text_references(title):
        if identifier not in detected:
            detected[identifier] = DetectedReference(
                identifier, LinkTypeEnum.PR_TITLE, ConfidenceEnum.MEDIUM, identifier
            )

    for identifier in _text_references(body):
        if identifier not in detected:
            detected[identifier] = DetectedReference(
                identifier, LinkTypeEnum.PR_BODY, ConfidenceEnum.MEDIUM, identifier
            )

    return list(detected.values())


def detect_pull_request_references(pr: PullRequest) -> List[DetectedReference]:
    """Branch, title and body references on a pull request, strongest first."""
    return _detect(pr.branch_name, pr.title, pr.body)


def detect_repo_issue_references(issue: RepoIssue) -> List[DetectedReference]:
    """Title and body references on a GitHub issue."""
    return _detect(None, issue.title, issue.body)


@dataclass
class CorrelationMatch:
    work_item_id: int
    identifier: str
    artifact_kind: ArtifactKindEnum
    artifact_id: int
    link_type: LinkTypeEnum
    confidence: ConfidenceEnum
    detection_pattern: str


@dataclass
class CorrelationSummary:
    total_matches: int = 0
    created_links: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"total_matches": self.total_matches, "created_links": self.created_links}


@dataclass
class CorrelatedWork:
    pull_requests: List[PullRequestDB] = field(default_factory=list)
    repo_issues: List[RepoIssueDB] = field(default_factory=list)


class CorrelationService:
    """Resolves detected references to work items and persists links."""

    def __init__(self):
        self.work_items = get_work_item_repository()
        self.artifacts = get_artifact_repository()
        self.links = get_link_repository()

    async def _match(
        self,
        references: List[DetectedReference],
        artifact_kind: ArtifactKindEnum,
        artifact_id: int,
    ) -> List[CorrelationMatch]:
        if not references:
            return []

        known = await self.work_items.get_by_identifiers([ref.identifier for ref in references])
        matches = []
        for ref in references:
            work_item = known.get(ref.identifier)
            if work_item is None:
                continue
            matches.append(CorrelationMatch(
                work_item_id=work_item.id,
                identifier=ref.identifier,
                artifact_kind=artifact_kind,
                artifact_id=artifact_id,
                link_type=ref.link_type,
                confidence=ref.confidence,
                detection_pattern=ref.detection_pattern,
            ))
        return matches

    async def correlate_pull_request(self, pr: PullRequest, pull_request_id: int) -> List[CorrelationMatch]:
        matches = await self._match(
            detect_pull_request_references(pr), ArtifactKindEnum.PULL_REQUEST, pull_request_id
        )
        for match in matches:
            logger.info(f"Correlated PR #{pr.number} with {match.identifier} via {match.link_type.value}")
        return matches

    async def correlate_repo_issue(self, issue: RepoIssue, repo_issue_id: int) -> List[CorrelationMatch]:
        matches = await self._match(
            detect_repo_issue_references(issue), ArtifactKindEnum.EXTERNAL_ISSUE, repo_issue_id
        )
        for match in matches:
            logger.info(f"Correlated GitHub issue #{issue.number} with {match.identifier} via {match.link_type.value}")
        return matches

    async def persist(self, matches: Iterable[CorrelationMatch]) -> int:
        """Store matches. Returns how many links were newly created."""
        created_count = 0
        for match in matches:
            try:
                _, created = await self.links.upsert_link(
                    work_item_id=match.work_item_id,
                    artifact_kind=match.artifact_kind,
                    artifact_id=match.artifact_id,
                    link_type=match.link_type,
                    confidence=match.confidence,
                    detection_pattern=match.detection_pattern,
                )
                if created:
                    created_count += 1
            except Exception as e:
                logger.error(
                    f"Failed to persist link {match.identifier} -> "
                    f"{match.artifact_kind.value} {match.artifact_id}: {e}"
                )
        return created_count

    async def _resolve_pull_request_id(self, pr: PullRequest) -> Optional[int]:
        if pr.internal_id is not None:
            return pr.internal_id
        row = await self.artifacts.get_pull_request_by_external_id(str(pr.id))
        return row.id if row else None

    async def _resolve_repo_issue_id(self, issue: RepoIssue) -> Optional[int]:
        if issue.internal_id is not None:
            return issue.internal_id
        row = await self.artifacts.get_repo_issue_by_external_id(str(issue.id))
        return row.id if row else None

    async def correlate_batch(
        self,
        pull_requests: Iterable[PullRequest] = (),
        repo_issues: Iterable[RepoIssue] = (),
    ) -> CorrelationSummary:
        """
        Correlate synced artifacts with Linear issues and persist the links.

        Artifacts without an internal id are looked up by GitHub id; ones
        that were never synced are skipped with a warning.
        """
        matches: List[CorrelationMatch] = []
        pr_count = 0
        issue_count = 0

        for pr in pull_requests:
            pr_count += 1
            pr_id = await self._resolve_pull_request_id(pr)
            if pr_id is None:
                logger.warning(f"No database record for GitHub PR {pr.id} (#{pr.number}), skipping")
                continue
            matches.extend(await self.correlate_pull_request(pr, pr_id))

        for issue in repo_issues:
            issue_count += 1
            issue_id = await self._resolve_repo_issue_id(issue)
            if issue_id is None:
                logger.warning(f"No database record for GitHub issue {issue.id} (#{issue.number}), skipping")
                continue
            matches.extend(await self.correlate_repo_issue(issue, issue_id))

        created = await self.persist(matches)
        summary = CorrelationSummary(total_matches=len(matches), created_links=created)

        logger.info(
            f"Batch correlation complete: {pr_count} PRs, {issue_count} issues, "
            f"{summary.total_matches} matches, {summary.created_links} new links"
        )
        return summary

    async def get_correlated_work(self, work_item_id: int) -> CorrelatedWork:
        """Pull requests and GitHub issues linked to a work item."""
        links = await self.links.get_for_work_item(work_item_id)

        pr_ids = [l.artifact_id for l in links if l.artifact_kind == ArtifactKindEnum.PULL_REQUEST.value]
        issue_ids = [l.artifact_id for l in links if l.artifact_kind == ArtifactKindEnum.EXTERNAL_ISSUE.value]

        return CorrelatedWork(
            pull_requests=await self.artifacts.get_pull_requests_by_ids(pr_ids),
            repo_issues=await self.artifacts.get_repo_issues_by_ids(issue_ids),
        )


# Singleton
_correlation_service: Optional[CorrelationService] = None


def get_correlation_service() -> CorrelationService:
    global _correlation_service
    if _correlation_service is None:
        _correlation_service = CorrelationService()
    return _correlation_service
