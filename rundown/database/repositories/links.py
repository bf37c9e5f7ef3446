"""
Correlation link repository.

Find-or-create keyed by (work item, artifact kind, artifact). An existing
link is only rewritten when the new detection carries strictly higher
confidence.
"""

import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import CorrelationLinkDB, ConfidenceEnum, LinkTypeEnum, ArtifactKindEnum
from ..exceptions import DatabaseConstraintError, DatabaseOperationError
from ...utils.datetime_utils import naive_utc_now

logger = logging.getLogger(__name__)


class LinkRepository:
    """Repository for work item <-> GitHub artifact links."""

    def __init__(self):
        self.db = get_database()

    async def upsert_link(
        self,
        work_item_id: int,
        artifact_kind: ArtifactKindEnum,
        artifact_id: int,
        link_type: LinkTypeEnum,
        confidence: ConfidenceEnum,
        detection_pattern: Optional[str] = None,
    ) -> Tuple[CorrelationLinkDB, bool]:
        """
        Find or create a link, upgrading confidence when warranted.

        Returns:
            (link, created) where created is True only for a new row
        """
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    select(CorrelationLinkDB).where(
                        CorrelationLinkDB.work_item_id == work_item_id,
                        CorrelationLinkDB.artifact_kind == artifact_kind.value,
                        CorrelationLinkDB.artifact_id == artifact_id,
                    )
                )
                link = result.scalar_one_or_none()

                if link is None:
                    link = CorrelationLinkDB(
                        work_item_id=work_item_id,
                        artifact_kind=artifact_kind.value,
                        artifact_id=artifact_id,
                        link_type=link_type.value,
                        confidence=confidence.value,
                        detection_pattern=detection_pattern,
                        detected_at=naive_utc_now(),
                    )
                    session.add(link)
                    await session.flush()
                    logger.debug(
                        f"Created {confidence.value} link: work item {work_item_id} -> "
                        f"{artifact_kind.value} {artifact_id} via {link_type.value}"
                    )
                    return link, True

                if confidence.rank > ConfidenceEnum(link.confidence).rank:
                    logger.debug(
                        f"Upgrading link {link.id} confidence {link.confidence} -> {confidence.value}"
                    )
                    link.link_type = link_type.value
                    link.confidence = confidence.value
                    link.detection_pattern = detection_pattern
                    link.updated_at = naive_utc_now()
                    await session.flush()

                return link, False

            except IntegrityError as e:
                logger.error(f"Constraint violation linking work item {work_item_id}: {e}")
                raise DatabaseConstraintError(
                    f"Cannot link work item {work_item_id} to {artifact_kind.value} {artifact_id}"
                )

            except Exception as e:
                logger.error(f"Link upsert failed for work item {work_item_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert link for work item {work_item_id}: {e}")

    async def get_for_work_item(self, work_item_id: int) -> List[CorrelationLinkDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(CorrelationLinkDB)
                .where(CorrelationLinkDB.work_item_id == work_item_id)
                .order_by(CorrelationLinkDB.detected_at)
            )
            return list(result.scalars().all())

    async def get_for_artifact(
        self,
        artifact_kind: ArtifactKindEnum,
        artifact_id: int,
    ) -> List[CorrelationLinkDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(CorrelationLinkDB).where(
                    CorrelationLinkDB.artifact_kind == artifact_kind.value,
                    CorrelationLinkDB.artifact_id == artifact_id,
                )
            )
            return list(result.scalars().all())

    async def count(self) -> int:
        async with self.db.session() as session:
            result = await session.execute(select(func.count(CorrelationLinkDB.id)))
            return result.scalar_one()


# Singleton
_link_repository: Optional[LinkRepository] = None


def get_link_repository() -> LinkRepository:
    """Get the link repository singleton."""
    global _link_repository
    if _link_repository is None:
        _link_repository = LinkRepository()
    return _link_repository
