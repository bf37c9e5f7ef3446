"""
Temporal classification of work items into report buckets.

Each item lands in at most one bucket, checked in priority order:
completed, started, updated, other_open.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from ..models.report import CategorizedWorkItems
from ..models.tracker import WorkItem
from ..utils.datetime_utils import to_aware_utc

logger = logging.getLogger(__name__)


def _on_or_after(value: Optional[datetime], boundary: datetime) -> bool:
    if not isinstance(value, datetime):
        return False
    return to_aware_utc(value) >= boundary


def categorize_work_items(items: Iterable[WorkItem], period_start: datetime) -> CategorizedWorkItems:
    """
    Bucket work items by activity since `period_start`.

    Closed items with no completion inside the window are left out; the
    upstream fetch only returns them when they were touched recently.
    """
    boundary = to_aware_utc(period_start)
    result = CategorizedWorkItems()

    for item in items:
        if _on_or_after(item.completed_at, boundary):
            result.completed.append(item)
        elif not item.is_open:
            continue
        elif _on_or_after(item.created_at, boundary):
            result.started.append(item)
        elif _on_or_after(item.updated_at, boundary):
            result.updated.append(item)
        else:
            result.other_open.append(item)

    logger.debug(f"Categorized work items: {result.counts()}")
    return result
