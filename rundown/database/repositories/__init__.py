"""
Repository classes for database operations.

Each repository handles CRUD and queries for its entity type.
"""

from .users import UserRepository, get_user_repository
from .cooldown import CooldownRepository, get_cooldown_repository
from .work_items import WorkItemRepository, get_work_item_repository
from .artifacts import ArtifactRepository, get_artifact_repository
from .links import LinkRepository, get_link_repository
from .snapshots import SnapshotRepository, get_snapshot_repository
from .sync_status import SyncStatusRepository, get_sync_status_repository
from .delivery_logs import DeliveryLogRepository, get_delivery_log_repository

__all__ = [
    "UserRepository",
    "get_user_repository",
    "CooldownRepository",
    "get_cooldown_repository",
    "WorkItemRepository",
    "get_work_item_repository",
    "ArtifactRepository",
    "get_artifact_repository",
    "LinkRepository",
    "get_link_repository",
    "SnapshotRepository",
    "get_snapshot_repository",
    "SyncStatusRepository",
    "get_sync_status_repository",
    "DeliveryLogRepository",
    "get_delivery_log_repository",
]
