"""
Services for business logic.
"""

from .cooldown import CooldownService, get_cooldown_service
from .correlation import CorrelationService, get_correlation_service
from .report_delivery import ReportDeliveryService, get_report_delivery_service
from .report_generation import ReportGenerator, get_report_generator
from .snapshots import SnapshotStore, get_snapshot_store
from .user_mapping import UserMappingService, get_user_mapping_service

__all__ = [
    "CooldownService",
    "get_cooldown_service",
    "CorrelationService",
    "get_correlation_service",
    "ReportDeliveryService",
    "get_report_delivery_service",
    "ReportGenerator",
    "get_report_generator",
    "SnapshotStore",
    "get_snapshot_store",
    "UserMappingService",
    "get_user_mapping_service",
]
