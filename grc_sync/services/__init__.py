"""
Services module for the GRC sync layer.
Contains the orchestration ledgers, quality scoring, the real-time listener
and the sync event consumer.
"""

from .base import BaseService
from .validation_rules import ValidationOutcome, ValidationRuleEvaluator, RuleViolation
from .data_orchestration_service import DataOrchestrationService
from .data_quality_service import DataQualityService, calculate_completeness_score
from .realtime_sync_service import ChangeOutcome, OrgSyncOrchestrator, RealTimeSyncService
from .sync_event_consumer import DeliveryReport, SyncEventConsumer
from .factory import SyncServices, build_sync_services

__all__ = [
    "BaseService",
    "ValidationOutcome",
    "ValidationRuleEvaluator",
    "RuleViolation",
    "DataOrchestrationService",
    "DataQualityService",
    "calculate_completeness_score",
    "ChangeOutcome",
    "OrgSyncOrchestrator",
    "RealTimeSyncService",
    "DeliveryReport",
    "SyncEventConsumer",
    "SyncServices",
    "build_sync_services",
]
