"""
Cross-module orchestration models: lineage, quality metrics, sync events and
validation rules.
"""

from .data_lineage import (
    DataLineage,
    DataLineageCreate,
    DataLineageRead,
    DataConflictResolution,
)
from .data_quality_metrics import (
    DataQualityMetrics,
    DataQualityMetricsCreate,
    DataQualityMetricsRead,
)
from .sync_events import (
    SyncEvent,
    SyncEventCreate,
    SyncEventRead,
    SyncEventStatusUpdate,
)
from .data_validation_rules import (
    DataValidationRule,
    DataValidationRuleCreate,
    DataValidationRuleRead,
    DataValidationRuleUpdate,
)

__all__ = [
    "DataLineage",
    "DataLineageCreate",
    "DataLineageRead",
    "DataConflictResolution",

    "DataQualityMetrics",
    "DataQualityMetricsCreate",
    "DataQualityMetricsRead",

    "SyncEvent",
    "SyncEventCreate",
    "SyncEventRead",
    "SyncEventStatusUpdate",

    "DataValidationRule",
    "DataValidationRuleCreate",
    "DataValidationRuleRead",
    "DataValidationRuleUpdate",
]
