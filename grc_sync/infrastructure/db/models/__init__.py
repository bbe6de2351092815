"""
Database models package.
"""

from .base import BaseModel, OrgScopedMixin, TimestampMixin, JSONType
from .orchestration import (
    DataLineage,
    DataQualityMetrics,
    SyncEvent,
    DataValidationRule,
)

__all__ = [
    "BaseModel",
    "OrgScopedMixin",
    "TimestampMixin",
    "JSONType",

    "DataLineage",
    "DataQualityMetrics",
    "SyncEvent",
    "DataValidationRule",
]
