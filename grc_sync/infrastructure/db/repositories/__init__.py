from .base import BaseRepository
from .orchestration import (
    DataLineageRepository,
    DataQualityMetricsRepository,
    SyncEventRepository,
    ValidationRuleRepository,
)

__all__ = [
    "BaseRepository",
    "DataLineageRepository",
    "DataQualityMetricsRepository",
    "SyncEventRepository",
    "ValidationRuleRepository",
]
