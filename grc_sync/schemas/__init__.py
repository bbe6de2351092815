from .orchestration import (
    AssessRecordRequest,
    DeliveryReportResponse,
    HealthResponse,
    ListenerStatusResponse,
    ManualSyncRequest,
    RuleViolationSchema,
    SyncStatusResponse,
    ValidateRecordRequest,
    ValidationResultResponse,
    ValidationRuleCreateRequest,
)

__all__ = [
    "AssessRecordRequest",
    "DeliveryReportResponse",
    "HealthResponse",
    "ListenerStatusResponse",
    "ManualSyncRequest",
    "RuleViolationSchema",
    "SyncStatusResponse",
    "ValidateRecordRequest",
    "ValidationResultResponse",
    "ValidationRuleCreateRequest",
]
