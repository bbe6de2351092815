"""
Request and response schemas of the orchestration API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from grc_sync.core.enums import OrchestratorState, Severity, SyncEventStatus, ValidationRuleType
from grc_sync.infrastructure.db.models.orchestration import DataValidationRuleCreate


class ListenerStatusResponse(BaseModel):
    """State of an organization's change listener."""
    org_id: str
    initialized: bool
    state: OrchestratorState = OrchestratorState.UNINITIALIZED
    subscriptions: List[str] = Field(default_factory=list)


class ManualSyncRequest(BaseModel):
    entity_type: str = Field(..., min_length=1, max_length=100)
    entity_id: str = Field(..., min_length=1, max_length=64)
    target_modules: List[str] = Field(default_factory=list)
    event_data: Dict[str, Any] = Field(default_factory=dict)
    requested_by: Optional[str] = Field(default=None, max_length=64)


class SyncStatusResponse(BaseModel):
    """Aggregate sync event counts of an organization."""
    total_events: int = Field(ge=0)
    pending_events: int = Field(ge=0)
    failed_events: int = Field(ge=0)
    success_rate: int = Field(ge=0, le=100, description="Completed events, percent of total")


class AssessRecordRequest(BaseModel):
    table_name: str = Field(..., min_length=1, max_length=100)
    record: Dict[str, Any]
    record_id: Optional[str] = Field(default=None, description="Defaults to the record's id field")


class ValidateRecordRequest(AssessRecordRequest):
    pass


class RuleViolationSchema(BaseModel):
    rule: str
    message: str
    severity: str


class ValidationResultResponse(BaseModel):
    is_valid: bool
    violations: List[RuleViolationSchema] = Field(default_factory=list)
    unimplemented: List[str] = Field(default_factory=list, description="Rules skipped for lack of semantics")


class ValidationRuleCreateRequest(BaseModel):
    """A validation rule as submitted for one organization."""
    rule_name: str = Field(..., min_length=1, max_length=150)
    rule_type: ValidationRuleType
    target_tables: List[str] = Field(default_factory=list)
    target_fields: List[str] = Field(default_factory=list)
    validation_logic: Dict[str, Any] = Field(default_factory=dict)
    error_message: str = Field(default="", max_length=500)
    severity: Severity = Severity.MEDIUM
    is_active: bool = True
    created_by: Optional[str] = Field(default=None, max_length=64)

    def to_create(self, org_id: str) -> DataValidationRuleCreate:
        return DataValidationRuleCreate(org_id=org_id, **self.model_dump())


class DeliveryReportResponse(BaseModel):
    event_id: str
    status: SyncEventStatus
    delivered: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    retry_count: int = 0


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    checks: Dict[str, str] = Field(default_factory=dict)
