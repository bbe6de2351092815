from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from grc_sync.infrastructure.db.models.orchestration import DataValidationRuleRead, DataValidationRuleUpdate
from grc_sync.interfaces.dependencies import get_orchestration_service
from grc_sync.schemas import ValidateRecordRequest, ValidationResultResponse, ValidationRuleCreateRequest
from grc_sync.services import DataOrchestrationService

router = APIRouter()


@router.post("/validation-rules", response_model=DataValidationRuleRead, status_code=status.HTTP_201_CREATED)
async def create_validation_rule(
    org_id: str,
    rule: ValidationRuleCreateRequest,
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> DataValidationRuleRead:
    """Create a validation rule"""
    return await orchestration.create_validation_rule(rule.to_create(org_id))


@router.get("/validation-rules", response_model=List[DataValidationRuleRead])
async def list_validation_rules(
    org_id: str,
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> List[DataValidationRuleRead]:
    return await orchestration.get_validation_rules(org_id, is_active=is_active)


@router.patch("/validation-rules/{rule_id}", response_model=DataValidationRuleRead)
async def update_validation_rule(
    org_id: str,
    rule_id: UUID,
    changes: DataValidationRuleUpdate,
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> DataValidationRuleRead:
    """Edit a validation rule; set is_active to false to disable it"""
    return await orchestration.update_validation_rule(rule_id, changes, org_id=org_id)


@router.post("/validate", response_model=ValidationResultResponse)
async def validate_record(
    org_id: str,
    request: ValidateRecordRequest,
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> ValidationResultResponse:
    """Evaluate a record against the active rules of its table"""
    record_id = request.record_id or str(request.record.get("id", ""))
    outcome = await orchestration.validate_data(org_id, request.table_name, record_id, request.record)
    return ValidationResultResponse(**outcome.to_dict())
