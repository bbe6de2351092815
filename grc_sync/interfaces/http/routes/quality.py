from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from grc_sync.infrastructure.db.models.orchestration import DataQualityMetricsRead
from grc_sync.interfaces.dependencies import get_quality_service
from grc_sync.schemas import AssessRecordRequest
from grc_sync.services import DataQualityService

router = APIRouter()


@router.get("", response_model=List[DataQualityMetricsRead])
async def list_quality_metrics(
    org_id: str,
    table_name: Optional[str] = Query(None, description="Filter by table"),
    quality: DataQualityService = Depends(get_quality_service),
) -> List[DataQualityMetricsRead]:
    """List quality snapshots, most recently validated first"""
    return await quality.orchestration.get_data_quality_metrics(org_id, table_name=table_name)


@router.get("/summary", response_model=Dict[str, Any])
async def get_quality_summary(
    org_id: str,
    table_name: Optional[str] = Query(None, description="Filter by table"),
    quality: DataQualityService = Depends(get_quality_service),
) -> Dict[str, Any]:
    return await quality.get_quality_summary(org_id, table_name=table_name)


@router.post("/assess", response_model=DataQualityMetricsRead, status_code=status.HTTP_201_CREATED)
async def assess_record(
    org_id: str,
    request: AssessRecordRequest,
    quality: DataQualityService = Depends(get_quality_service),
) -> DataQualityMetricsRead:
    """Score a record on demand and store the snapshot"""
    return await quality.assess_record(org_id, request.table_name, request.record, record_id=request.record_id)
