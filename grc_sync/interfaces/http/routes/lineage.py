from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from grc_sync.core.enums import LineageSyncStatus
from grc_sync.infrastructure.db.models.orchestration import DataConflictResolution, DataLineageRead
from grc_sync.interfaces.dependencies import get_orchestration_service
from grc_sync.services import DataOrchestrationService

router = APIRouter()


@router.get("", response_model=List[DataLineageRead])
async def list_lineage(
    org_id: str,
    source_table: Optional[str] = Query(None, description="Filter by source table"),
    target_table: Optional[str] = Query(None, description="Filter by target table"),
    sync_status: Optional[LineageSyncStatus] = Query(None, description="Filter by sync status"),
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> List[DataLineageRead]:
    """List lineage records, newest first"""
    return await orchestration.get_data_lineage(
        org_id,
        source_table=source_table,
        target_table=target_table,
        sync_status=sync_status,
    )


@router.post("/{lineage_id}/resolve", response_model=DataLineageRead)
async def resolve_conflict(
    org_id: str,
    lineage_id: UUID,
    resolution: DataConflictResolution,
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> DataLineageRead:
    """Resolve a lineage conflict"""
    return await orchestration.resolve_data_conflict(
        lineage_id, resolution.resolved_by, resolution.resolution, org_id=org_id
    )
