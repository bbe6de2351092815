from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from grc_sync.core.constants import MAX_PAGE_SIZE
from grc_sync.core.enums import OrchestratorState, SyncEventStatus
from grc_sync.infrastructure.db.models.orchestration import SyncEventRead, SyncEventStatusUpdate
from grc_sync.interfaces.dependencies import get_consumer, get_orchestration_service, get_realtime_service
from grc_sync.schemas import (
    DeliveryReportResponse,
    ListenerStatusResponse,
    ManualSyncRequest,
    SyncStatusResponse,
)
from grc_sync.services import DataOrchestrationService, RealTimeSyncService, SyncEventConsumer

router = APIRouter()


def _listener_status(realtime: RealTimeSyncService, org_id: str) -> ListenerStatusResponse:
    orchestrator = realtime.get_orchestrator(org_id)
    return ListenerStatusResponse(
        org_id=org_id,
        initialized=realtime.is_initialized(org_id),
        state=orchestrator.state if orchestrator else OrchestratorState.UNINITIALIZED,
        subscriptions=orchestrator.subscription_keys if orchestrator else [],
    )

# ==============================================
# CHANGE LISTENER
# ==============================================

@router.post("/sync/initialize", response_model=ListenerStatusResponse)
async def initialize_listener(
    org_id: str,
    realtime: RealTimeSyncService = Depends(get_realtime_service),
) -> ListenerStatusResponse:
    """Start propagating the organization's table changes"""
    await realtime.initialize(org_id)
    return _listener_status(realtime, org_id)


@router.post("/sync/cleanup", response_model=ListenerStatusResponse)
async def cleanup_listener(
    org_id: str,
    realtime: RealTimeSyncService = Depends(get_realtime_service),
) -> ListenerStatusResponse:
    """Stop propagating the organization's table changes"""
    await realtime.cleanup(org_id)
    return _listener_status(realtime, org_id)


@router.get("/sync/listener", response_model=ListenerStatusResponse)
async def get_listener_status(
    org_id: str,
    realtime: RealTimeSyncService = Depends(get_realtime_service),
) -> ListenerStatusResponse:
    return _listener_status(realtime, org_id)


@router.post("/sync/manual", response_model=SyncEventRead, status_code=status.HTTP_201_CREATED)
async def trigger_manual_sync(
    org_id: str,
    request: ManualSyncRequest,
    realtime: RealTimeSyncService = Depends(get_realtime_service),
) -> SyncEventRead:
    """Enqueue an administrator-initiated sync event"""
    return await realtime.trigger_manual_sync(
        org_id,
        request.entity_type,
        request.entity_id,
        request.target_modules,
        event_data=request.event_data,
        requested_by=request.requested_by,
    )


@router.get("/sync/status", response_model=SyncStatusResponse)
async def get_sync_status(
    org_id: str,
    realtime: RealTimeSyncService = Depends(get_realtime_service),
) -> SyncStatusResponse:
    return SyncStatusResponse(**await realtime.get_sync_status(org_id))

# ==============================================
# SYNC EVENTS
# ==============================================

@router.get("/sync-events", response_model=List[SyncEventRead])
async def list_sync_events(
    org_id: str,
    sync_status: Optional[SyncEventStatus] = Query(None, description="Filter by status"),
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> List[SyncEventRead]:
    """List sync events, newest first"""
    return await orchestration.get_sync_events(org_id, sync_status=sync_status)


@router.get("/sync-events/{event_id}", response_model=SyncEventRead)
async def get_sync_event(
    org_id: str,
    event_id: UUID,
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> SyncEventRead:
    return await orchestration.get_sync_event(event_id, org_id=org_id)


@router.patch("/sync-events/{event_id}/status", response_model=SyncEventRead)
async def update_sync_event_status(
    org_id: str,
    event_id: UUID,
    update: SyncEventStatusUpdate,
    orchestration: DataOrchestrationService = Depends(get_orchestration_service),
) -> SyncEventRead:
    return await orchestration.update_sync_event_status(
        event_id, update.sync_status, update.error_details, org_id=org_id
    )


@router.post("/sync-events/process", response_model=List[DeliveryReportResponse])
async def process_pending_events(
    org_id: str,
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    consumer: SyncEventConsumer = Depends(get_consumer),
) -> List[DeliveryReportResponse]:
    """Deliver the oldest pending events once"""
    reports = await consumer.process_pending(org_id, limit=limit)
    return [DeliveryReportResponse(**report.to_dict()) for report in reports]
