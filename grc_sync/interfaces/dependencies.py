from fastapi import Depends, Request

from grc_sync.core.exceptions import ServiceError
from grc_sync.services import (
    DataOrchestrationService,
    DataQualityService,
    RealTimeSyncService,
    SyncEventConsumer,
    SyncServices,
)


def get_sync_services(request: Request) -> SyncServices:
    """Service graph built at application startup"""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ServiceError("Sync services are not initialized")
    return services


def get_orchestration_service(services: SyncServices = Depends(get_sync_services)) -> DataOrchestrationService:
    return services.orchestration


def get_quality_service(services: SyncServices = Depends(get_sync_services)) -> DataQualityService:
    return services.quality


def get_realtime_service(services: SyncServices = Depends(get_sync_services)) -> RealTimeSyncService:
    return services.realtime


def get_consumer(services: SyncServices = Depends(get_sync_services)) -> SyncEventConsumer:
    return services.consumer
