"""
Sync event consumer: delivers pending sync events to the target modules and
drives their status through the lifecycle.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from grc_sync.core.config import get_settings
from grc_sync.core.enums import SyncEventStatus
from grc_sync.core.logging import get_logger
from grc_sync.infrastructure.db.models.orchestration import SyncEvent
from grc_sync.services.data_orchestration_service import DataOrchestrationService

logger = get_logger(__name__)

ModuleHandler = Callable[[SyncEvent], Awaitable[Any]]

NO_HANDLER = "no handler registered"


@dataclass
class DeliveryReport:
    """Result of one delivery attempt of a sync event."""
    event_id: UUID
    status: SyncEventStatus
    delivered: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    retry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "status": self.status.value,
            "delivered": list(self.delivered),
            "failed": dict(self.failed),
            "retry_count": self.retry_count,
        }


class SyncEventConsumer:
    """
    Delivers sync events to per-module handlers.

    Handlers are registered per target module, in code or through
    ``SYNC_MODULE_HANDLERS``. A target module without a handler cannot be
    reached and is reported as failed, so an unconfigured consumer never
    completes events it did not deliver. When no module could be reached
    the event goes back to pending until its retries run out, then it fails.
    """

    def __init__(self, orchestration_service: DataOrchestrationService, batch_size: Optional[int] = None):
        self.orchestration = orchestration_service
        self.batch_size = batch_size or get_settings().sync.consumer_batch_size
        self.handlers: Dict[str, ModuleHandler] = {}

    def register(self, module: str, handler: ModuleHandler) -> None:
        """Register the handler of a target module"""
        self.handlers[module] = handler
        logger.info(f"Registered sync handler for module {module}")

    def unregister(self, module: str) -> bool:
        return self.handlers.pop(module, None) is not None

    async def process_event(self, sync_event: SyncEvent) -> Optional[DeliveryReport]:
        """
        Deliver one event.

        If recording the outcome fails, the event is not left in
        ``processing``: it is counted as a failed attempt and put back to
        pending, or failed once its retries are exhausted.

        Returns:
            The delivery report, or None if the event was not pending
        """
        if sync_event.sync_status != SyncEventStatus.PENDING:
            logger.debug(f"Skipping sync event {sync_event.id} in state {sync_event.sync_status}")
            return None

        sync_event = await self.orchestration.update_sync_event_status(sync_event.id, SyncEventStatus.PROCESSING)
        report = DeliveryReport(event_id=sync_event.id, status=SyncEventStatus.PROCESSING,
                                retry_count=sync_event.retry_count)

        try:
            await self._deliver(sync_event, report)
            await self._settle(sync_event, report)
        except Exception as e:
            logger.error(f"Recording delivery of sync event {sync_event.id} failed: {e}")
            await self._requeue(sync_event, report, e)

        logger.info(f"Sync event {sync_event.id} ({sync_event.event_type}) -> {report.status.value}")
        return report

    async def _deliver(self, sync_event: SyncEvent, report: DeliveryReport) -> None:
        for module in sync_event.target_modules:
            handler = self.handlers.get(module)
            if handler is None:
                report.failed[module] = NO_HANDLER
                continue
            try:
                await handler(sync_event)
                report.delivered.append(module)
            except Exception as e:
                logger.error(f"Module {module} failed to handle sync event {sync_event.id}: {e}")
                report.failed[module] = str(e)

    async def _settle(self, sync_event: SyncEvent, report: DeliveryReport) -> None:
        if not report.failed:
            await self.orchestration.update_sync_event_status(sync_event.id, SyncEventStatus.COMPLETED)
            report.status = SyncEventStatus.COMPLETED

        elif report.delivered:
            await self.orchestration.update_sync_event_status(
                sync_event.id, SyncEventStatus.PARTIAL, {"failed_modules": report.failed}
            )
            report.status = SyncEventStatus.PARTIAL

        else:
            await self._count_failed_attempt(sync_event, report, {"failed_modules": report.failed})

    async def _requeue(self, sync_event: SyncEvent, report: DeliveryReport, error: Exception) -> None:
        if report.retry_count > sync_event.retry_count:
            # The attempt was already counted, only the status write is missing
            status = SyncEventStatus.FAILED if report.retry_count >= sync_event.max_retries else SyncEventStatus.PENDING
            await self.orchestration.update_sync_event_status(sync_event.id, status)
            report.status = status
            return
        await self._count_failed_attempt(sync_event, report, {"last_error": str(error)})

    async def _count_failed_attempt(self, sync_event: SyncEvent, report: DeliveryReport,
                                    error_details: Dict[str, Any]) -> None:
        updated = await self.orchestration.increment_retry_count(sync_event.id, error_details)
        report.retry_count = updated.retry_count
        status = SyncEventStatus.FAILED if updated.retries_exhausted else SyncEventStatus.PENDING
        await self.orchestration.update_sync_event_status(sync_event.id, status)
        report.status = status

        if status == SyncEventStatus.FAILED:
            logger.warning(f"Sync event {sync_event.id} failed after {updated.retry_count} attempt(s)")

    async def process_pending(self, org_id: str, limit: Optional[int] = None) -> List[DeliveryReport]:
        """Deliver an organization's oldest pending events."""
        events = await self.orchestration.get_pending_sync_events(org_id, limit or self.batch_size)

        reports = []
        for sync_event in events:
            try:
                report = await self.process_event(sync_event)
            except Exception as e:
                logger.error(f"Error processing sync event {sync_event.id}: {e}")
                continue
            if report is not None:
                reports.append(report)
        return reports
