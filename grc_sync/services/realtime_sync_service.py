"""
Real-time sync: listens to row changes of the watched GRC tables and fans
each change out to the modules that depend on it.

Every change is turned into a pending sync event, a quality snapshot (inserts
and updates) and a lineage entry. The three steps are guarded separately, so
one failing never stops the others.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from grc_sync.core.constants import (
    MANUAL_SOURCE_MODULE,
    MANUAL_SYNC_EVENT_TYPE,
    TABLE_SOURCE_MODULES,
    TABLE_TARGET_MODULES,
    UNKNOWN_MODULE,
    WATCHED_TABLES,
)
from grc_sync.core.enums import ChangeEventType, OperationType, OrchestratorState, SyncEventStatus
from grc_sync.core.exceptions import OrchestrationError
from grc_sync.core.logging import audit_log, get_logger
from grc_sync.infrastructure.db.models.orchestration import (
    DataLineage,
    DataQualityMetrics,
    SyncEvent,
    SyncEventCreate,
)
from grc_sync.infrastructure.realtime import ChangeEvent, ChangeFeed
from grc_sync.services.data_orchestration_service import DataOrchestrationService
from grc_sync.services.data_quality_service import DataQualityService
from grc_sync.utils.date_utils import to_isoformat
from grc_sync.utils.validation_utils import round_half_up


OPERATION_BY_EVENT = {
    ChangeEventType.INSERT: OperationType.CREATE,
    ChangeEventType.UPDATE: OperationType.UPDATE,
    ChangeEventType.DELETE: OperationType.DELETE,
}


def resolve_source_module(table: str) -> str:
    return TABLE_SOURCE_MODULES.get(table, UNKNOWN_MODULE)


def resolve_target_modules(table: str) -> List[str]:
    return list(TABLE_TARGET_MODULES.get(table, []))


def subscription_key(table: str, org_id: str) -> str:
    return f"{table}-{org_id}"


@dataclass
class ChangeOutcome:
    """What handling one change produced; ``errors`` maps a step to its failure."""
    table: str
    event_type: ChangeEventType
    record_id: Optional[str]
    source_module: str
    target_modules: List[str]
    dropped: bool = False
    sync_event: Optional[SyncEvent] = None
    quality_metrics: Optional[DataQualityMetrics] = None
    lineage: Optional[DataLineage] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.dropped and not self.errors


class OrgSyncOrchestrator:
    """
    Change listener of one organization.

    Owns one subscription per watched table. Lifecycle:
    UNINITIALIZED -> INITIALIZING -> READY -> DISPOSED.
    """

    def __init__(
        self,
        org_id: str,
        change_feed: ChangeFeed,
        orchestration_service: DataOrchestrationService,
        quality_service: DataQualityService,
        tables: Optional[List[str]] = None,
    ):
        self.org_id = org_id
        self.change_feed = change_feed
        self.orchestration = orchestration_service
        self.quality = quality_service
        self.tables = list(tables) if tables is not None else list(WATCHED_TABLES)

        self.logger = get_logger(__name__, org_id=org_id)
        self.state = OrchestratorState.UNINITIALIZED
        self._subscriptions: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self.state == OrchestratorState.READY

    @property
    def subscription_keys(self) -> List[str]:
        return list(self._subscriptions)

    async def initialize(self) -> None:
        """
        Subscribe to every watched table. Calling it again once ready is a no-op.

        A table whose subscription fails is logged and left unsynced.

        Raises:
            OrchestrationError: If the orchestrator was already disposed
        """
        async with self._lock:
            if self.state == OrchestratorState.READY:
                return
            if self.state == OrchestratorState.DISPOSED:
                raise OrchestrationError(
                    "Orchestrator already disposed", org_id=self.org_id, state=self.state.value
                )

            self.state = OrchestratorState.INITIALIZING
            self.logger.info("Initializing real-time sync")

            for table in self.tables:
                key = subscription_key(table, self.org_id)
                try:
                    self._subscriptions[key] = await self.change_feed.subscribe(
                        table, self.org_id, self.handle_change
                    )
                except Exception as e:
                    self.logger.error(f"Failed to set up sync for {table}: {e}", extra={"table": table})

            self.state = OrchestratorState.READY
            self.logger.info(
                f"Real-time sync ready: {len(self._subscriptions)}/{len(self.tables)} tables subscribed"
            )

    async def dispose(self) -> None:
        """Unsubscribe from every table. Safe to call from any state, any number of times."""
        async with self._lock:
            for key, subscription_id in list(self._subscriptions.items()):
                try:
                    await self.change_feed.unsubscribe(subscription_id)
                except Exception as e:
                    self.logger.error(f"Failed to unsubscribe {key}: {e}")
            self._subscriptions.clear()

            if self.state != OrchestratorState.DISPOSED:
                self.logger.info("Real-time sync disposed")
            self.state = OrchestratorState.DISPOSED

    async def handle_change(self, event: ChangeEvent) -> ChangeOutcome:
        """
        Fan one row change out to the dependent modules.

        Unmapped tables have no target modules and are dropped without any
        writes. So are changes of another organization.
        """
        outcome = ChangeOutcome(
            table=event.table,
            event_type=event.event_type,
            record_id=event.record_id,
            source_module=resolve_source_module(event.table),
            target_modules=resolve_target_modules(event.table),
        )
        context = {"table": event.table}

        if event.org_id != self.org_id:
            outcome.dropped = True
            outcome.errors["org"] = f"Change belongs to org {event.org_id}"
            self.logger.warning(f"Ignoring change of {event.table} for org {event.org_id}", extra=context)
            return outcome

        if not outcome.target_modules:
            outcome.dropped = True
            self.logger.debug(f"No target modules for {event.table}, change dropped", extra=context)
            return outcome

        try:
            outcome.sync_event = await self.orchestration.create_sync_event(
                SyncEventCreate(
                    org_id=event.org_id,
                    event_type=f"{event.table}_{event.event_type.value}",
                    source_module=outcome.source_module,
                    target_modules=outcome.target_modules,
                    entity_type=event.table,
                    entity_id=outcome.record_id or "",
                    event_data={
                        "operation": event.event_type.value,
                        "new_record": event.new,
                        "old_record": event.old,
                        "timestamp": to_isoformat(event.commit_timestamp),
                    },
                )
            )
        except Exception as e:
            self.logger.error(f"Error creating sync event: {e}", extra=context)
            outcome.errors["sync_event"] = str(e)

        if event.event_type in (ChangeEventType.INSERT, ChangeEventType.UPDATE) and event.new:
            try:
                outcome.quality_metrics = await self.quality.assess_record(
                    event.org_id, event.table, event.new
                )
            except Exception as e:
                self.logger.error(f"Error assessing data quality: {e}", extra=context)
                outcome.errors["quality"] = str(e)

        if event.record:
            try:
                outcome.lineage = await self.orchestration.record_lineage(
                    event.org_id, event.table, event.record, OPERATION_BY_EVENT[event.event_type]
                )
            except Exception as e:
                self.logger.error(f"Error recording lineage: {e}", extra=context)
                outcome.errors["lineage"] = str(e)

        return outcome


class RealTimeSyncService:
    """
    Entry point for the real-time sync layer.

    Keeps one OrgSyncOrchestrator per initialized organization.
    """

    def __init__(
        self,
        change_feed: ChangeFeed,
        orchestration_service: DataOrchestrationService,
        quality_service: DataQualityService,
        tables: Optional[List[str]] = None,
    ):
        self.change_feed = change_feed
        self.orchestration = orchestration_service
        self.quality = quality_service
        self.tables = tables
        self._orchestrators: Dict[str, OrgSyncOrchestrator] = {}
        self._lock = asyncio.Lock()

    async def initialize(self, org_id: str) -> OrgSyncOrchestrator:
        """
        Start listening for an organization's changes. Idempotent per organization.

        The facade lock is held until the orchestrator is ready, so a
        concurrent cleanup waits instead of disposing it half-way.
        """
        async with self._lock:
            orchestrator = self._orchestrators.get(org_id)
            if orchestrator is None or orchestrator.state == OrchestratorState.DISPOSED:
                orchestrator = OrgSyncOrchestrator(
                    org_id,
                    self.change_feed,
                    self.orchestration,
                    self.quality,
                    tables=self.tables,
                )
                self._orchestrators[org_id] = orchestrator

            await orchestrator.initialize()
            return orchestrator

    async def cleanup(self, org_id: Optional[str] = None) -> None:
        """
        Stop listening, for one organization or for all of them.

        Handlers already running are left to finish.
        """
        async with self._lock:
            if org_id is None:
                orchestrators = list(self._orchestrators.values())
                self._orchestrators.clear()
            else:
                orchestrator = self._orchestrators.pop(org_id, None)
                orchestrators = [orchestrator] if orchestrator else []

        for orchestrator in orchestrators:
            await orchestrator.dispose()

    def is_initialized(self, org_id: str) -> bool:
        orchestrator = self._orchestrators.get(org_id)
        return orchestrator is not None and orchestrator.is_ready

    def get_orchestrator(self, org_id: str) -> Optional[OrgSyncOrchestrator]:
        return self._orchestrators.get(org_id)

    @property
    def initialized_orgs(self) -> List[str]:
        return [org for org, orchestrator in self._orchestrators.items() if orchestrator.is_ready]

    async def trigger_manual_sync(
        self,
        org_id: str,
        entity_type: str,
        entity_id: str,
        target_modules: List[str],
        event_data: Optional[Dict[str, Any]] = None,
        requested_by: Optional[str] = None,
    ) -> SyncEvent:
        """Enqueue an administrator-initiated sync event, bypassing the listener."""
        sync_event = await self.orchestration.create_sync_event(
            SyncEventCreate(
                org_id=org_id,
                event_type=MANUAL_SYNC_EVENT_TYPE,
                source_module=MANUAL_SOURCE_MODULE,
                target_modules=list(target_modules),
                entity_type=entity_type,
                entity_id=str(entity_id),
                event_data=event_data or {},
            )
        )
        audit_log(
            action="MANUAL_SYNC",
            resource="SYNC_EVENT",
            org_id=org_id,
            user_id=requested_by,
            details={"sync_event_id": str(sync_event.id), "entity_type": entity_type, "entity_id": str(entity_id)},
        )
        return sync_event

    async def get_sync_status(self, org_id: str) -> Dict[str, Any]:
        """
        Aggregate counts of an organization's sync events.

        ``success_rate`` is the rounded percentage of completed events, 100
        when there are none.
        """
        total = await self.orchestration.count_sync_events(org_id)
        pending = await self.orchestration.count_sync_events(org_id, SyncEventStatus.PENDING)
        failed = await self.orchestration.count_sync_events(org_id, SyncEventStatus.FAILED)
        completed = await self.orchestration.count_sync_events(org_id, SyncEventStatus.COMPLETED)

        return {
            "total_events": total,
            "pending_events": pending,
            "failed_events": failed,
            "success_rate": round_half_up(completed / total * 100) if total else 100,
        }
