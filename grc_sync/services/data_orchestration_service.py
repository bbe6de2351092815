"""
Data orchestration service: lineage, quality metrics, sync events and
validation rules for one organization at a time.
"""

from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from grc_sync.core.constants import DATA_CHANGE_EVENT_TYPE, LINEAGE_EXCLUDED_FIELDS
from grc_sync.core.enums import LineageSyncStatus, OperationType, SyncEventStatus
from grc_sync.core.logging import audit_log
from grc_sync.infrastructure.db.models.orchestration import (
    DataLineage,
    DataLineageCreate,
    DataQualityMetrics,
    DataQualityMetricsCreate,
    DataValidationRule,
    DataValidationRuleCreate,
    DataValidationRuleUpdate,
    SyncEvent,
    SyncEventCreate,
)
from grc_sync.infrastructure.db.repositories import (
    DataLineageRepository,
    DataQualityMetricsRepository,
    SyncEventRepository,
    ValidationRuleRepository,
)
from grc_sync.services.base import BaseService, SessionFactory
from grc_sync.services.validation_rules import ValidationOutcome, ValidationRuleEvaluator
from grc_sync.utils.date_utils import get_current_timestamp


def lineage_snapshot(record: Dict[str, Any]) -> Dict[str, Any]:
    """A record's field values without its identity and timestamp columns."""
    return {key: value for key, value in record.items() if key not in LINEAGE_EXCLUDED_FIELDS}


class DataOrchestrationService(BaseService):
    """Service for the orchestration ledgers shared by every GRC module."""

    def __init__(self, session_factory: SessionFactory, evaluator: Optional[ValidationRuleEvaluator] = None):
        super().__init__(session_factory)
        self.evaluator = evaluator or ValidationRuleEvaluator()

    def get_service_name(self) -> str:
        return "DataOrchestrationService"

    # Data lineage

    async def create_data_lineage(self, lineage: Union[DataLineageCreate, Dict[str, Any]]) -> DataLineage:
        """Persist one lineage record."""
        try:
            async with self.session_factory() as session:
                return await DataLineageRepository(session).create(lineage)
        except Exception as e:
            self.handle_error(e, "create_data_lineage")

    async def get_data_lineage(
        self,
        org_id: str,
        source_table: Optional[str] = None,
        target_table: Optional[str] = None,
        sync_status: Optional[LineageSyncStatus] = None,
    ) -> List[DataLineage]:
        """Lineage records of an organization, newest first."""
        try:
            async with self.session_factory() as session:
                return await DataLineageRepository(session).search(
                    org_id,
                    source_table=source_table,
                    target_table=target_table,
                    sync_status=sync_status,
                )
        except Exception as e:
            self.handle_error(e, "get_data_lineage")

    async def resolve_data_conflict(
        self,
        lineage_id: UUID,
        resolved_by: str,
        resolution: Dict[str, Any],
        org_id: Optional[str] = None,
    ) -> DataLineage:
        """
        Mark a lineage record's conflict as resolved.

        The resolution payload replaces the stored conflict data.

        Raises:
            NotFoundError: If the lineage record does not exist
        """
        try:
            self.log_operation("resolve_data_conflict", {"lineage_id": str(lineage_id), "resolved_by": resolved_by})
            async with self.session_factory() as session:
                lineage = await DataLineageRepository(session).update(
                    lineage_id,
                    {
                        "sync_status": LineageSyncStatus.SUCCESS,
                        "resolved_by": resolved_by,
                        "resolved_at": get_current_timestamp(),
                        "conflict_data": dict(resolution),
                    },
                    org_id=org_id,
                )
            audit_log(
                action="RESOLVE_CONFLICT",
                resource="DATA_LINEAGE",
                org_id=lineage.org_id,
                user_id=resolved_by,
                details={"lineage_id": str(lineage_id)},
            )
            return lineage
        except Exception as e:
            self.handle_error(e, "resolve_data_conflict")

    async def record_lineage(
        self,
        org_id: str,
        table_name: str,
        record: Dict[str, Any],
        operation: OperationType,
        conflict_data: Optional[Dict[str, Any]] = None,
        created_by: Optional[str] = None,
    ) -> DataLineage:
        """
        Record a self-referential lineage entry for a changed record.

        ``field_changes`` is a snapshot of the record's current values, not a
        diff. Supplying ``conflict_data`` flags the entry as a conflict.
        """
        record_id = str(record.get("id", ""))
        lineage = DataLineageCreate(
            org_id=org_id,
            source_table=table_name,
            source_id=record_id,
            target_table=table_name,
            target_id=record_id,
            operation_type=operation,
            field_changes=lineage_snapshot(record),
            transformation_rules={},
            sync_status=LineageSyncStatus.CONFLICT if conflict_data else LineageSyncStatus.SUCCESS,
            conflict_data=conflict_data or {},
            created_by=created_by,
        )
        return await self.create_data_lineage(lineage)

    # Data quality metrics

    async def create_data_quality_metrics(
        self, metrics: Union[DataQualityMetricsCreate, Dict[str, Any]]
    ) -> DataQualityMetrics:
        try:
            async with self.session_factory() as session:
                return await DataQualityMetricsRepository(session).create(metrics)
        except Exception as e:
            self.handle_error(e, "create_data_quality_metrics")

    async def get_data_quality_metrics(self, org_id: str, table_name: Optional[str] = None) -> List[DataQualityMetrics]:
        """Quality snapshots of an organization, most recently validated first."""
        try:
            async with self.session_factory() as session:
                return await DataQualityMetricsRepository(session).search(org_id, table_name=table_name)
        except Exception as e:
            self.handle_error(e, "get_data_quality_metrics")

    # Sync events

    async def create_sync_event(self, event: Union[SyncEventCreate, Dict[str, Any]]) -> SyncEvent:
        """Enqueue a sync event; it always starts pending with no retries."""
        try:
            if isinstance(event, dict):
                event = SyncEventCreate.model_validate(event)
            event = event.model_copy(update={"sync_status": SyncEventStatus.PENDING, "retry_count": 0})

            async with self.session_factory() as session:
                sync_event = await SyncEventRepository(session).create(event)
            self.logger.debug(f"Sync event {sync_event.id} enqueued: {sync_event.event_type}")
            return sync_event
        except Exception as e:
            self.handle_error(e, "create_sync_event")

    async def get_sync_event(self, event_id: UUID, org_id: Optional[str] = None) -> SyncEvent:
        try:
            async with self.session_factory() as session:
                return await SyncEventRepository(session).get_or_404(event_id, org_id)
        except Exception as e:
            self.handle_error(e, "get_sync_event")

    async def get_sync_events(self, org_id: str, sync_status: Optional[SyncEventStatus] = None) -> List[SyncEvent]:
        """Sync events of an organization, newest first."""
        try:
            async with self.session_factory() as session:
                return await SyncEventRepository(session).search(org_id, sync_status=sync_status)
        except Exception as e:
            self.handle_error(e, "get_sync_events")

    async def get_pending_sync_events(self, org_id: str, limit: int) -> List[SyncEvent]:
        """Oldest pending events first."""
        try:
            async with self.session_factory() as session:
                return await SyncEventRepository(session).oldest_pending(org_id, limit)
        except Exception as e:
            self.handle_error(e, "get_pending_sync_events")

    async def count_sync_events(self, org_id: str, sync_status: Optional[SyncEventStatus] = None) -> int:
        try:
            async with self.session_factory() as session:
                return await SyncEventRepository(session).count(org_id, sync_status=sync_status)
        except Exception as e:
            self.handle_error(e, "count_sync_events")

    async def update_sync_event_status(
        self,
        event_id: UUID,
        status: SyncEventStatus,
        error_details: Optional[Dict[str, Any]] = None,
        org_id: Optional[str] = None,
    ) -> SyncEvent:
        """
        Move a sync event to ``status``.

        Completing an event stamps ``processed_at``. Error details are merged
        into the ones already stored.

        Raises:
            NotFoundError: If the event does not exist
        """
        try:
            status = SyncEventStatus(status)
            async with self.session_factory() as session:
                repository = SyncEventRepository(session)
                sync_event = await repository.get_or_404(event_id, org_id)

                values: Dict[str, Any] = {"sync_status": status}
                if status == SyncEventStatus.COMPLETED:
                    values["processed_at"] = get_current_timestamp()
                if error_details:
                    values["error_details"] = {**(sync_event.error_details or {}), **error_details}

                return await repository.update(event_id, values)
        except Exception as e:
            self.handle_error(e, "update_sync_event_status")

    async def increment_retry_count(self, event_id: UUID, error: Optional[Dict[str, Any]] = None) -> SyncEvent:
        """
        Count one more failed delivery attempt. The status is left as is.

        Raises:
            NotFoundError: If the event does not exist
        """
        try:
            async with self.session_factory() as session:
                repository = SyncEventRepository(session)
                sync_event = await repository.get_or_404(event_id)

                values: Dict[str, Any] = {"retry_count": sync_event.retry_count + 1}
                if error:
                    values["error_details"] = {**(sync_event.error_details or {}), **error}

                return await repository.update(event_id, values)
        except Exception as e:
            self.handle_error(e, "increment_retry_count")

    async def trigger_cross_module_sync(
        self,
        org_id: str,
        entity_type: str,
        entity_id: str,
        source_module: str,
        target_modules: List[str],
        event_data: Optional[Dict[str, Any]] = None,
    ) -> SyncEvent:
        """
        Enqueue a ``data_change`` event from one module to others.

        Raises:
            ValidationException: If the entity or the source module is missing
        """
        self.validate_input(
            {"entity_type": entity_type, "entity_id": entity_id, "source_module": source_module},
            ["entity_type", "entity_id", "source_module"],
        )
        sync_event = await self.create_sync_event(
            SyncEventCreate(
                org_id=org_id,
                event_type=DATA_CHANGE_EVENT_TYPE,
                source_module=source_module,
                target_modules=list(target_modules),
                entity_type=entity_type,
                entity_id=str(entity_id),
                event_data=event_data or {},
            )
        )
        self.log_operation(
            "trigger_cross_module_sync",
            {"entity_type": entity_type, "entity_id": entity_id, "source_module": source_module,
             "target_modules": target_modules},
        )
        return sync_event

    # Validation rules

    async def create_validation_rule(
        self, rule: Union[DataValidationRuleCreate, Dict[str, Any]]
    ) -> DataValidationRule:
        try:
            async with self.session_factory() as session:
                created = await ValidationRuleRepository(session).create(rule)
            self.log_operation("create_validation_rule", {"rule_name": created.rule_name})
            return created
        except Exception as e:
            self.handle_error(e, "create_validation_rule")

    async def get_validation_rules(self, org_id: str, is_active: Optional[bool] = None) -> List[DataValidationRule]:
        try:
            async with self.session_factory() as session:
                return await ValidationRuleRepository(session).search(org_id, is_active=is_active)
        except Exception as e:
            self.handle_error(e, "get_validation_rules")

    async def update_validation_rule(
        self, rule_id: UUID, changes: DataValidationRuleUpdate, org_id: Optional[str] = None
    ) -> DataValidationRule:
        """Edit a rule; only the fields set on ``changes`` are written."""
        try:
            async with self.session_factory() as session:
                updated = await ValidationRuleRepository(session).update(
                    rule_id, changes.model_dump(exclude_unset=True), org_id=org_id
                )
            self.log_operation("update_validation_rule", {"rule_id": str(rule_id)})
            return updated
        except Exception as e:
            self.handle_error(e, "update_validation_rule")

    async def validate_data(
        self, org_id: str, table_name: str, record_id: str, data: Dict[str, Any]
    ) -> ValidationOutcome:
        """Evaluate a record against the organization's active rules for its table."""
        rules = await self.get_validation_rules(org_id, is_active=True)
        outcome = self.evaluator.evaluate(data, rules, table_name=table_name)
        if not outcome.is_valid:
            self.logger.info(
                f"Record {table_name}/{record_id} failed {len(outcome.violations)} validation rule(s)"
            )
        return outcome
