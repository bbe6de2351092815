"""
Data Quality service: scores changed records and persists quality snapshots.
"""

from typing import Any, Dict, List, Optional

from grc_sync.core.constants import (
    ACCURACY_SCORE_INVALID,
    CONSISTENCY_SCORE_PLACEHOLDER,
    MAX_SCORE,
    VALIDITY_SCORE_INVALID,
    VIOLATION_PENALTY,
)
from grc_sync.infrastructure.db.models.orchestration import DataQualityMetrics, DataQualityMetricsCreate
from grc_sync.services.base import BaseService, SessionFactory
from grc_sync.services.data_orchestration_service import DataOrchestrationService
from grc_sync.services.validation_rules import ValidationOutcome
from grc_sync.utils.date_utils import get_current_timestamp
from grc_sync.utils.validation_utils import completeness_ratio, round_half_up


def calculate_completeness_score(record: Dict[str, Any]) -> int:
    """
    Percentage of fields holding a value (not null and not empty string).

    An empty record scores 0.
    """
    return round_half_up(completeness_ratio(record) * MAX_SCORE)


def calculate_quality_score(violation_count: int) -> int:
    """Overall score: 20 points off per violation, never below 0."""
    return max(0, MAX_SCORE - VIOLATION_PENALTY * violation_count)


def build_quality_metrics(
    org_id: str,
    table_name: str,
    record_id: str,
    record: Dict[str, Any],
    outcome: ValidationOutcome,
) -> DataQualityMetricsCreate:
    """Derive a quality snapshot from a record and its validation outcome."""
    return DataQualityMetricsCreate(
        org_id=org_id,
        table_name=table_name,
        record_id=str(record_id),
        quality_score=calculate_quality_score(len(outcome.violations)),
        completeness_score=calculate_completeness_score(record),
        accuracy_score=MAX_SCORE if outcome.is_valid else ACCURACY_SCORE_INVALID,
        # TODO: replace with a cross-module consistency check once modules expose their reference data
        consistency_score=CONSISTENCY_SCORE_PLACEHOLDER,
        validity_score=MAX_SCORE if outcome.is_valid else VALIDITY_SCORE_INVALID,
        quality_issues=outcome.messages,
        validation_rules=[violation.to_dict() for violation in outcome.violations],
        last_validated_at=get_current_timestamp(),
    )


class DataQualityService(BaseService):
    """Service for scoring records against the organization's validation rules."""

    def __init__(
        self,
        session_factory: SessionFactory,
        orchestration_service: Optional[DataOrchestrationService] = None,
    ):
        super().__init__(session_factory)
        self.orchestration = orchestration_service or DataOrchestrationService(session_factory)

    def get_service_name(self) -> str:
        return "DataQualityService"

    async def assess_record(
        self, org_id: str, table_name: str, record: Dict[str, Any], record_id: Optional[str] = None
    ) -> DataQualityMetrics:
        """
        Validate a record, score it and persist one new metrics row.

        Returns:
            The persisted DataQualityMetrics row
        """
        record_id = str(record_id if record_id is not None else record.get("id", ""))
        outcome = await self.orchestration.validate_data(org_id, table_name, record_id, record)
        metrics = build_quality_metrics(org_id, table_name, record_id, record, outcome)

        persisted = await self.orchestration.create_data_quality_metrics(metrics)
        self.logger.debug(
            f"Quality of {table_name}/{record_id}: {persisted.quality_score} "
            f"(completeness {persisted.completeness_score})"
        )
        return persisted

    async def get_quality_summary(self, org_id: str, table_name: Optional[str] = None) -> Dict[str, Any]:
        """Average scores over an organization's quality snapshots."""
        try:
            metrics = await self.orchestration.get_data_quality_metrics(org_id, table_name=table_name)
            self.log_operation("get_quality_summary", {"org_id": org_id, "table_name": table_name})

            if not metrics:
                return {"snapshots": 0, "average_quality_score": None, "tables": []}

            tables: List[str] = sorted({m.table_name for m in metrics})
            return {
                "snapshots": len(metrics),
                "average_quality_score": round(sum(m.quality_score for m in metrics) / len(metrics), 2),
                "average_completeness_score": round(sum(m.completeness_score for m in metrics) / len(metrics), 2),
                "records_with_issues": sum(1 for m in metrics if m.quality_issues),
                "tables": tables,
            }
        except Exception as e:
            self.handle_error(e, "get_quality_summary")
