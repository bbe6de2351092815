"""
Builders for test records.
"""

from typing import Any, Dict, Optional

from grc_sync.core.enums import ChangeEventType, Severity, ValidationRuleType
from grc_sync.infrastructure.db.models.orchestration import DataValidationRuleCreate
from grc_sync.infrastructure.realtime import ChangeEvent

ORG_ID = "org-1"
OTHER_ORG_ID = "org-2"


def make_rule(
    rule_type: ValidationRuleType,
    validation_logic: Dict[str, Any],
    rule_name: str = "rule",
    target_tables=("controls",),
    severity: Severity = Severity.MEDIUM,
    error_message: str = "invalid",
    is_active: bool = True,
    org_id: str = ORG_ID,
) -> DataValidationRuleCreate:
    return DataValidationRuleCreate(
        org_id=org_id,
        rule_name=rule_name,
        rule_type=rule_type,
        target_tables=list(target_tables),
        validation_logic=validation_logic,
        error_message=error_message,
        severity=severity,
        is_active=is_active,
    )


def make_change(
    table: str,
    event_type: ChangeEventType = ChangeEventType.INSERT,
    new: Optional[Dict[str, Any]] = None,
    old: Optional[Dict[str, Any]] = None,
    org_id: str = ORG_ID,
) -> ChangeEvent:
    return ChangeEvent(table=table, event_type=event_type, org_id=org_id, new=new or {}, old=old or {})


DELIVERED = []


async def record_delivery(sync_event) -> None:
    """Module handler importable by path, for handler wiring through settings."""
    DELIVERED.append(sync_event.id)
