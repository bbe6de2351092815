from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import field_validator
from sqlalchemy import String
from sqlmodel import SQLModel, Field

from grc_sync.core.constants import WILDCARD_TABLE
from grc_sync.core.enums import Severity, ValidationRuleType
from grc_sync.infrastructure.db.models.base import (
    BaseModel,
    JSONType,
    OrgScopedMixin,
    TimestampMixin,
    safe_record,
    safe_string_list,
)


class DataValidationRuleBase(OrgScopedMixin):
    """Base model for a declarative validation check."""
    rule_name: str = Field(max_length=150, index=True)
    rule_type: ValidationRuleType = Field(sa_type=String(32), index=True)
    target_tables: List[str] = Field(default_factory=list, sa_type=JSONType)
    target_fields: List[str] = Field(default_factory=list, sa_type=JSONType)
    validation_logic: Dict[str, Any] = Field(default_factory=dict, sa_type=JSONType)
    error_message: str = Field(default="", max_length=500)
    severity: Severity = Field(default=Severity.MEDIUM, sa_type=String(16))
    is_active: bool = Field(default=True, index=True)
    created_by: Optional[str] = Field(default=None, max_length=64)

    def applies_to(self, table_name: str) -> bool:
        return table_name in self.target_tables or WILDCARD_TABLE in self.target_tables


class DataValidationRule(BaseModel, TimestampMixin, DataValidationRuleBase, table=True):
    """Validation rule model for database storage."""
    __tablename__ = "data_validation_rules"


class DataValidationRuleCreate(DataValidationRuleBase):
    """Schema for creating validation rules."""
    pass


class DataValidationRuleRead(DataValidationRuleBase):
    """Schema for reading validation rules."""
    id: UUID
    created_at: datetime
    updated_at: datetime

    @field_validator("target_tables", "target_fields", mode="before")
    @classmethod
    def coerce_names(cls, value: Any) -> List[str]:
        return safe_string_list(value)

    @field_validator("validation_logic", mode="before")
    @classmethod
    def coerce_logic(cls, value: Any) -> Dict[str, Any]:
        return safe_record(value)


class DataValidationRuleUpdate(SQLModel):
    """Schema for editing validation rules; is_active=False soft-disables."""
    rule_name: Optional[str] = Field(default=None, max_length=150)
    rule_type: Optional[ValidationRuleType] = Field(default=None)
    target_tables: Optional[List[str]] = Field(default=None)
    target_fields: Optional[List[str]] = Field(default=None)
    validation_logic: Optional[Dict[str, Any]] = Field(default=None)
    error_message: Optional[str] = Field(default=None, max_length=500)
    severity: Optional[Severity] = Field(default=None)
    is_active: Optional[bool] = Field(default=None)
