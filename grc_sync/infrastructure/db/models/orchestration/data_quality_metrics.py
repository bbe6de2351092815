from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

from pydantic import field_validator
from sqlalchemy import DateTime
from sqlmodel import Field

from grc_sync.infrastructure.db.models.base import (
    BaseModel,
    JSONType,
    OrgScopedMixin,
    TimestampMixin,
    safe_record_list,
    safe_string_list,
)
from grc_sync.utils.date_utils import get_current_timestamp


class DataQualityMetricsBase(OrgScopedMixin):
    """Base model for a quality snapshot of one record."""
    table_name: str = Field(max_length=100, index=True)
    record_id: str = Field(max_length=64, index=True)
    quality_score: int = Field(ge=0, le=100)
    completeness_score: int = Field(ge=0, le=100)
    accuracy_score: int = Field(ge=0, le=100)
    consistency_score: int = Field(ge=0, le=100)
    validity_score: int = Field(ge=0, le=100)
    quality_issues: List[str] = Field(default_factory=list, sa_type=JSONType)
    validation_rules: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSONType)
    last_validated_at: datetime = Field(
        default_factory=get_current_timestamp, sa_type=DateTime(timezone=True), index=True
    )


class DataQualityMetrics(BaseModel, TimestampMixin, DataQualityMetricsBase, table=True):
    """Data quality metrics model for database storage."""
    __tablename__ = "data_quality_metrics"


class DataQualityMetricsCreate(DataQualityMetricsBase):
    """Schema for creating data quality metrics."""
    pass


class DataQualityMetricsRead(DataQualityMetricsBase):
    """Schema for reading data quality metrics."""
    id: UUID
    created_at: datetime
    updated_at: datetime

    @field_validator("quality_issues", mode="before")
    @classmethod
    def coerce_issues(cls, value: Any) -> List[str]:
        return safe_string_list(value)

    @field_validator("validation_rules", mode="before")
    @classmethod
    def coerce_rule_results(cls, value: Any) -> List[Dict[str, Any]]:
        return safe_record_list(value)
