from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import field_validator
from sqlalchemy import DateTime, String
from sqlmodel import SQLModel, Field

from grc_sync.core.enums import LineageSyncStatus, OperationType
from grc_sync.infrastructure.db.models.base import (
    BaseModel,
    JSONType,
    OrgScopedMixin,
    TimestampMixin,
    safe_record,
)


class DataLineageBase(OrgScopedMixin):
    """Base model for data lineage: one mutation's provenance."""
    source_table: str = Field(max_length=100, index=True, description="Table the change came from")
    source_id: str = Field(max_length=64, description="Record id in the source table")
    target_table: str = Field(max_length=100, index=True, description="Table the change landed in")
    target_id: str = Field(max_length=64, description="Record id in the target table")
    operation_type: OperationType = Field(sa_type=String(16))
    field_changes: Dict[str, Any] = Field(default_factory=dict, sa_type=JSONType)
    transformation_rules: Dict[str, Any] = Field(default_factory=dict, sa_type=JSONType)
    sync_status: LineageSyncStatus = Field(default=LineageSyncStatus.PENDING, sa_type=String(16), index=True)
    conflict_data: Dict[str, Any] = Field(default_factory=dict, sa_type=JSONType)
    resolved_by: Optional[str] = Field(default=None, max_length=64)
    resolved_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_by: Optional[str] = Field(default=None, max_length=64)


class DataLineage(BaseModel, TimestampMixin, DataLineageBase, table=True):
    """Data lineage model for database storage."""
    __tablename__ = "data_lineage"

    @property
    def is_self_referential(self) -> bool:
        return self.source_table == self.target_table and self.source_id == self.target_id


class DataLineageCreate(DataLineageBase):
    """Schema for creating data lineage records."""
    pass


class DataLineageRead(DataLineageBase):
    """Schema for reading data lineage records."""
    id: UUID
    created_at: datetime
    updated_at: datetime

    @field_validator("field_changes", "transformation_rules", "conflict_data", mode="before")
    @classmethod
    def coerce_payload(cls, value: Any) -> Dict[str, Any]:
        return safe_record(value)


class DataConflictResolution(SQLModel):
    """Schema for resolving a flagged lineage conflict."""
    resolved_by: str = Field(max_length=64)
    resolution: Dict[str, Any] = Field(default_factory=dict)
