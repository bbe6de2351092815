from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import field_validator
from sqlalchemy import DateTime, String
from sqlmodel import SQLModel, Field

from grc_sync.core.constants import DEFAULT_MAX_RETRIES
from grc_sync.core.enums import SyncEventStatus
from grc_sync.infrastructure.db.models.base import (
    BaseModel,
    JSONType,
    OrgScopedMixin,
    TimestampMixin,
    safe_record,
    safe_string_list,
)


class SyncEventBase(OrgScopedMixin):
    """Base model for a unit of cross-module propagation work."""
    event_type: str = Field(max_length=150, index=True, description="{table}_{operation} or a named event")
    source_module: str = Field(max_length=100, index=True)
    target_modules: List[str] = Field(default_factory=list, sa_type=JSONType)
    entity_type: str = Field(max_length=100)
    entity_id: str = Field(max_length=64)
    event_data: Dict[str, Any] = Field(default_factory=dict, sa_type=JSONType)
    sync_status: SyncEventStatus = Field(default=SyncEventStatus.PENDING, sa_type=String(16), index=True)
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    error_details: Dict[str, Any] = Field(default_factory=dict, sa_type=JSONType)
    processed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))


class SyncEvent(BaseModel, TimestampMixin, SyncEventBase, table=True):
    """Sync event model for database storage."""
    __tablename__ = "sync_events"

    @property
    def retries_exhausted(self) -> bool:
        return self.retry_count >= self.max_retries


class SyncEventCreate(SyncEventBase):
    """Schema for creating sync events."""
    pass


class SyncEventRead(SyncEventBase):
    """Schema for reading sync events."""
    id: UUID
    created_at: datetime
    updated_at: datetime

    @field_validator("target_modules", mode="before")
    @classmethod
    def coerce_modules(cls, value: Any) -> List[str]:
        return safe_string_list(value)

    @field_validator("event_data", "error_details", mode="before")
    @classmethod
    def coerce_payload(cls, value: Any) -> Dict[str, Any]:
        return safe_record(value)


class SyncEventStatusUpdate(SQLModel):
    """Schema for moving a sync event through its lifecycle."""
    sync_status: SyncEventStatus
    error_details: Optional[Dict[str, Any]] = Field(default=None)
