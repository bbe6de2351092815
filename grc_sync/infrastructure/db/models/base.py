from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB

from grc_sync.utils.date_utils import get_current_timestamp


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests and local runs)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class BaseModel(SQLModel):
    """
    Base model with common fields for all database models.
    """

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        index=True,
        nullable=False,
        description="Unique identifier"
    )


class OrgScopedMixin(SQLModel):
    """
    Mixin for models partitioned per organization.
    """

    org_id: str = Field(
        index=True,
        max_length=64,
        nullable=False,
        description="Owning organization"
    )


class TimestampMixin(SQLModel):
    """
    Mixin for models that need timestamp fields.

    Both values are stamped client side; repositories refresh ``updated_at``
    on every update.
    """

    created_at: datetime = Field(
        default_factory=get_current_timestamp,
        sa_type=DateTime(timezone=True),
        nullable=False,
        index=True,
        description="Record creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=get_current_timestamp,
        sa_type=DateTime(timezone=True),
        nullable=False,
        description="Record last update timestamp"
    )


def safe_string_list(value: Any) -> List[str]:
    """Coerce a JSON payload into a list of strings, dropping null entries."""
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item) not in ("null", "undefined")]


def safe_record_list(value: Any) -> List[Dict[str, Any]]:
    """Coerce a JSON payload into a list of objects, dropping anything else."""
    if not isinstance(value, list):
        return []
    return [dict(item) for item in value if isinstance(item, dict) and item]


def safe_record(value: Any) -> Dict[str, Any]:
    """Coerce a JSON payload into an object."""
    if not isinstance(value, dict):
        return {}
    return dict(value)
