"""
Repositories for the orchestration collections.
"""

from typing import List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from grc_sync.core.enums import LineageSyncStatus, SyncEventStatus
from grc_sync.infrastructure.db.models.orchestration import (
    DataLineage,
    DataQualityMetrics,
    DataValidationRule,
    SyncEvent,
)
from .base import BaseRepository


class DataLineageRepository(BaseRepository[DataLineage]):

    def __init__(self, session: AsyncSession):
        super().__init__(DataLineage, session)

    async def search(
        self,
        org_id: str,
        source_table: Optional[str] = None,
        target_table: Optional[str] = None,
        sync_status: Optional[LineageSyncStatus] = None,
    ) -> List[DataLineage]:
        return await self.list(
            org_id,
            source_table=source_table,
            target_table=target_table,
            sync_status=sync_status,
        )


class DataQualityMetricsRepository(BaseRepository[DataQualityMetrics]):

    def __init__(self, session: AsyncSession):
        super().__init__(DataQualityMetrics, session)

    async def search(self, org_id: str, table_name: Optional[str] = None) -> List[DataQualityMetrics]:
        return await self.list(org_id, order_by="last_validated_at", table_name=table_name)


class SyncEventRepository(BaseRepository[SyncEvent]):

    def __init__(self, session: AsyncSession):
        super().__init__(SyncEvent, session)

    async def search(self, org_id: str, sync_status: Optional[SyncEventStatus] = None) -> List[SyncEvent]:
        return await self.list(org_id, sync_status=sync_status)

    async def oldest_pending(self, org_id: str, limit: int) -> List[SyncEvent]:
        """Pending events in arrival order, for the consumer."""
        return await self.list(
            org_id,
            descending=False,
            limit=limit,
            sync_status=SyncEventStatus.PENDING,
        )


class ValidationRuleRepository(BaseRepository[DataValidationRule]):

    def __init__(self, session: AsyncSession):
        super().__init__(DataValidationRule, session)

    async def search(self, org_id: str, is_active: Optional[bool] = None) -> List[DataValidationRule]:
        return await self.list(org_id, is_active=is_active)
