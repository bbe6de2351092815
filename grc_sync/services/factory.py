"""
Service factory wiring the sync services to a database and a change feed.
"""

import importlib
from dataclasses import dataclass
from typing import Dict, Optional

from grc_sync.core.config import get_settings
from grc_sync.core.exceptions import ServiceError
from grc_sync.infrastructure.db.connection import DatabaseManager
from grc_sync.infrastructure.realtime import ChangeFeed, create_change_feed
from .data_orchestration_service import DataOrchestrationService
from .data_quality_service import DataQualityService
from .realtime_sync_service import RealTimeSyncService
from .sync_event_consumer import ModuleHandler, SyncEventConsumer


@dataclass
class SyncServices:
    """Everything a process needs to run the sync layer."""
    database: DatabaseManager
    change_feed: ChangeFeed
    orchestration: DataOrchestrationService
    quality: DataQualityService
    realtime: RealTimeSyncService
    consumer: SyncEventConsumer

    async def start(self) -> None:
        await self.database.connect()
        await self.change_feed.connect()

    async def stop(self) -> None:
        await self.realtime.cleanup()
        await self.change_feed.disconnect()
        await self.database.disconnect()


def import_handler(path: str) -> ModuleHandler:
    """
    Resolve a ``package.module:attribute`` path to a sync handler.

    Raises:
        ServiceError: If the path is malformed, cannot be imported or is not callable
    """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ServiceError(f"Invalid handler path '{path}', expected 'package.module:handler'")

    try:
        handler = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise ServiceError(f"Cannot load handler '{path}': {e}", details={"path": path})

    if not callable(handler):
        raise ServiceError(f"Handler '{path}' is not callable", details={"path": path})
    return handler


def load_module_handlers(paths: Dict[str, str]) -> Dict[str, ModuleHandler]:
    return {module: import_handler(path) for module, path in paths.items()}


def build_sync_services(
    database: DatabaseManager,
    change_feed: Optional[ChangeFeed] = None,
    module_handlers: Optional[Dict[str, str]] = None,
) -> SyncServices:
    """
    Build the service graph.

    Args:
        database: Database manager whose sessions the services use
        change_feed: Change feed to listen on; defaults to the configured backend
        module_handlers: Target module -> handler path; defaults to ``SYNC_MODULE_HANDLERS``
    """
    if module_handlers is None:
        module_handlers = get_settings().sync.module_handlers

    change_feed = change_feed or create_change_feed()
    orchestration = DataOrchestrationService(database.get_async_session)
    quality = DataQualityService(database.get_async_session, orchestration)

    consumer = SyncEventConsumer(orchestration)
    for module, handler in load_module_handlers(module_handlers).items():
        consumer.register(module, handler)

    return SyncServices(
        database=database,
        change_feed=change_feed,
        orchestration=orchestration,
        quality=quality,
        realtime=RealTimeSyncService(change_feed, orchestration, quality),
        consumer=consumer,
    )
