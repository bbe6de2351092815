# ==============================================
# grc_sync/tasks/sync_tasks.py
# ==============================================
import asyncio
from typing import Any, Dict, List, Optional

from grc_sync.core.config import settings
from grc_sync.core.logging import get_logger
from grc_sync.infrastructure.db.connection import DatabaseManager
from grc_sync.services import SyncEventConsumer, SyncServices, build_sync_services

from .celery_app import celery_app

logger = get_logger(__name__)


async def process_pending_for_orgs(
    consumer: SyncEventConsumer,
    org_ids: List[str],
    limit: Optional[int] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Run the consumer once per organization; one failing org does not stop the others."""
    results: Dict[str, List[Dict[str, Any]]] = {}
    for org_id in org_ids:
        try:
            reports = await consumer.process_pending(org_id, limit=limit)
        except Exception as e:
            logger.error(f"Processing pending sync events failed for org {org_id}: {e}")
            results[org_id] = []
            continue
        results[org_id] = [report.to_dict() for report in reports]
    return results


async def _run_consumer(org_ids: List[str], limit: Optional[int]) -> Dict[str, List[Dict[str, Any]]]:
    services: SyncServices = build_sync_services(DatabaseManager())
    await services.database.connect()
    try:
        return await process_pending_for_orgs(services.consumer, org_ids, limit)
    finally:
        await services.database.disconnect()


@celery_app.task(
    bind=True,
    name='sync.process_pending_events',
    max_retries=3,
    default_retry_delay=60,
)
def process_pending_events(self, org_ids: Optional[List[str]] = None, limit: Optional[int] = None):
    """
    Deliver pending sync events.

    Args:
        org_ids: Organizations to process (default: SYNC_AUTO_INITIALIZE_ORGS)
        limit: Maximum number of events per organization

    Returns:
        Delivery reports per organization
    """
    org_ids = org_ids or settings.sync.auto_initialize_orgs
    if not org_ids:
        logger.debug("No organizations configured for sync event processing")
        return {}

    logger.info(f"Task {self.request.id}: processing pending sync events for {len(org_ids)} org(s)")
    try:
        return asyncio.run(_run_consumer(org_ids, limit))
    except Exception as e:
        logger.error(f"Sync event processing failed: {e}")
        raise self.retry(exc=e)
