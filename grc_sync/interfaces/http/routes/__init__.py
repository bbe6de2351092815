from fastapi import APIRouter

from .sync import router as sync_router
from .lineage import router as lineage_router
from .quality import router as quality_router
from .validation_rules import router as validation_rules_router

api_router = APIRouter()

# Every route is scoped to one organization
api_router.include_router(sync_router, prefix="/orgs/{org_id}", tags=["Real-time Sync"])
api_router.include_router(lineage_router, prefix="/orgs/{org_id}/lineage", tags=["Data Lineage"])
api_router.include_router(quality_router, prefix="/orgs/{org_id}/quality-metrics", tags=["Data Quality"])
api_router.include_router(validation_rules_router, prefix="/orgs/{org_id}", tags=["Validation Rules"])
