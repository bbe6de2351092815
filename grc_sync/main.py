from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grc_sync.core.config import get_settings
from grc_sync.core.constants import API_PREFIX
from grc_sync.core.exceptions import AppException
from grc_sync.core.logging import get_logger, setup_logging
from grc_sync.infrastructure.db.connection import database_manager
from grc_sync.interfaces.http.routes import api_router
from grc_sync.schemas import HealthResponse
from grc_sync.services import SyncServices, build_sync_services

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.project_name} {settings.version}")

    services: SyncServices = getattr(app.state, "services", None) or build_sync_services(database_manager)
    app.state.services = services

    try:
        await services.start()
        logger.info("Database and change feed connected")

        for org_id in settings.sync.auto_initialize_orgs:
            try:
                await services.realtime.initialize(org_id)
            except Exception as e:
                logger.error(f"Failed to start real-time sync for org {org_id}: {e}")

        yield

    finally:
        # Shutdown
        logger.info("Shutting down...")
        await services.stop()
        logger.info("Real-time sync stopped, connections closed")


def create_application(services: Optional[SyncServices] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        services: Pre-built service graph; the configured one is built on startup otherwise
    """
    app = FastAPI(
        title=settings.project_name,
        description="Cross-module data orchestration and real-time sync for GRC modules",
        version=settings.version,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    if settings.cors_settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_settings.allowed_origins,
            allow_credentials=settings.cors_settings.allow_credentials,
            allow_methods=settings.cors_settings.allowed_methods,
            allow_headers=settings.cors_settings.allowed_headers,
        )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle application-specific exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "type": exc.error_code,
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle general exceptions."""
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        message = str(exc) if settings.debug else "Internal server error occurred"
        return JSONResponse(
            status_code=500,
            content={"error": {"type": "internal_server_error", "message": message}},
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """Health check with dependencies status."""
        health = HealthResponse(status="healthy", version=settings.version, environment=settings.environment)
        services: Optional[SyncServices] = getattr(request.app.state, "services", None)
        if services is None:
            health.status = "unhealthy"
            return health

        checks = {
            "database": await services.database.health_check(),
            "change_feed": await services.change_feed.health_check(),
        }
        for name, healthy in checks.items():
            health.checks[name] = "healthy" if healthy else "unhealthy"
            if not healthy:
                health.status = "unhealthy"

        health.checks["listening_orgs"] = str(len(services.realtime.initialized_orgs))
        return health

    app.include_router(api_router, prefix=API_PREFIX)

    @app.get("/")
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "message": settings.project_name,
            "version": settings.version,
            "docs_url": "disabled" if settings.is_production else "/docs",
            "health_check": "/health",
        }

    return app


app = create_application()


def main():
    uvicorn.run(
        "grc_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug",
        access_log=True,
        server_header=False,
        date_header=False,
    )


if __name__ == "__main__":
    main()
